"""structlog setup for the API and the tax engine.

Events carry the request id set by RequestContextMiddleware plus, where a
handler knows them, the saved return id and the tax type being computed.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from taxline.core.config import settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
return_id_ctx: ContextVar[str | None] = ContextVar("return_id", default=None)
tax_type_ctx: ContextVar[str | None] = ContextVar("tax_type", default=None)

_CONTEXT_FIELDS: tuple[tuple[str, ContextVar[str | None]], ...] = (
    ("request_id", request_id_ctx),
    ("return_id", return_id_ctx),
    ("tax_type", tax_type_ctx),
)

# Libraries that log every statement or request at INFO
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "fsspec")


def _add_context_vars(
    logger: logging.Logger | None, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Copy the correlation ids that are set into the event."""
    for key, var in _CONTEXT_FIELDS:
        value = var.get()
        if value:
            event_dict[key] = value
    return event_dict


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    # Decimal amounts and enums fall back to str()
    return orjson.dumps(obj, default=str).decode("utf-8")


def _use_json() -> bool:
    """JSON unless overridden; development defaults to the console."""
    if settings.log_format:
        return settings.log_format.lower() == "json"
    return settings.environment != "development"


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger.

    Console output with colors in development, one orjson line per event
    everywhere else. LOG_FORMAT forces either.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_context_vars,
    ]
    if _use_json():
        processors += [
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)
