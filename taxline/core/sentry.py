"""Sentry error tracking integration."""

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from taxline.core.config import settings


def init_sentry() -> bool:
    """Initialize Sentry error tracking if DSN is configured.

    Only 5xx responses are captured and 10% of traces are sampled.
    PII is never sent; saved returns are keyed by taxpayer email.

    Returns:
        True if Sentry was initialized.
    """
    if not settings.sentry_dsn:
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(
                transaction_style="endpoint",
                failed_request_status_codes={*range(500, 600)},
            ),
        ],
    )
    return True
