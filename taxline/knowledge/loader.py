"""Knowledge corpus loader with YAML parsing and validation.

This module loads the article corpus and the assistant configuration from
YAML into Pydantic models. The directory defaults to the bundled data and
can be overridden with KNOWLEDGE_DIR.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from taxline.core.config import settings
from taxline.core.logging import get_logger
from taxline.knowledge.models import Article, AssistantConfig, KnowledgeBase

logger = get_logger(__name__)

DEFAULT_KNOWLEDGE_DIR = Path(__file__).parent / "data"
ARTICLES_FILE = "articles.yaml"
ASSISTANT_FILE = "assistant.yaml"


class KnowledgeLoadError(Exception):
    """Exception raised when a knowledge file cannot be loaded or validated."""

    def __init__(self, message: str, path: Path | None = None, errors: list[str] | None = None):
        """Initialize KnowledgeLoadError.

        Args:
            message: Human-readable error message
            path: Path to the file that failed to load
            errors: List of specific validation errors
        """
        self.path = path
        self.errors = errors or []
        super().__init__(message)


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML file and return its contents as a dictionary.

    Raises:
        KnowledgeLoadError: If the file cannot be read or parsed
    """
    yaml = YAML(typ="safe")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except FileNotFoundError:
        raise KnowledgeLoadError(f"Knowledge file not found: {path}", path=path)
    except YAMLError as e:
        raise KnowledgeLoadError(f"Failed to parse YAML: {e}", path=path)

    if data is None:
        raise KnowledgeLoadError("Empty knowledge file", path=path)

    if not isinstance(data, dict):
        raise KnowledgeLoadError(
            f"Knowledge file must be a YAML mapping, got {type(data).__name__}",
            path=path,
        )

    return dict(data)


def _validation_error(label: str, path: Path, exc: ValidationError) -> KnowledgeLoadError:
    errors = [err["msg"] for err in exc.errors()]
    return KnowledgeLoadError(f"Invalid {label}: {errors[0]}", path=path, errors=errors)


def load_articles(path: str | Path) -> list[Article]:
    """Load the article corpus.

    Raises:
        KnowledgeLoadError: If the file is missing, malformed or invalid.
    """
    path = Path(path)
    data = _parse_yaml(path)
    items = data.get("articles")
    if not isinstance(items, list):
        raise KnowledgeLoadError(
            "Missing required 'articles' list",
            path=path,
            errors=["Missing required 'articles' list"],
        )
    try:
        return [Article.model_validate(item) for item in items]
    except ValidationError as e:
        raise _validation_error("article", path, e)


def load_assistant_config(path: str | Path) -> AssistantConfig:
    """Load the assistant topics and replies.

    Raises:
        KnowledgeLoadError: If the file is missing, malformed or invalid.
    """
    path = Path(path)
    data = _parse_yaml(path)
    try:
        return AssistantConfig.model_validate(data)
    except ValidationError as e:
        raise _validation_error("assistant configuration", path, e)


def load_knowledge_base(directory: str | Path | None = None) -> KnowledgeBase:
    """Load the knowledge base from a directory.

    Args:
        directory: Directory holding articles.yaml and assistant.yaml.
            Defaults to the configured or bundled directory.

    Returns:
        Validated KnowledgeBase.
    """
    directory = Path(directory or settings.knowledge_dir or DEFAULT_KNOWLEDGE_DIR)
    knowledge = KnowledgeBase(
        articles=load_articles(directory / ARTICLES_FILE),
        assistant=load_assistant_config(directory / ASSISTANT_FILE),
    )
    logger.info(
        "knowledge_base_loaded",
        directory=str(directory),
        articles=len(knowledge.articles),
        topics=len(knowledge.assistant.topics),
    )
    return knowledge


@lru_cache(maxsize=1)
def get_knowledge_base() -> KnowledgeBase:
    """Get the process-wide knowledge base, loading it on first use."""
    return load_knowledge_base()
