"""Tax knowledge corpus: article search and the keyword assistant."""

from taxline.knowledge.loader import (
    KnowledgeLoadError,
    get_knowledge_base,
    load_articles,
    load_assistant_config,
    load_knowledge_base,
)
from taxline.knowledge.matcher import Assistant, AssistantReply, ReplyKind, search_articles
from taxline.knowledge.models import (
    Article,
    AssistantConfig,
    AssistantReplies,
    AssistantTopic,
    KnowledgeBase,
)

__all__ = [
    "Article",
    "Assistant",
    "AssistantConfig",
    "AssistantReplies",
    "AssistantReply",
    "AssistantTopic",
    "KnowledgeBase",
    "KnowledgeLoadError",
    "ReplyKind",
    "get_knowledge_base",
    "load_articles",
    "load_assistant_config",
    "load_knowledge_base",
    "search_articles",
]
