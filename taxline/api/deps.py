"""FastAPI dependency injection for the return store and knowledge base."""

from fastapi import Request

from taxline.knowledge.loader import get_knowledge_base
from taxline.knowledge.matcher import Assistant
from taxline.knowledge.models import KnowledgeBase
from taxline.persistence.store import ReturnStore
from taxline.tax.counties import CountyTable, get_county_table


async def get_store(request: Request) -> ReturnStore:
    """Get the saved-return store from app state.

    Args:
        request: FastAPI request containing app state.

    Returns:
        ReturnStore created at startup.
    """
    return request.app.state.return_store


async def get_knowledge() -> KnowledgeBase:
    """Get the process-wide knowledge base."""
    return get_knowledge_base()


async def get_assistant() -> Assistant:
    """Get an assistant over the process-wide knowledge base."""
    return Assistant(get_knowledge_base().assistant)


async def get_counties() -> CountyTable:
    """Get the Indiana county rate table."""
    return get_county_table()
