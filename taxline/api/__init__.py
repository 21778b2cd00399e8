"""API module exports."""

from taxline.api.assistant import router as assistant_router
from taxline.api.calculator import router as calculator_router
from taxline.api.deps import get_assistant, get_counties, get_knowledge, get_store
from taxline.api.health import router as health_router
from taxline.api.returns import router as returns_router

__all__ = [
    "assistant_router",
    "calculator_router",
    "get_assistant",
    "get_counties",
    "get_knowledge",
    "get_store",
    "health_router",
    "returns_router",
]
