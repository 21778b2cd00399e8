"""Health check endpoint for infrastructure verification."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from taxline.api.deps import get_store
from taxline.core.config import settings
from taxline.core.logging import get_logger
from taxline.persistence.store import ReturnStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    store: str
    message: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: Annotated[ReturnStore, Depends(get_store)],
) -> HealthResponse:
    """Check application health including saved-return store connectivity.

    Returns:
        HealthResponse with the store backend status.
    """
    healthy = await store.check()
    if not healthy:
        logger.warning("health_check_degraded", backend=settings.return_store)

    return HealthResponse(
        status="ok" if healthy else "degraded",
        store="connected" if healthy else "disconnected",
        message="Tax Calculator API is running",
    )
