"""Saved-return endpoints: save, load, update and delete by email or id."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from taxline.api.deps import get_store
from taxline.core.logging import get_logger, return_id_ctx
from taxline.persistence.store import ReturnStore, SavedReturnRecord, StoreError

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["returns"])


class SaveRequest(BaseModel):
    """Payload for saving a return under an email."""

    email: str | None = Field(default=None, max_length=255)
    data: dict[str, Any] | None = None
    user_name: str | None = Field(default=None, max_length=255)


class UpdateRequest(BaseModel):
    """Payload for replacing the data of a saved return."""

    data: dict[str, Any] | None = None


class SaveResponse(BaseModel):
    """Result of a save."""

    success: bool = True
    id: str
    message: str = "Tax return saved successfully"


class SavedReturnResponse(BaseModel):
    """A saved return as returned by the API."""

    id: str
    email: str
    user_name: str | None
    data: dict[str, Any]
    last_modified: datetime


class LoadResponse(BaseModel):
    """Result of a load."""

    success: bool = True
    data: SavedReturnResponse


class MessageResponse(BaseModel):
    """Result of an update or delete."""

    success: bool = True
    message: str


def _to_response(record: SavedReturnRecord) -> SavedReturnResponse:
    return SavedReturnResponse(**record.model_dump())


def _unavailable(action: str, exc: StoreError) -> HTTPException:
    logger.error("return_store_unavailable", action=action, error=str(exc))
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Failed to {action} data",
    )


@router.post("/save", response_model=SaveResponse)
async def save_return(
    payload: SaveRequest,
    store: Annotated[ReturnStore, Depends(get_store)],
) -> SaveResponse:
    """Save a return, overwriting anything saved under the same email."""
    email = (payload.email or "").strip()
    if not email or not payload.data:
        raise HTTPException(status_code=400, detail="Email and data are required")

    try:
        record = await store.save(email, payload.data, payload.user_name)
    except StoreError as e:
        raise _unavailable("save", e)
    return SaveResponse(id=record.id)


@router.get("/load/{email}", response_model=LoadResponse)
async def load_return(
    email: str,
    store: Annotated[ReturnStore, Depends(get_store)],
) -> LoadResponse:
    """Load the return saved under an email."""
    try:
        record = await store.load(email)
    except StoreError as e:
        raise _unavailable("load", e)
    if record is None:
        raise HTTPException(status_code=404, detail="No saved return found for this email")
    return LoadResponse(data=_to_response(record))


@router.put("/update/{return_id}", response_model=MessageResponse)
async def update_return(
    return_id: str,
    payload: UpdateRequest,
    store: Annotated[ReturnStore, Depends(get_store)],
) -> MessageResponse:
    """Replace the data of a saved return."""
    return_id_ctx.set(return_id)
    if not payload.data:
        raise HTTPException(status_code=400, detail="Data is required")

    try:
        record = await store.update(return_id, payload.data)
    except StoreError as e:
        raise _unavailable("update", e)
    if record is None:
        raise HTTPException(status_code=404, detail="Tax return not found")
    return MessageResponse(message="Tax return updated successfully")


@router.delete("/delete/{return_id}", response_model=MessageResponse)
async def delete_return(
    return_id: str,
    store: Annotated[ReturnStore, Depends(get_store)],
) -> MessageResponse:
    """Delete a saved return."""
    return_id_ctx.set(return_id)
    try:
        deleted = await store.delete(return_id)
    except StoreError as e:
        raise _unavailable("delete", e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Tax return not found")
    return MessageResponse(message="Tax return deleted successfully")
