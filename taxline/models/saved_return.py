"""Saved return model: one in-progress return per email."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from taxline.models.base import Base, TimestampMixin, utcnow


class SavedReturn(Base, TimestampMixin):
    """Represents a taxpayer's saved return.

    Saves are upserts keyed by email, so at most one row exists per email
    and every save overwrites `data`.
    """

    __tablename__ = "saved_returns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_name: Mapped[str | None] = mapped_column(String(255))
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False
    )
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
