"""SQLAlchemy models for the Taxline application."""

from taxline.models.base import Base
from taxline.models.saved_return import SavedReturn

__all__ = [
    "Base",
    "SavedReturn",
]
