"""Exported form state and its persisted record shape."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from taxline.forms.fields import Ledger
from taxline.forms.profile import FilingProfile


class FormState(BaseModel):
    """Full set of field values for one return, partitioned by ledger.

    The Indiana ledger is empty unless the profile includes Indiana.
    """

    model_config = ConfigDict(frozen=True)

    profile: FilingProfile
    income: dict[str, Decimal] = Field(default_factory=dict)
    deductions: dict[str, Decimal] = Field(default_factory=dict)
    payments: dict[str, Decimal] = Field(default_factory=dict)
    indiana: dict[str, Decimal] = Field(default_factory=dict)

    def ledger(self, ledger: Ledger) -> dict[str, Decimal]:
        """Return the values of one sub-ledger."""
        return getattr(self, ledger.value)

    def fields(self) -> dict[str, Decimal]:
        """Flatten all ledgers into one field-id to value mapping."""
        flat: dict[str, Decimal] = {}
        for ledger in Ledger:
            flat.update(self.ledger(ledger))
        return flat

    def to_record(self, user_name: str | None = None) -> dict[str, Any]:
        """JSON-safe record persisted under the user's email."""
        return FormRecord(
            profile=self.profile, fields=self.fields(), user_name=user_name
        ).model_dump(mode="json")


class FormRecord(BaseModel):
    """Persisted shape of a return: profile plus flat field mapping."""

    profile: FilingProfile
    fields: dict[str, Decimal] = Field(default_factory=dict)
    user_name: str | None = None
