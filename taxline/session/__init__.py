"""Intake flow and per-user tax sessions."""

from taxline.session.context import LoadOutcome, SaveOutcome, TaxSession
from taxline.session.intake import IntakeError, IntakeStateMachine, is_valid_email

__all__ = [
    "IntakeError",
    "IntakeStateMachine",
    "LoadOutcome",
    "SaveOutcome",
    "TaxSession",
    "is_valid_email",
]
