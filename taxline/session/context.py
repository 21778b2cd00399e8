"""Per-user tax session.

A TaxSession owns one filing profile and the form graph built for it. All
edits go through the session; persistence is the only asynchronous edge and
never touches in-memory state on failure.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from taxline.core.logging import get_logger
from taxline.forms.graph import FormGraph
from taxline.forms.lines import build_form_graph
from taxline.forms.presenter import FormView, present
from taxline.forms.profile import FilingProfile
from taxline.forms.state import FormRecord, FormState
from taxline.forms.summary import (
    CombinedSummary,
    DeductionTip,
    LiveTotals,
    ReturnSummary,
    combined_summary,
    deduction_tip,
    federal_summary,
    live_totals,
    plain_english_summary,
    precheck,
)
from taxline.persistence.store import ReturnStore, SavedReturnRecord, StoreError
from taxline.session.intake import IntakeError, IntakeStateMachine
from taxline.tax.year_config import TaxYearConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class SaveOutcome:
    """Result of saving a session."""

    saved: bool
    record: SavedReturnRecord | None = None
    error: str | None = None


@dataclass(frozen=True)
class LoadOutcome:
    """Result of loading a saved return into a session.

    found is False when nothing is saved under the email; restored is False
    when something was found but could not be applied.
    """

    found: bool
    restored: bool = False
    changed: frozenset[str] = field(default_factory=frozenset)
    error: str | None = None


def parse_record(data: dict[str, Any]) -> FormRecord:
    """Validate a stored record payload.

    Raises:
        ValidationError: If the payload is not a FormRecord.
    """
    return FormRecord.model_validate(data)


class TaxSession:
    """One signed-in user's return in progress."""

    def __init__(
        self,
        profile: FilingProfile,
        user_name: str | None = None,
        email: str | None = None,
        config: TaxYearConfig | None = None,
    ) -> None:
        self.profile = profile
        self.user_name = user_name
        self.email = email
        self.graph: FormGraph = build_form_graph(profile, config)
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_intake(
        cls, intake: IntakeStateMachine, config: TaxYearConfig | None = None
    ) -> "TaxSession":
        """Start a session from a completed intake.

        Raises:
            IntakeError: If the intake has not reached the ready state.
        """
        if not intake.is_complete:
            raise IntakeError("Sign in before starting a return")
        return cls(
            intake.build_profile(),
            user_name=intake.user_name,
            email=intake.email,
            config=config,
        )

    @classmethod
    async def resume(
        cls,
        store: ReturnStore,
        email: str,
        user_name: str | None = None,
        config: TaxYearConfig | None = None,
    ) -> "TaxSession | None":
        """Rebuild a session from the return saved under email.

        The saved profile is used as-is, so no intake is needed.

        Returns:
            Restored session, or None if nothing is saved under email.

        Raises:
            StoreError: If the store fails or the saved record is malformed.
        """
        stored = await store.load(email)
        if stored is None:
            return None
        try:
            record = parse_record(stored.data)
        except ValidationError as e:
            raise StoreError(f"Saved return {stored.id} is malformed: {e}") from e

        session = cls(
            record.profile,
            user_name=user_name or record.user_name or stored.user_name,
            email=email,
            config=config,
        )
        session.graph.restore_values(record.fields)
        logger.info("session_resumed", return_id=stored.id)
        return session

    # Editing

    def edit(self, field_id: str, raw: Any) -> FormView:
        """Set one input and return the fields whose display changed."""
        return present(self.graph, self.graph.update(field_id, raw))

    def edit_many(self, inputs: dict[str, Any]) -> FormView:
        """Set several inputs with a single recompute."""
        return present(self.graph, self.graph.update_many(inputs))

    def view(self) -> FormView:
        return present(self.graph)

    # Summaries

    def federal_summary(self) -> ReturnSummary:
        return federal_summary(self.graph)

    def combined_summary(self) -> CombinedSummary:
        return combined_summary(self.graph)

    def live_totals(self) -> LiveTotals:
        return live_totals(self.graph)

    def plain_english_summary(self) -> str:
        return plain_english_summary(self.graph)

    def precheck(self) -> list[str]:
        return precheck(self.graph)

    def deduction_tip(self) -> DeductionTip | None:
        return deduction_tip(self.graph)

    # State

    def snapshot(self) -> FormState:
        return self.graph.snapshot()

    def restore(self, state: FormState) -> set[str]:
        """Restore an exported state into this session.

        Raises:
            ProfileMismatchError: If the state belongs to another profile.
        """
        return self.graph.restore(state)

    def to_record(self) -> dict[str, Any]:
        """JSON-safe payload persisted under the user's email."""
        return self.snapshot().to_record(user_name=self.user_name)

    # Persistence

    async def save(self, store: ReturnStore) -> SaveOutcome:
        """Save the current state under the session's email.

        Store failures are reported in the outcome, not raised.
        """
        if not self.email:
            return SaveOutcome(saved=False, error="Sign in to save your progress")
        try:
            record = await store.save(self.email, self.to_record(), self.user_name)
        except StoreError as e:
            logger.warning("session_save_failed", error=str(e))
            return SaveOutcome(saved=False, error=str(e))
        return SaveOutcome(saved=True, record=record)

    async def load(self, store: ReturnStore) -> LoadOutcome:
        """Load the return saved under the session's email into this session.

        Failures (store errors, malformed records, a record saved under a
        different profile) leave the in-memory state untouched.
        """
        if not self.email:
            return LoadOutcome(found=False, error="Sign in to load a saved return")
        try:
            stored = await store.load(self.email)
        except StoreError as e:
            logger.warning("session_load_failed", error=str(e))
            return LoadOutcome(found=False, error=str(e))
        if stored is None:
            return LoadOutcome(found=False)

        try:
            record = parse_record(stored.data)
        except ValidationError as e:
            logger.warning("session_load_malformed", return_id=stored.id, error=str(e))
            return LoadOutcome(found=True, error=f"Saved return is malformed: {e}")
        if record.profile != self.profile:
            logger.warning("session_load_profile_mismatch", return_id=stored.id)
            return LoadOutcome(
                found=True,
                error="Saved return was prepared under a different filing profile",
            )

        changed = self.graph.restore_values(record.fields)

        if record.user_name and not self.user_name:
            self.user_name = record.user_name
        logger.info("session_loaded", return_id=stored.id, changed=len(changed))
        return LoadOutcome(found=True, restored=True, changed=frozenset(changed))

    def schedule_save(self, store: ReturnStore) -> asyncio.Task:
        """Save in the background without blocking the caller.

        The outcome is logged; the returned task can be awaited by callers
        that want it.
        """
        task = asyncio.create_task(self.save(store))
        self._pending.add(task)
        task.add_done_callback(self._on_save_done)
        return task

    def _on_save_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("background_save_cancelled")
            return
        if task.exception() is not None:
            logger.error("background_save_crashed", error=str(task.exception()))
            return
        outcome: SaveOutcome = task.result()
        if outcome.saved:
            logger.info("background_save_completed", return_id=outcome.record.id)
        else:
            logger.warning("background_save_failed", error=outcome.error)
