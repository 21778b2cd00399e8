"""Intake flow as a state machine.

Collects the choices that make up a FilingProfile, then the user's name and
email. The path depends on the tax type:

- federal-1040 / federal-1040sr: tax type -> filing status -> sign-in
- indiana: tax type -> county -> sign-in
- combined: tax type -> filing status -> county -> sign-in

`back` returns to the tax type choice from any step before sign-in
completes and discards everything chosen so far.
"""

import re
from decimal import Decimal

import structlog
from pydantic import ValidationError
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from taxline.forms.profile import AgeFlags, FilingProfile, TaxType
from taxline.tax.counties import CountyTable, CountyTableError, get_county_table
from taxline.tax.filing_status import SPOUSE_STATUSES, FilingStatus, coerce_filing_status

logger = structlog.get_logger()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class IntakeError(Exception):
    """Raised when an intake choice is invalid or out of order."""


def is_valid_email(email: str) -> bool:
    """Loose name@domain.tld check used at sign-in."""
    return bool(EMAIL_PATTERN.match(email.strip()))


class IntakeStateMachine(StateMachine):
    """State machine for the intake flow.

    States:
    - choosing_tax_type: nothing chosen yet
    - choosing_filing_status: federal returns only
    - choosing_county: Indiana returns only
    - signing_in: profile complete, waiting for name and email
    - ready: profile and identity complete (not final to allow reset)
    """

    choosing_tax_type = State(initial=True)
    choosing_filing_status = State()
    choosing_county = State()
    signing_in = State()
    ready = State()

    select_tax_type = choosing_tax_type.to(
        choosing_filing_status, cond="needs_filing_status"
    ) | choosing_tax_type.to(choosing_county)
    select_filing_status = choosing_filing_status.to(
        choosing_county, cond="needs_county"
    ) | choosing_filing_status.to(signing_in)
    select_county = choosing_county.to(signing_in)
    back = (
        choosing_filing_status.to(choosing_tax_type)
        | choosing_county.to(choosing_tax_type)
        | signing_in.to(choosing_tax_type)
    )
    sign_in = signing_in.to(ready)
    reset = ready.to(choosing_tax_type)

    def __init__(self, county_table: CountyTable | None = None) -> None:
        """Initialize an empty intake.

        Args:
            county_table: County rates to look up. Defaults to the bundled table.
        """
        self.county_table = county_table
        self._clear()
        super().__init__()

    def _clear(self) -> None:
        self.tax_type: TaxType | None = None
        self.filing_status: FilingStatus | None = None
        self.age_flags = AgeFlags()
        self.county: str | None = None
        self.county_rate: Decimal | None = None
        self.user_name: str | None = None
        self.email: str | None = None

    # Conditions
    def needs_filing_status(self, tax_type: TaxType) -> bool:
        return tax_type.includes_federal

    def needs_county(self) -> bool:
        return self.tax_type is not None and self.tax_type.includes_indiana

    # Transition callbacks
    def on_select_tax_type(self, tax_type: TaxType) -> None:
        self.tax_type = tax_type
        logger.info("intake_tax_type_selected", tax_type=tax_type.value)

    def on_select_filing_status(self, filing_status: FilingStatus, age_flags: AgeFlags) -> None:
        self.filing_status = filing_status
        self.age_flags = age_flags
        logger.info("intake_filing_status_selected", filing_status=filing_status.value)

    def on_select_county(self, county: str, county_rate: Decimal) -> None:
        self.county = county
        self.county_rate = county_rate
        logger.info("intake_county_selected", county=county, county_rate=str(county_rate))

    def on_sign_in(self, user_name: str, email: str) -> None:
        self.user_name = user_name
        self.email = email
        logger.info("intake_signed_in", tax_type=self.tax_type.value if self.tax_type else None)

    def on_back(self) -> None:
        self._clear()
        logger.info("intake_restarted")

    def on_reset(self) -> None:
        self._clear()
        logger.info("intake_reset")

    # Validated entry points
    def _send(self, event: str, **kwargs) -> None:
        try:
            self.send(event, **kwargs)
        except TransitionNotAllowed as e:
            raise IntakeError(
                f"Cannot {event.replace('_', ' ')} while {self.current_state.id}"
            ) from e

    def choose_tax_type(self, tax_type: TaxType | str) -> None:
        """Select the return type.

        Raises:
            IntakeError: If the value is unknown or a tax type was already chosen.
        """
        try:
            tax_type = TaxType(tax_type)
        except ValueError as e:
            raise IntakeError(f"Unknown tax type: {tax_type}") from e
        self._send("select_tax_type", tax_type=tax_type)

    def choose_filing_status(
        self, filing_status: FilingStatus | str, age_flags: AgeFlags | None = None
    ) -> None:
        """Select filing status and line 12d checkboxes.

        Raises:
            IntakeError: If the status is unknown, spouse boxes are checked for
                a status without a spouse, or the step is out of order.
        """
        status = coerce_filing_status(filing_status)
        if status is None:
            raise IntakeError(f"Unknown filing status: {filing_status}")
        age_flags = age_flags or AgeFlags()
        if age_flags.has_spouse_flags and status not in SPOUSE_STATUSES:
            raise IntakeError(f"Spouse boxes do not apply to {status.label}")
        self._send("select_filing_status", filing_status=status, age_flags=age_flags)

    def choose_county(self, county: str) -> None:
        """Select the Indiana county of residence.

        Raises:
            IntakeError: If the county is not in the rate table or the step is
                out of order.
        """
        table = self.county_table or get_county_table()
        try:
            name = table.canonical_name(county)
            rate = table.rate_for(name)
        except CountyTableError as e:
            raise IntakeError(str(e)) from e
        self._send("select_county", county=name, county_rate=rate)

    def submit_sign_in(self, user_name: str, email: str) -> None:
        """Record the user's name and email.

        Raises:
            IntakeError: If either is missing, the email is malformed, or the
                profile is not complete yet.
        """
        user_name = (user_name or "").strip()
        email = (email or "").strip()
        if not user_name or not email:
            raise IntakeError("Please enter both name and email")
        if not is_valid_email(email):
            raise IntakeError("Please enter a valid email address")
        self._send("sign_in", user_name=user_name, email=email)

    def go_back(self) -> None:
        """Return to the tax type choice, discarding earlier choices."""
        self._send("back")

    def build_profile(self) -> FilingProfile:
        """Build the FilingProfile from the choices made so far.

        Raises:
            IntakeError: If the profile is not complete yet.
        """
        if self.current_state.id not in ("signing_in", "ready"):
            raise IntakeError(f"Intake incomplete: {self.current_state.id}")
        try:
            return FilingProfile(
                tax_type=self.tax_type,
                filing_status=self.filing_status,
                age_flags=self.age_flags,
                county=self.county,
                county_rate=self.county_rate if self.county_rate is not None else 0,
            )
        except ValidationError as e:
            raise IntakeError(f"Invalid profile: {e.errors()[0]['msg']}") from e

    @property
    def is_complete(self) -> bool:
        return self.current_state == self.ready


__all__ = [
    "IntakeError",
    "IntakeStateMachine",
    "TransitionNotAllowed",
    "is_valid_email",
]
