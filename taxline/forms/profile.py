"""Filing profile: the per-session choices that parameterize the rule tables."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from taxline.tax.filing_status import SPOUSE_STATUSES, FilingStatus
from taxline.tax.rules import count_deduction_boxes


class TaxType(str, Enum):
    """Which return(s) the user is preparing."""

    FEDERAL_1040 = "federal-1040"
    FEDERAL_1040SR = "federal-1040sr"
    INDIANA = "indiana"
    COMBINED = "combined"

    @property
    def includes_federal(self) -> bool:
        return self is not TaxType.INDIANA

    @property
    def includes_indiana(self) -> bool:
        return self in (TaxType.INDIANA, TaxType.COMBINED)

    @property
    def form_type(self) -> str:
        """Federal form variant; 1040-SR only when explicitly chosen."""
        return "1040-SR" if self is TaxType.FEDERAL_1040SR else "1040"

    @property
    def form_title(self) -> str:
        return FORM_TITLES[self]


FORM_TITLES: dict[TaxType, str] = {
    TaxType.FEDERAL_1040: "IRS Form 1040",
    TaxType.FEDERAL_1040SR: "IRS Form 1040-SR",
    TaxType.INDIANA: "Indiana Form IT-40",
    TaxType.COMBINED: "IRS Federal 1040 & Indiana IT-40",
}


class AgeFlags(BaseModel):
    """Form 1040 line 12d checkboxes."""

    model_config = ConfigDict(frozen=True)

    self_65: bool = False
    self_blind: bool = False
    spouse_65: bool = False
    spouse_blind: bool = False

    @property
    def has_spouse_flags(self) -> bool:
        return self.spouse_65 or self.spouse_blind


class FilingProfile(BaseModel):
    """Immutable per-session selection made during intake.

    Changing any of these values mid-session is not supported; start a new
    session instead.
    """

    model_config = ConfigDict(frozen=True)

    tax_type: TaxType
    filing_status: FilingStatus | None = None
    age_flags: AgeFlags = Field(default_factory=AgeFlags)
    county: str | None = None
    county_rate: Decimal = Field(default=Decimal("0"), ge=0, le=10)

    @model_validator(mode="after")
    def check_consistency(self) -> "FilingProfile":
        """Validate cross-field rules of the profile."""
        if self.tax_type.includes_federal and self.filing_status is None:
            raise ValueError(f"filing_status is required for {self.tax_type.value}")
        if self.age_flags.has_spouse_flags and self.filing_status not in SPOUSE_STATUSES:
            raise ValueError(
                "spouse age/blind flags are only valid for married, qss, or mfs"
            )
        if not self.tax_type.includes_indiana and (self.county or self.county_rate):
            raise ValueError("county applies only to Indiana returns")
        return self

    @property
    def form_type(self) -> str:
        return self.tax_type.form_type

    @property
    def form_title(self) -> str:
        return self.tax_type.form_title

    @property
    def includes_federal(self) -> bool:
        return self.tax_type.includes_federal

    @property
    def includes_indiana(self) -> bool:
        return self.tax_type.includes_indiana

    @property
    def boxes_checked(self) -> int:
        """Applicable line 12d boxes for the standard deduction chart."""
        if self.filing_status is None:
            return 0
        return count_deduction_boxes(
            self.filing_status,
            self_65=self.age_flags.self_65,
            self_blind=self.age_flags.self_blind,
            spouse_65=self.age_flags.spouse_65,
            spouse_blind=self.age_flags.spouse_blind,
        )
