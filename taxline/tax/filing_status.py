"""Federal filing statuses recognized by the rule tables."""

from enum import Enum


class FilingStatus(str, Enum):
    """Filing status selected during intake."""

    SINGLE = "single"
    MARRIED = "married"  # Married filing jointly
    QSS = "qss"  # Qualifying surviving spouse
    HOH = "hoh"  # Head of household
    MFS = "mfs"  # Married filing separately

    @property
    def label(self) -> str:
        """Human-readable name as printed on the return."""
        return FILING_STATUS_LABELS[self]

    @property
    def counts_spouse_boxes(self) -> bool:
        """Whether spouse age/blind boxes count toward the standard deduction."""
        return self in SPOUSE_STATUSES


FILING_STATUS_LABELS: dict[FilingStatus, str] = {
    FilingStatus.SINGLE: "Single",
    FilingStatus.MARRIED: "Married Filing Jointly",
    FilingStatus.QSS: "Qualifying Surviving Spouse",
    FilingStatus.HOH: "Head of Household",
    FilingStatus.MFS: "Married Filing Separately",
}

SPOUSE_STATUSES = frozenset({FilingStatus.MARRIED, FilingStatus.QSS, FilingStatus.MFS})


def coerce_filing_status(value: "FilingStatus | str | None") -> FilingStatus | None:
    """Convert a raw status value to FilingStatus.

    Args:
        value: Enum member, its string value, or None.

    Returns:
        Matching FilingStatus, or None when value is None or unrecognized.
    """
    if value is None or isinstance(value, FilingStatus):
        return value
    try:
        return FilingStatus(str(value).strip().lower())
    except ValueError:
        return None
