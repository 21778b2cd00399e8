"""Tax year-specific constants and rule tables.

This module centralizes the values that change every filing season: the
standard deduction chart, the marginal brackets used below the worksheet
threshold, the Tax Computation Worksheet bands used at or above it, and the
Indiana flat rate.

Example:
    >>> from taxline.tax.year_config import get_tax_year_config
    >>> config = get_tax_year_config(2025)
    >>> print(config.worksheet_threshold)
    100000
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from taxline.tax.filing_status import FilingStatus

# (upper_bound, rate); None means no upper limit
Bracket = tuple[Decimal | None, Decimal]


@dataclass(frozen=True)
class WorksheetBand:
    """One row of the Tax Computation Worksheet.

    Attributes:
        lower: Inclusive lower bound of taxable income.
        upper: Exclusive upper bound, or None for the top band.
        rate: Multiplication rate applied to the full taxable income.
        subtraction: Amount subtracted from the product.
    """

    lower: Decimal
    upper: Decimal | None
    rate: Decimal
    subtraction: Decimal

    def contains(self, taxable_income: Decimal) -> bool:
        """Return True when taxable_income falls inside this band."""
        if taxable_income < self.lower:
            return False
        return self.upper is None or taxable_income < self.upper


@dataclass(frozen=True)
class TaxYearConfig:
    """Tax year-specific rule tables.

    All monetary values are Decimal for precision in tax calculations.
    This dataclass is frozen to prevent accidental modification.

    Attributes:
        tax_year: The tax year these values apply to.
        standard_deduction_chart: Deduction amounts indexed by boxes checked.
        marginal_brackets: Bracket sets used below the worksheet threshold.
        worksheet_bands: Closed-form bands used at or above the threshold.
        worksheet_threshold: Taxable income where the worksheet takes over.
        indiana_state_rate: Indiana flat income tax rate.
    """

    tax_year: int
    standard_deduction_chart: dict[FilingStatus, tuple[Decimal, ...]]
    marginal_brackets: dict[FilingStatus, tuple[Bracket, ...]]
    worksheet_bands: dict[FilingStatus, tuple[WorksheetBand, ...]]
    worksheet_threshold: Decimal = Decimal("100000")
    indiana_state_rate: Decimal = Decimal("0.03")


def _bands(*rows: tuple[str, str | None, str, str]) -> tuple[WorksheetBand, ...]:
    return tuple(
        WorksheetBand(
            lower=Decimal(lower),
            upper=Decimal(upper) if upper is not None else None,
            rate=Decimal(rate),
            subtraction=Decimal(subtraction),
        )
        for lower, upper, rate, subtraction in rows
    )


# =============================================================================
# 2025
# =============================================================================

_MARRIED_CHART_2025 = tuple(
    Decimal(amount) for amount in ("31500", "33100", "34700", "36300", "37900")
)

_SINGLE_BRACKETS_2025: tuple[Bracket, ...] = (
    (Decimal("11925"), Decimal("0.10")),
    (Decimal("48475"), Decimal("0.12")),
    (None, Decimal("0.22")),
)

_MARRIED_BRACKETS_2025: tuple[Bracket, ...] = (
    (Decimal("23850"), Decimal("0.10")),
    (Decimal("96950"), Decimal("0.12")),
    (None, Decimal("0.22")),
)

_HOH_BRACKETS_2025: tuple[Bracket, ...] = (
    (Decimal("17000"), Decimal("0.10")),
    (Decimal("64850"), Decimal("0.12")),
    (None, Decimal("0.22")),
)

_SINGLE_BANDS_2025 = _bands(
    ("100000", "103350", "0.22", "5086"),
    ("103350", "197300", "0.24", "7153"),
    ("197300", "250525", "0.32", "22937"),
    ("250525", "626350", "0.35", "30452.75"),
    ("626350", None, "0.37", "42979.75"),
)

_MARRIED_BANDS_2025 = _bands(
    ("100000", "206700", "0.22", "10172"),
    ("206700", "394600", "0.24", "14306"),
    ("394600", "501050", "0.32", "45874"),
    ("501050", "751600", "0.35", "60905.50"),
    ("751600", None, "0.37", "75937.50"),
)

TAX_YEAR_2025 = TaxYearConfig(
    tax_year=2025,
    standard_deduction_chart={
        FilingStatus.SINGLE: tuple(Decimal(a) for a in ("15750", "17750", "19750")),
        FilingStatus.MARRIED: _MARRIED_CHART_2025,
        FilingStatus.QSS: _MARRIED_CHART_2025,
        FilingStatus.HOH: tuple(Decimal(a) for a in ("23625", "25625", "27625")),
        FilingStatus.MFS: tuple(
            Decimal(a) for a in ("15750", "17350", "18950", "20550", "22150")
        ),
    },
    marginal_brackets={
        FilingStatus.SINGLE: _SINGLE_BRACKETS_2025,
        FilingStatus.MFS: _SINGLE_BRACKETS_2025,
        FilingStatus.MARRIED: _MARRIED_BRACKETS_2025,
        FilingStatus.QSS: _MARRIED_BRACKETS_2025,
        FilingStatus.HOH: _HOH_BRACKETS_2025,
    },
    worksheet_bands={
        FilingStatus.SINGLE: _SINGLE_BANDS_2025,
        FilingStatus.MARRIED: _MARRIED_BANDS_2025,
        FilingStatus.QSS: _MARRIED_BANDS_2025,
        FilingStatus.HOH: _bands(
            ("100000", "103350", "0.22", "6825"),
            ("103350", "197300", "0.24", "8892"),
            ("197300", "250500", "0.32", "24676"),
            ("250500", "626350", "0.35", "32191"),
            ("626350", None, "0.37", "44718"),
        ),
        FilingStatus.MFS: _bands(
            ("100000", "103350", "0.22", "5086"),
            ("103350", "197300", "0.24", "7153"),
            ("197300", "250525", "0.32", "22937"),
            ("250525", "375800", "0.35", "30452.75"),
            ("375800", None, "0.37", "37968.75"),
        ),
    },
)

TAX_YEAR_CONFIGS: dict[int, TaxYearConfig] = {
    2025: TAX_YEAR_2025,
}

DEFAULT_TAX_YEAR = 2025


def get_tax_year_config(tax_year: int = DEFAULT_TAX_YEAR) -> TaxYearConfig:
    """Get rule tables for a specific tax year.

    Args:
        tax_year: The tax year to get configuration for.

    Returns:
        TaxYearConfig for the specified year.

    Raises:
        ValueError: If tax year is not supported.
    """
    if tax_year not in TAX_YEAR_CONFIGS:
        supported = ", ".join(str(y) for y in sorted(TAX_YEAR_CONFIGS.keys()))
        raise ValueError(
            f"Tax year {tax_year} not supported. Supported years: {supported}"
        )
    return TAX_YEAR_CONFIGS[tax_year]
