"""Federal and Indiana rule computations.

Pure functions over the year tables in `taxline.tax.year_config`:
- standard_deduction: chart lookup by filing status and boxes checked
- federal_tax: marginal brackets below the worksheet threshold, the
  Tax Computation Worksheet at or above it
- indiana_state_tax / indiana_county_tax: flat rate plus county surtax
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from taxline.core.logging import get_logger
from taxline.tax.filing_status import FilingStatus, coerce_filing_status
from taxline.tax.year_config import TAX_YEAR_2025, Bracket, TaxYearConfig

logger = get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
WHOLE_DOLLAR = Decimal("1")


class RuleTableError(Exception):
    """Raised when a rule table has no entry for the requested key."""


# =============================================================================
# Standard deduction
# =============================================================================


def count_deduction_boxes(
    filing_status: FilingStatus | str,
    *,
    self_65: bool = False,
    self_blind: bool = False,
    spouse_65: bool = False,
    spouse_blind: bool = False,
) -> int:
    """Count the line 12d age/blind boxes that apply to the filing status.

    Spouse boxes only count for married, qss, and mfs filers.

    Args:
        filing_status: Filing status of the return.
        self_65: Taxpayer born before January 2, 1961.
        self_blind: Taxpayer is blind.
        spouse_65: Spouse born before January 2, 1961.
        spouse_blind: Spouse is blind.

    Returns:
        Number of applicable boxes (0-4).
    """
    status = coerce_filing_status(filing_status)
    boxes = int(bool(self_65)) + int(bool(self_blind))
    if status is not None and status.counts_spouse_boxes:
        boxes += int(bool(spouse_65)) + int(bool(spouse_blind))
    return boxes


def standard_deduction(
    filing_status: FilingStatus | str,
    boxes_checked: int = 0,
    config: TaxYearConfig = TAX_YEAR_2025,
) -> Decimal:
    """Look up the standard deduction from the chart.

    Args:
        filing_status: Filing status of the return.
        boxes_checked: Number of applicable age/blind boxes.
        config: Year tables to use.

    Returns:
        Standard deduction amount.

    Raises:
        RuleTableError: If the status is unknown or the count is out of range.

    Example:
        >>> standard_deduction("married", 4)
        Decimal('37900')
    """
    status = coerce_filing_status(filing_status)
    if status is None:
        raise RuleTableError(f"No standard deduction chart for status: {filing_status}")

    row = config.standard_deduction_chart[status]
    if boxes_checked < 0 or boxes_checked >= len(row):
        raise RuleTableError(
            f"Box count {boxes_checked} out of range for {status.value} "
            f"(0-{len(row) - 1})"
        )
    return row[boxes_checked]


# =============================================================================
# Federal tax
# =============================================================================


def marginal_tax(taxable_income: Decimal, brackets: tuple[Bracket, ...]) -> Decimal:
    """Accumulate tax across marginal brackets.

    Each rate applies only to the slice of income inside its bracket.

    Args:
        taxable_income: Income subject to tax.
        brackets: Ordered (upper_bound, rate) pairs; the last bound is None.

    Returns:
        Unrounded tax amount.
    """
    remaining_income = taxable_income
    gross_tax = ZERO
    prev_bracket = ZERO

    for upper_bound, rate in brackets:
        if remaining_income <= ZERO:
            break

        if upper_bound is None:
            bracket_size = remaining_income
        else:
            bracket_size = min(remaining_income, upper_bound - prev_bracket)

        gross_tax += bracket_size * rate
        remaining_income -= bracket_size
        if upper_bound is not None:
            prev_bracket = upper_bound

    return gross_tax


def federal_tax(
    taxable_income: Decimal,
    filing_status: FilingStatus | str | None,
    config: TaxYearConfig = TAX_YEAR_2025,
) -> Decimal:
    """Compute federal income tax on taxable income.

    Below the worksheet threshold the marginal brackets apply and the result
    is rounded to whole dollars. At or above it, the worksheet formula
    `income * rate - subtraction` applies and the result is left unrounded.

    Args:
        taxable_income: Form 1040 line 15.
        filing_status: Filing status of the return.
        config: Year tables to use.

    Returns:
        Non-negative tax amount.

    Example:
        >>> federal_tax(Decimal("150000"), "single")
        Decimal('28847.00')
    """
    status = coerce_filing_status(filing_status)

    if taxable_income < config.worksheet_threshold:
        if status is None:
            logger.warning(
                "unknown_filing_status_using_single_brackets",
                filing_status=str(filing_status),
            )
            status = FilingStatus.SINGLE
        tax = marginal_tax(taxable_income, config.marginal_brackets[status])
        return max(ZERO, tax.quantize(WHOLE_DOLLAR, rounding=ROUND_HALF_UP))

    bands = config.worksheet_bands.get(status) if status is not None else None
    if not bands:
        logger.error(
            "missing_tax_worksheet",
            filing_status=str(filing_status),
            taxable_income=str(taxable_income),
        )
        return ZERO

    for band in bands:
        if band.contains(taxable_income):
            return max(ZERO, taxable_income * band.rate - band.subtraction)

    logger.error(
        "no_worksheet_band_for_income",
        filing_status=status.value,
        taxable_income=str(taxable_income),
    )
    return ZERO


# =============================================================================
# Indiana
# =============================================================================


def indiana_state_tax(
    indiana_agi: Decimal, rate: Decimal = TAX_YEAR_2025.indiana_state_rate
) -> Decimal:
    """Indiana flat-rate tax (IT-40 line 8)."""
    return indiana_agi * rate


def indiana_county_tax(indiana_agi: Decimal, county_rate: Decimal) -> Decimal:
    """County income tax (IT-40 line 9).

    Args:
        indiana_agi: IT-40 line 7.
        county_rate: County rate as a percentage, e.g. 2.02 for Marion.

    Returns:
        County tax amount.
    """
    return indiana_agi * county_rate / HUNDRED
