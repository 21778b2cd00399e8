"""Return summaries, pre-filing checks and the deduction optimizer.

Everything here reads computed field values from a FormGraph; nothing
writes back into it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from taxline.core.config import settings
from taxline.forms.graph import ZERO, FormGraph
from taxline.forms.presenter import format_dollars


@dataclass(frozen=True)
class ReturnSummary:
    """Federal summary of a return."""

    total_income: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    total_tax: Decimal
    total_payments: Decimal
    final_amount: Decimal

    @property
    def is_refund(self) -> bool:
        return self.final_amount > 0

    @property
    def label(self) -> str:
        return "Federal Refund" if self.is_refund else "Federal Tax Owed"


@dataclass(frozen=True)
class CombinedSummary:
    """Federal plus Indiana liability against all credits and payments."""

    federal_agi: Decimal
    federal_tax: Decimal
    indiana_tax: Decimal
    total_tax: Decimal
    total_credits: Decimal
    final_amount: Decimal

    @property
    def is_refund(self) -> bool:
        return self.final_amount > 0

    @property
    def label(self) -> str:
        if self.is_refund:
            return "Total Combined Refund"
        return "Total Combined Amount Owed"


@dataclass(frozen=True)
class LiveTotals:
    """Running totals shown beside the form while editing."""

    total_tax: Decimal
    total_payments: Decimal
    difference: Decimal

    @property
    def label(self) -> str:
        return "Refund" if self.difference >= 0 else "Amount Owed"


@dataclass(frozen=True)
class DeductionTip:
    """Suggestion comparing itemized deductions to the standard deduction."""

    itemized_total: Decimal
    standard_amount: Decimal
    recommend_itemizing: bool
    message: str


# =============================================================================
# Summaries
# =============================================================================


def federal_summary(graph: FormGraph) -> ReturnSummary:
    """Summarize the federal return (Form 1040 lines 9 through 33)."""
    return ReturnSummary(
        total_income=graph["line9"],
        total_deductions=graph["line14"],
        taxable_income=graph["line15"],
        total_tax=graph["line24"],
        total_payments=graph["line33"],
        final_amount=graph["line33"] - graph["line24"],
    )


def combined_summary(graph: FormGraph) -> CombinedSummary:
    """Summarize federal and Indiana liabilities together.

    Raises:
        ValueError: If the return does not include Indiana.
    """
    if not graph.profile.includes_indiana:
        raise ValueError("Combined summary requires an Indiana return")

    federal_tax = graph["line24"]
    indiana_tax = graph["in_line11"]
    total_tax = federal_tax + indiana_tax
    total_credits = graph["line33"] + graph["in_line14"]
    return CombinedSummary(
        federal_agi=graph["line11a"],
        federal_tax=federal_tax,
        indiana_tax=indiana_tax,
        total_tax=total_tax,
        total_credits=total_credits,
        final_amount=total_credits - total_tax,
    )


def live_totals(graph: FormGraph) -> LiveTotals:
    """Total tax (including Indiana when filed) against federal payments."""
    total_tax = graph["line24"]
    if graph.profile.includes_indiana:
        total_tax += graph["in_line11"]
    total_payments = graph["line33"]
    return LiveTotals(
        total_tax=total_tax,
        total_payments=total_payments,
        difference=total_payments - total_tax,
    )


def plain_english_summary(
    graph: FormGraph, indiana_state_rate: Decimal | None = None
) -> str:
    """Narrative description of the federal summary.

    Args:
        graph: Computed return.
        indiana_state_rate: Rate the graph was built with. Defaults to settings.
    """
    profile = graph.profile
    summary = federal_summary(graph)
    paragraphs: list[str] = ["Based on your entries, here's your tax summary:"]

    text = f"You reported {format_dollars(summary.total_income)} in total income. "
    if graph["itemize"] != ZERO:
        text += (
            f"You're itemizing deductions totaling "
            f"{format_dollars(summary.total_deductions)}. "
        )
    else:
        status_label = (
            profile.filing_status.label if profile.filing_status else "your status"
        )
        text += (
            f"You're taking the standard deduction total of "
            f"{format_dollars(summary.total_deductions)} ({status_label}). "
        )
    text += f"This brings your taxable income to {format_dollars(summary.taxable_income)}."
    paragraphs.append(text)

    taxes: list[str] = []
    if profile.includes_federal:
        taxes.append(f"Your estimated federal tax is {format_dollars(summary.total_tax)}.")
    if profile.includes_indiana:
        state_rate = (
            indiana_state_rate
            if indiana_state_rate is not None
            else settings.indiana_state_rate
        )
        taxes.append(
            f"Your Indiana state tax ({state_rate * 100:.2f}% + "
            f"{profile.county_rate}% county) is "
            f"{format_dollars(graph['in_line11'])}."
        )
    if taxes:
        paragraphs.append(" ".join(taxes))

    closing = (
        f"With all credits and withholding totaling "
        f"{format_dollars(summary.total_payments)}, "
    )
    if summary.is_refund:
        closing += f"you should receive a refund of {format_dollars(summary.final_amount)}!"
    else:
        closing += f"you owe {format_dollars(abs(summary.final_amount))}."
    paragraphs.append(closing)

    return "\n\n".join(paragraphs)


# =============================================================================
# Checks
# =============================================================================


def precheck(graph: FormGraph) -> list[str]:
    """Return warnings about likely omissions before filing.

    An empty list means all checks passed.
    """
    warnings: list[str] = []
    total_income = graph["line9"]

    if total_income == ZERO:
        warnings.append("No income reported. Make sure to enter all sources of income.")

    if graph["line1z"] == ZERO and total_income > ZERO:
        warnings.append(
            "You have income but no wages. This is fine if you're retired or "
            "self-employed."
        )

    if graph["line25d"] == ZERO and graph.profile.includes_federal:
        warnings.append(
            "No federal withholding entered. If you had taxes withheld from "
            "paychecks, make sure to enter this amount."
        )

    itemized = graph["itemized_total"]
    standard = graph["line12e"]
    if graph["itemize"] != ZERO and itemized < standard:
        warnings.append(
            f"Your itemized deductions ({format_dollars(itemized)}) are less than "
            f"the standard deduction ({format_dollars(standard)}). Consider using "
            "the standard deduction instead."
        )

    return warnings


def deduction_tip(graph: FormGraph) -> DeductionTip | None:
    """Compare itemized deductions with the standard deduction.

    Returns None when there is no AGI yet or nothing has been itemized.
    """
    if graph["line11a"] == ZERO:
        return None

    itemized = graph["itemized_total"]
    standard = graph["line12e"]
    if itemized > standard:
        return DeductionTip(
            itemized_total=itemized,
            standard_amount=standard,
            recommend_itemizing=True,
            message=(
                f"Your Itemized Deductions ({format_dollars(itemized)}) are currently "
                f"greater than your Standard Deduction ({format_dollars(standard)}). "
                "You should consider itemizing!"
            ),
        )
    if itemized > ZERO:
        return DeductionTip(
            itemized_total=itemized,
            standard_amount=standard,
            recommend_itemizing=False,
            message=(
                f"Your Standard Deduction ({format_dollars(standard)}) is still "
                f"better than itemizing ({format_dollars(itemized)}). We'll keep "
                "using the Standard amount."
            ),
        )
    return None
