"""Line definitions for Form 1040 and Indiana IT-40.

`build_form_graph` assembles the field set and derivations for a filing
profile. Federal ledgers are always present; the Indiana ledger is added when
the tax type includes Indiana. In combined mode federal AGI feeds IT-40
line 1; in Indiana-only mode that line is an ordinary input.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from taxline.core.config import settings
from taxline.core.logging import get_logger
from taxline.forms.fields import Balance, FieldKind, FieldSpec, Ledger, ValueType
from taxline.forms.graph import ZERO, Derivation, FormGraph, Outcome
from taxline.forms.profile import FilingProfile, TaxType
from taxline.tax.rules import (
    count_deduction_boxes,
    federal_tax,
    indiana_county_tax,
    indiana_state_tax,
    standard_deduction,
)
from taxline.tax.year_config import TaxYearConfig, get_tax_year_config

logger = get_logger(__name__)

LEAF = FieldKind.LEAF
DERIVED = FieldKind.DERIVED

WAGE_LINES = ("line1a", "line1b", "line1c", "line1d", "line1e", "line1f", "line1g", "line1h")
INCOME_LINES = ("line1z", "line2b", "line3b", "line4b", "line5b", "line6b", "line7", "line8")
WITHHOLDING_LINES = ("line25a", "line25b", "line25c")
OTHER_PAYMENT_LINES = ("line26", "line27", "line28", "line29", "line30", "line31")
ITEMIZED_LINES = (
    "itemized_medical",
    "itemized_state_taxes",
    "itemized_mortgage",
    "itemized_charitable",
)

AGE_FLAG_FIELDS = {
    "self_65": "line12d_self_65",
    "self_blind": "line12d_self_blind",
    "spouse_65": "line12d_spouse_65",
    "spouse_blind": "line12d_spouse_blind",
}

# Tri-state fields and the section shown for each outcome
BALANCE_SECTIONS = {
    "balance_due": ("refundSection", "owedSection"),
    "in_line16": ("indianaRefundSection", "indianaOwedSection"),
}


# =============================================================================
# Field tables
# =============================================================================

_INCOME_FIELDS: tuple[tuple[str, str, FieldKind], ...] = (
    ("line1a", "Total amount from Form(s) W-2, box 1", LEAF),
    ("line1b", "Household employee wages not reported on Form(s) W-2", LEAF),
    ("line1c", "Tip income not reported on line 1a", LEAF),
    ("line1d", "Medicaid waiver payments not reported on Form(s) W-2", LEAF),
    ("line1e", "Taxable dependent care benefits from Form 2441", LEAF),
    ("line1f", "Employer-provided adoption benefits from Form 8839", LEAF),
    ("line1g", "Wages from Form 8919", LEAF),
    ("line1h", "Other earned income", LEAF),
    ("line1z", "Total wages (lines 1a through 1h)", DERIVED),
    ("line2a", "Tax-exempt interest", LEAF),
    ("line2b", "Taxable interest", LEAF),
    ("line3a", "Qualified dividends", LEAF),
    ("line3b", "Ordinary dividends", LEAF),
    ("line4a", "IRA distributions", LEAF),
    ("line4b", "IRA distributions, taxable amount", LEAF),
    ("line5a", "Pensions and annuities", LEAF),
    ("line5b", "Pensions and annuities, taxable amount", LEAF),
    ("line6a", "Social security benefits", LEAF),
    ("line6b", "Social security benefits, taxable amount", LEAF),
    ("line7", "Capital gain or (loss)", LEAF),
    ("line8", "Additional income from Schedule 1", LEAF),
    ("line9", "Total income", DERIVED),
    ("line10", "Adjustments to income from Schedule 1", LEAF),
    ("line11a", "Adjusted gross income", DERIVED),
)

_DEDUCTION_FIELDS: tuple[tuple[str, str, FieldKind], ...] = (
    ("line11b", "Amount from line 11a (adjusted gross income)", DERIVED),
    ("line12e", "Standard deduction", DERIVED),
    ("itemized_medical", "Medical and dental expenses", LEAF),
    ("itemized_state_taxes", "State and local taxes", LEAF),
    ("itemized_mortgage", "Home mortgage interest", LEAF),
    ("itemized_charitable", "Gifts to charity", LEAF),
    ("itemized_total", "Total itemized deductions (Schedule A)", DERIVED),
    ("line12", "Standard deduction or itemized deductions", DERIVED),
    ("line13a", "Qualified business income deduction", LEAF),
    ("line13b", "Additional deductions from Schedule 1-A", LEAF),
    ("line14", "Total deductions", DERIVED),
    ("line15", "Taxable income", DERIVED),
    ("line16", "Tax", DERIVED),
    ("line17", "Amount from Schedule 2, line 3", LEAF),
    ("line18", "Add lines 16 and 17", DERIVED),
    ("line19", "Child tax credit or credit for other dependents", LEAF),
    ("line20", "Amount from Schedule 3, line 8", LEAF),
    ("line21", "Total credits", DERIVED),
    ("line22", "Tax after credits", DERIVED),
    ("line23", "Other taxes, including self-employment tax", LEAF),
    ("line24", "Total tax", DERIVED),
)

_FLAG_FIELDS: tuple[tuple[str, str], ...] = (
    ("line12d_self_65", "You were born before January 2, 1961"),
    ("line12d_self_blind", "You are blind"),
    ("line12d_spouse_65", "Spouse was born before January 2, 1961"),
    ("line12d_spouse_blind", "Spouse is blind"),
    ("itemize", "Itemize deductions on Schedule A"),
)

_PAYMENT_FIELDS: tuple[tuple[str, str, FieldKind], ...] = (
    ("line25a", "Federal income tax withheld from Form(s) W-2", LEAF),
    ("line25b", "Federal income tax withheld from Form(s) 1099", LEAF),
    ("line25c", "Federal income tax withheld from other forms", LEAF),
    ("line25d", "Total federal income tax withheld", DERIVED),
    ("line26", "2025 estimated tax payments", LEAF),
    ("line27", "Earned income credit", LEAF),
    ("line28", "Additional child tax credit", LEAF),
    ("line29", "American opportunity credit", LEAF),
    ("line30", "Refundable adoption credit", LEAF),
    ("line31", "Amount from Schedule 3, line 15", LEAF),
    ("line32", "Total other payments and refundable credits", DERIVED),
    ("line33", "Total payments", DERIVED),
    ("balance_due", "Total payments minus total tax", DERIVED),
    ("line34", "Amount overpaid", DERIVED),
    ("line36", "Overpayment applied to 2026 estimated tax", LEAF),
    ("line35a", "Amount refunded to you", DERIVED),
    ("line37", "Amount you owe", DERIVED),
)

_INDIANA_FIELDS: tuple[tuple[str, str, FieldKind], ...] = (
    ("in_line1", "Federal adjusted gross income", DERIVED),
    ("in_line2", "Indiana add-backs (Schedule 1)", LEAF),
    ("in_line3", "Add lines 1 and 2", DERIVED),
    ("in_line4", "Indiana deductions (Schedule 2)", LEAF),
    ("in_line5", "Subtract line 4 from line 3", DERIVED),
    ("in_line6", "Exemptions", LEAF),
    ("in_line7", "Indiana adjusted gross income", DERIVED),
    ("in_line8", "State adjusted gross income tax", DERIVED),
    ("in_line9", "County tax", DERIVED),
    ("in_line10", "Other taxes", LEAF),
    ("in_line11", "Total tax", DERIVED),
    ("in_line12", "Credits", LEAF),
    ("in_line13", "Withholding and estimated payments", LEAF),
    ("in_line14", "Total credits and payments", DERIVED),
    ("in_line15", "Total tax from line 11", DERIVED),
    ("in_line16", "Overpayment (line 14 minus line 15)", DERIVED),
    ("in_line17", "Donations", LEAF),
    ("in_line18", "Subtract line 17 from line 16", DERIVED),
    ("in_line19", "Refund applied to 2026 estimated tax", LEAF),
    ("in_line20", "Other amounts applied", LEAF),
    ("in_line21", "Refund", DERIVED),
    ("in_line23", "Amount owed", DERIVED),
    ("in_line24", "Penalty", LEAF),
    ("in_line25", "Interest", LEAF),
    ("in_line26", "Total amount due", DERIVED),
)


# =============================================================================
# Derivation helpers
# =============================================================================


def total(target: str, *field_ids: str) -> Derivation:
    """target = sum of field_ids, unclamped."""

    def compute(values: Mapping[str, Decimal]) -> Decimal:
        return sum((values[fid] for fid in field_ids), ZERO)

    return Derivation(target, tuple(field_ids), compute)


def clamped_difference(target: str, minuend: str, *subtrahends: str) -> Derivation:
    """target = max(0, minuend - sum(subtrahends))."""

    def compute(values: Mapping[str, Decimal]) -> Decimal:
        result = values[minuend] - sum((values[fid] for fid in subtrahends), ZERO)
        return max(ZERO, result)

    return Derivation(target, (minuend, *subtrahends), compute)


def copy_of(target: str, source: str) -> Derivation:
    """target = source."""
    return Derivation(target, (source,), lambda values: values[source])


def balance(target: str, credits: str, liability: str) -> Derivation:
    """target = credits - liability, with a surplus/deficit/exact signal."""

    def compute(values: Mapping[str, Decimal]) -> Outcome:
        amount = values[credits] - values[liability]
        return Outcome(amount, Balance.of(amount))

    return Derivation(target, (credits, liability), compute)


# =============================================================================
# Builders
# =============================================================================


def _specs(
    rows: tuple[tuple[str, str, FieldKind], ...], ledger: Ledger
) -> list[FieldSpec]:
    return [FieldSpec(fid, label, ledger, kind) for fid, label, kind in rows]


def _federal_fields() -> list[FieldSpec]:
    deduction_specs = _specs(_DEDUCTION_FIELDS, Ledger.DEDUCTIONS)
    flag_specs = [
        FieldSpec(fid, label, Ledger.DEDUCTIONS, LEAF, ValueType.FLAG)
        for fid, label in _FLAG_FIELDS
    ]
    return [
        *_specs(_INCOME_FIELDS, Ledger.INCOME),
        deduction_specs[0],
        *flag_specs,
        *deduction_specs[1:],
        *_specs(_PAYMENT_FIELDS, Ledger.PAYMENTS),
    ]


def _federal_derivations(
    profile: FilingProfile, config: TaxYearConfig
) -> list[Derivation]:
    status = profile.filing_status

    def standard_deduction_line(values: Mapping[str, Decimal]) -> Decimal:
        if status is None:
            logger.warning("standard_deduction_without_filing_status")
            return ZERO
        boxes = count_deduction_boxes(
            status,
            **{flag: values[fid] != ZERO for flag, fid in AGE_FLAG_FIELDS.items()},
        )
        return standard_deduction(status, boxes, config)

    def deduction_used(values: Mapping[str, Decimal]) -> Decimal:
        if values["itemize"] != ZERO:
            return values["itemized_total"]
        return values["line12e"]

    def tax_line(values: Mapping[str, Decimal]) -> Decimal:
        if status is None:
            logger.warning("federal_tax_without_filing_status")
            return ZERO
        return federal_tax(values["line15"], status, config)

    def amount_owed(values: Mapping[str, Decimal]) -> Decimal:
        return max(ZERO, -values["balance_due"])

    return [
        total("line1z", *WAGE_LINES),
        total("line9", *INCOME_LINES),
        clamped_difference("line11a", "line9", "line10"),
        copy_of("line11b", "line11a"),
        Derivation("line12e", tuple(AGE_FLAG_FIELDS.values()), standard_deduction_line),
        total("itemized_total", *ITEMIZED_LINES),
        Derivation("line12", ("line12e", "itemized_total", "itemize"), deduction_used),
        total("line14", "line12", "line13a", "line13b"),
        clamped_difference("line15", "line11b", "line14"),
        Derivation("line16", ("line15",), tax_line),
        total("line18", "line16", "line17"),
        total("line21", "line19", "line20"),
        clamped_difference("line22", "line18", "line21"),
        total("line24", "line22", "line23"),
        total("line25d", *WITHHOLDING_LINES),
        total("line32", *OTHER_PAYMENT_LINES),
        total("line33", "line25d", "line32"),
        balance("balance_due", "line33", "line24"),
        Derivation("line34", ("balance_due",), lambda v: max(ZERO, v["balance_due"])),
        clamped_difference("line35a", "line34", "line36"),
        Derivation("line37", ("balance_due",), amount_owed),
    ]


def _indiana_fields(profile: FilingProfile) -> list[FieldSpec]:
    specs = _specs(_INDIANA_FIELDS, Ledger.INDIANA)
    if profile.tax_type is TaxType.INDIANA:
        # No federal return feeds line 1; the user enters federal AGI.
        specs[0] = FieldSpec("in_line1", specs[0].label, Ledger.INDIANA, LEAF)
    return specs


def _indiana_derivations(
    profile: FilingProfile, state_rate: Decimal
) -> list[Derivation]:
    county_rate = profile.county_rate
    derivations = [
        total("in_line3", "in_line1", "in_line2"),
        clamped_difference("in_line5", "in_line3", "in_line4"),
        clamped_difference("in_line7", "in_line5", "in_line6"),
        Derivation(
            "in_line8", ("in_line7",), lambda v: indiana_state_tax(v["in_line7"], state_rate)
        ),
        Derivation(
            "in_line9",
            ("in_line7",),
            lambda v: indiana_county_tax(v["in_line7"], county_rate),
        ),
        total("in_line11", "in_line8", "in_line9", "in_line10"),
        total("in_line14", "in_line12", "in_line13"),
        copy_of("in_line15", "in_line11"),
        balance("in_line16", "in_line14", "in_line15"),
        clamped_difference("in_line18", "in_line16", "in_line17"),
        clamped_difference("in_line21", "in_line18", "in_line19", "in_line20"),
        clamped_difference("in_line23", "in_line15", "in_line14"),
        total("in_line26", "in_line23", "in_line24", "in_line25"),
    ]
    if profile.tax_type is TaxType.COMBINED:
        derivations.insert(0, copy_of("in_line1", "line11a"))
    return derivations


def build_form_graph(
    profile: FilingProfile,
    config: TaxYearConfig | None = None,
    indiana_state_rate: Decimal | None = None,
) -> FormGraph:
    """Build the form graph for a filing profile.

    Age/blind checkboxes start from the profile's age flags.

    Args:
        profile: Filing profile chosen at intake.
        config: Year tables. Defaults to the configured tax year.
        indiana_state_rate: Indiana flat rate. Defaults to settings.

    Returns:
        FormGraph with all derived values computed from zeroed inputs.
    """
    config = config or get_tax_year_config(settings.tax_year)
    state_rate = (
        indiana_state_rate
        if indiana_state_rate is not None
        else settings.indiana_state_rate
    )

    fields = _federal_fields()
    derivations = _federal_derivations(profile, config)
    if profile.includes_indiana:
        fields.extend(_indiana_fields(profile))
        derivations.extend(_indiana_derivations(profile, state_rate))

    graph = FormGraph(profile, fields, derivations)
    graph.update_many(
        {
            fid: getattr(profile.age_flags, flag)
            for flag, fid in AGE_FLAG_FIELDS.items()
        }
    )
    logger.debug(
        "form_graph_built",
        tax_type=profile.tax_type.value,
        fields=len(fields),
        derivations=len(derivations),
    )
    return graph
