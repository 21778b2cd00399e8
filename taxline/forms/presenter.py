"""Presentation adapter: formatting and section visibility.

The form graph stores Decimal amounts only. This module is the single place
that knows how a value is shown: editable inputs as plain decimals
("1234.50"), computed lines as thousands-grouped currency text
("1,234.50"), and tri-state signals as visible/hidden sections.
"""

from collections.abc import Iterable
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel

from taxline.forms.fields import Balance, FieldSpec, Ledger
from taxline.forms.graph import FormGraph
from taxline.forms.lines import BALANCE_SECTIONS


class DisplayStyle(str, Enum):
    """How a field is rendered."""

    PLAIN = "plain"  # editable numeric input
    CURRENCY = "currency"  # read-only computed value
    CHECKBOX = "checkbox"


def format_plain(amount: Decimal) -> str:
    """Plain two-decimal text, e.g. "1234.50"."""
    return f"{amount:.2f}"


def format_currency(amount: Decimal) -> str:
    """Thousands-grouped two-decimal text, e.g. "1,234.50"."""
    return f"{amount:,.2f}"


def format_dollars(amount: Decimal) -> str:
    """Currency text with a dollar sign, e.g. "$1,234.50" or "-$20.00"."""
    if amount < 0:
        return f"-${format_currency(-amount)}"
    return f"${format_currency(amount)}"


class FieldView(BaseModel):
    """One rendered field."""

    field_id: str
    label: str
    ledger: Ledger
    value: str
    display: DisplayStyle
    editable: bool


class FormView(BaseModel):
    """Rendered form: every field plus section visibility."""

    form_title: str
    form_type: str
    tax_type: str
    filing_status: str | None
    fields: list[FieldView]
    sections: dict[str, bool]

    def field(self, field_id: str) -> FieldView:
        for view in self.fields:
            if view.field_id == field_id:
                return view
        raise KeyError(field_id)


def present_field(graph: FormGraph, spec: FieldSpec) -> FieldView:
    """Render one field according to its kind."""
    value = graph.value(spec.field_id)
    if spec.is_flag:
        display, text = DisplayStyle.CHECKBOX, "1" if value else "0"
    elif spec.is_derived:
        display, text = DisplayStyle.CURRENCY, format_currency(value)
    else:
        display, text = DisplayStyle.PLAIN, format_plain(value)
    return FieldView(
        field_id=spec.field_id,
        label=spec.label,
        ledger=spec.ledger,
        value=text,
        display=display,
        editable=not spec.is_derived,
    )


def section_visibility(graph: FormGraph) -> dict[str, bool]:
    """Decide which optional sections of the form are shown.

    For each balance field, the refund section shows on a surplus, the owed
    section on a deficit, and neither when payments exactly equal tax.
    """
    profile = graph.profile
    sections = {
        "federalSection": profile.includes_federal,
        "indianaSection": profile.includes_indiana,
        "itemizedDeductionsSection": graph.value("itemize") != 0,
    }
    for field_id, (refund_section, owed_section) in BALANCE_SECTIONS.items():
        signal = graph.signal(field_id) if graph.has_field(field_id) else None
        sections[refund_section] = signal is Balance.SURPLUS
        sections[owed_section] = signal is Balance.DEFICIT
    return sections


def present(graph: FormGraph, field_ids: Iterable[str] | None = None) -> FormView:
    """Render the form, optionally limited to a subset of fields.

    Args:
        graph: Form graph to render.
        field_ids: Only render these fields (e.g. the ids returned by
            recompute). Renders every field when omitted.

    Returns:
        FormView with formatted values and section visibility.
    """
    wanted = set(field_ids) if field_ids is not None else None
    profile = graph.profile
    return FormView(
        form_title=profile.form_title,
        form_type=profile.form_type,
        tax_type=profile.tax_type.value,
        filing_status=profile.filing_status.value if profile.filing_status else None,
        fields=[
            present_field(graph, spec)
            for spec in graph.fields
            if wanted is None or spec.field_id in wanted
        ],
        sections=section_visibility(graph),
    )
