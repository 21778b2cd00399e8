"""Form graph engine for Form 1040 and Indiana IT-40.

This module provides:
- Field declarations and the dependency graph that recomputes them
- The Form 1040 / IT-40 line definitions for a filing profile
- Rendering, summaries and pre-filing checks
- Exported form state and Excel worksheet export
"""

from taxline.forms.export import build_return_workbook, workbook_bytes
from taxline.forms.fields import Balance, FieldKind, FieldSpec, Ledger, ValueType
from taxline.forms.graph import (
    DerivedFieldError,
    FormGraph,
    FormGraphError,
    GraphCycleError,
    ProfileMismatchError,
    UnknownFieldError,
)
from taxline.forms.lines import build_form_graph
from taxline.forms.presenter import FieldView, FormView, present
from taxline.forms.profile import AgeFlags, FilingProfile, TaxType
from taxline.forms.state import FormRecord, FormState
from taxline.forms.summary import (
    combined_summary,
    deduction_tip,
    federal_summary,
    live_totals,
    plain_english_summary,
    precheck,
)

__all__ = [
    # Profile
    "AgeFlags",
    "FilingProfile",
    "TaxType",
    # Graph
    "Balance",
    "FieldKind",
    "FieldSpec",
    "Ledger",
    "ValueType",
    "FormGraph",
    "FormGraphError",
    "UnknownFieldError",
    "DerivedFieldError",
    "GraphCycleError",
    "ProfileMismatchError",
    "build_form_graph",
    # State
    "FormState",
    "FormRecord",
    # Presentation
    "FieldView",
    "FormView",
    "present",
    "federal_summary",
    "combined_summary",
    "live_totals",
    "plain_english_summary",
    "precheck",
    "deduction_tip",
    # Export
    "build_return_workbook",
    "workbook_bytes",
]
