"""Excel worksheet export of a prepared return.

Creates a workbook with a Summary sheet plus one sheet per form (Form 1040
and, when filed, Indiana IT-40) listing every line for manual transcription
or review.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from taxline.forms.fields import Ledger
from taxline.forms.graph import FormGraph
from taxline.forms.summary import combined_summary, federal_summary

CURRENCY_FORMAT = '"$"#,##0.00'
HEADER_FILL = PatternFill(start_color="DAEEF3", end_color="DAEEF3", fill_type="solid")
_THIN = Side(style="thin", color="000000")
HEADER_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)

FEDERAL_LEDGERS = (Ledger.INCOME, Ledger.DEDUCTIONS, Ledger.PAYMENTS)


def _format_decimal(value: Decimal) -> float:
    """Convert Decimal to float for Excel."""
    return float(value)


def _style_header_row(ws: Worksheet, columns: int) -> None:
    for col in range(1, columns + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center", wrap_text=True)
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _auto_fit_columns(ws: Worksheet) -> None:
    """Size each column to its longest value, capped at 60 characters."""
    for column_cells in ws.columns:
        longest = max((len(str(cell.value)) for cell in column_cells if cell.value), default=0)
        ws.column_dimensions[column_cells[0].column_letter].width = min(longest + 2, 60)


def _add_summary_sheet(workbook: Workbook, graph: FormGraph, user_name: str | None) -> None:
    profile = graph.profile
    ws = workbook.active
    ws.title = "Summary"

    ws["A1"] = profile.form_title
    ws["A1"].font = Font(bold=True, size=14)
    ws["A2"] = f"Prepared for: {user_name}" if user_name else "Prepared for: (not signed in)"
    ws["A3"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"

    row = 5
    details = [
        ("Form type", profile.form_type),
        ("Filing status", profile.filing_status.label if profile.filing_status else "N/A"),
    ]
    if profile.includes_indiana:
        details.append(("Indiana county", f"{profile.county or 'N/A'} ({profile.county_rate}%)"))
    for label, value in details:
        ws[f"A{row}"] = label
        ws[f"B{row}"] = value
        row += 1

    row += 1
    ws[f"A{row}"] = "Federal"
    ws[f"A{row}"].font = Font(bold=True)
    row += 1
    summary = federal_summary(graph)
    amounts = [
        ("Total income", summary.total_income),
        ("Total deductions", summary.total_deductions),
        ("Taxable income", summary.taxable_income),
        ("Total tax", summary.total_tax),
        ("Total payments", summary.total_payments),
        (summary.label, abs(summary.final_amount)),
    ]

    if profile.includes_indiana:
        combined = combined_summary(graph)
        amounts.extend(
            [
                ("Indiana tax", combined.indiana_tax),
                ("Total tax liability", combined.total_tax),
                ("Total credits and payments", combined.total_credits),
                (combined.label, abs(combined.final_amount)),
            ]
        )

    for label, amount in amounts:
        ws[f"A{row}"] = label
        ws[f"B{row}"] = _format_decimal(amount)
        ws[f"B{row}"].number_format = CURRENCY_FORMAT
        row += 1

    for cell in (ws[f"A{row - 1}"], ws[f"B{row - 1}"]):
        cell.font = Font(bold=True)
    _auto_fit_columns(ws)


def _add_form_sheet(
    workbook: Workbook, graph: FormGraph, title: str, ledgers: tuple[Ledger, ...]
) -> None:
    ws = workbook.create_sheet(title)
    headers = ["Line", "Description", "Amount", "Computed"]
    for col, header in enumerate(headers, start=1):
        ws.cell(row=1, column=col, value=header)
    _style_header_row(ws, len(headers))

    row = 2
    for spec in graph.fields:
        if spec.ledger not in ledgers:
            continue
        value = graph.value(spec.field_id)
        ws.cell(row=row, column=1, value=spec.field_id)
        ws.cell(row=row, column=2, value=spec.label)
        if spec.is_flag:
            ws.cell(row=row, column=3, value="X" if value else None)
        else:
            ws.cell(row=row, column=3, value=_format_decimal(value))
            ws.cell(row=row, column=3).number_format = CURRENCY_FORMAT
        ws.cell(row=row, column=4, value="yes" if spec.is_derived else None)
        row += 1

    ws.freeze_panes = "A2"
    _auto_fit_columns(ws)


def build_return_workbook(graph: FormGraph, user_name: str | None = None) -> Workbook:
    """Build the workbook for a return.

    Args:
        graph: Computed form graph.
        user_name: Taxpayer name for the header, if known.

    Returns:
        openpyxl Workbook with Summary, Form 1040 and (optionally) IT-40 sheets.
    """
    workbook = Workbook()
    _add_summary_sheet(workbook, graph, user_name)
    if graph.profile.includes_federal:
        _add_form_sheet(workbook, graph, f"Form {graph.profile.form_type}", FEDERAL_LEDGERS)
    if graph.profile.includes_indiana:
        _add_form_sheet(workbook, graph, "IT-40", (Ledger.INDIANA,))
    return workbook


def workbook_bytes(graph: FormGraph, user_name: str | None = None) -> bytes:
    """Serialize the return workbook to xlsx bytes."""
    buffer = BytesIO()
    build_return_workbook(graph, user_name).save(buffer)
    return buffer.getvalue()


def generate_return_worksheet(
    graph: FormGraph, output_path: Path, user_name: str | None = None
) -> Path:
    """Write the return workbook to disk.

    Args:
        graph: Computed form graph.
        output_path: Where to save the xlsx file.
        user_name: Taxpayer name for the header, if known.

    Returns:
        Path to generated file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    build_return_workbook(graph, user_name).save(output_path)
    return output_path
