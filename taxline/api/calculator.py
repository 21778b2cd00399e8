"""Calculation, worksheet export and county endpoints.

The API is stateless: each request builds a form graph from the submitted
profile and inputs, computes it, and returns the rendered form.
"""

from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field, ValidationError

from taxline.api.deps import get_counties
from taxline.core.logging import get_logger, tax_type_ctx
from taxline.forms.export import workbook_bytes
from taxline.forms.graph import FormGraph, FormGraphError
from taxline.forms.lines import build_form_graph
from taxline.forms.presenter import FormView, present
from taxline.forms.profile import AgeFlags, FilingProfile, TaxType
from taxline.forms.summary import (
    combined_summary,
    deduction_tip,
    federal_summary,
    live_totals,
    plain_english_summary,
    precheck,
)
from taxline.tax.counties import CountyTable, CountyTableError
from taxline.tax.filing_status import FilingStatus

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["calculator"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ProfileRequest(BaseModel):
    """Intake choices; the county rate is looked up from the county table."""

    tax_type: TaxType
    filing_status: FilingStatus | None = None
    age_flags: AgeFlags = Field(default_factory=AgeFlags)
    county: str | None = None


class CalculateRequest(BaseModel):
    """Profile plus raw leaf inputs keyed by field id."""

    profile: ProfileRequest
    inputs: dict[str, Any] = Field(default_factory=dict)
    user_name: str | None = None


class FederalSummaryResponse(BaseModel):
    total_income: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    total_tax: Decimal
    total_payments: Decimal
    final_amount: Decimal
    label: str


class CombinedSummaryResponse(BaseModel):
    federal_agi: Decimal
    federal_tax: Decimal
    indiana_tax: Decimal
    total_tax: Decimal
    total_credits: Decimal
    final_amount: Decimal
    label: str


class LiveTotalsResponse(BaseModel):
    total_tax: Decimal
    total_payments: Decimal
    difference: Decimal
    label: str


class DeductionTipResponse(BaseModel):
    itemized_total: Decimal
    standard_amount: Decimal
    recommend_itemizing: bool
    message: str


class CalculateResponse(BaseModel):
    """Rendered form with summaries and checks."""

    form: FormView
    summary: FederalSummaryResponse
    combined: CombinedSummaryResponse | None = None
    totals: LiveTotalsResponse
    narrative: str
    warnings: list[str]
    deduction_tip: DeductionTipResponse | None = None


class CountyResponse(BaseModel):
    name: str
    rate: Decimal


class CountyListResponse(BaseModel):
    tax_year: int
    counties: list[CountyResponse]


def _build_profile(request: ProfileRequest, counties: CountyTable) -> FilingProfile:
    county, rate = None, Decimal("0")
    if request.county:
        try:
            county = counties.canonical_name(request.county)
            rate = counties.rate_for(county)
        except CountyTableError as e:
            raise HTTPException(status_code=422, detail=str(e))
    try:
        return FilingProfile(
            tax_type=request.tax_type,
            filing_status=request.filing_status,
            age_flags=request.age_flags,
            county=county,
            county_rate=rate,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors()[0]["msg"])


def _compute(payload: CalculateRequest, counties: CountyTable) -> FormGraph:
    profile = _build_profile(payload.profile, counties)
    tax_type_ctx.set(profile.tax_type.value)
    graph = build_form_graph(profile)
    try:
        graph.update_many(payload.inputs)
    except FormGraphError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return graph


@router.post("/calculate", response_model=CalculateResponse)
async def calculate(
    payload: CalculateRequest,
    counties: Annotated[CountyTable, Depends(get_counties)],
) -> CalculateResponse:
    """Compute a return from a profile and leaf inputs."""
    graph = _compute(payload, counties)

    summary = federal_summary(graph)
    totals = live_totals(graph)
    combined = combined_summary(graph) if graph.profile.includes_indiana else None
    tip = deduction_tip(graph)
    logger.info("return_calculated", inputs=len(payload.inputs))

    return CalculateResponse(
        form=present(graph),
        summary=FederalSummaryResponse(
            total_income=summary.total_income,
            total_deductions=summary.total_deductions,
            taxable_income=summary.taxable_income,
            total_tax=summary.total_tax,
            total_payments=summary.total_payments,
            final_amount=summary.final_amount,
            label=summary.label,
        ),
        combined=CombinedSummaryResponse(
            federal_agi=combined.federal_agi,
            federal_tax=combined.federal_tax,
            indiana_tax=combined.indiana_tax,
            total_tax=combined.total_tax,
            total_credits=combined.total_credits,
            final_amount=combined.final_amount,
            label=combined.label,
        )
        if combined
        else None,
        totals=LiveTotalsResponse(
            total_tax=totals.total_tax,
            total_payments=totals.total_payments,
            difference=totals.difference,
            label=totals.label,
        ),
        narrative=plain_english_summary(graph),
        warnings=precheck(graph),
        deduction_tip=DeductionTipResponse(
            itemized_total=tip.itemized_total,
            standard_amount=tip.standard_amount,
            recommend_itemizing=tip.recommend_itemizing,
            message=tip.message,
        )
        if tip
        else None,
    )


@router.post("/export")
async def export_worksheet(
    payload: CalculateRequest,
    counties: Annotated[CountyTable, Depends(get_counties)],
) -> Response:
    """Compute a return and download it as an Excel worksheet."""
    graph = _compute(payload, counties)
    content = workbook_bytes(graph, payload.user_name)
    logger.info("return_worksheet_exported", size=len(content))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="tax-return.xlsx"'},
        status_code=status.HTTP_200_OK,
    )


@router.get("/counties", response_model=CountyListResponse)
async def list_counties(
    counties: Annotated[CountyTable, Depends(get_counties)],
) -> CountyListResponse:
    """List Indiana counties and their income tax rates."""
    return CountyListResponse(
        tax_year=counties.tax_year,
        counties=[CountyResponse(name=c.name, rate=c.rate) for c in counties.counties],
    )
