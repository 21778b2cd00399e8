"""Tax rule tables and year-specific configurations."""

from taxline.tax.counties import CountyTable, CountyTableError, get_county_table
from taxline.tax.filing_status import FilingStatus, coerce_filing_status
from taxline.tax.rules import (
    RuleTableError,
    count_deduction_boxes,
    federal_tax,
    standard_deduction,
)
from taxline.tax.year_config import (
    TAX_YEAR_2025,
    TAX_YEAR_CONFIGS,
    TaxYearConfig,
    get_tax_year_config,
)

__all__ = [
    # Year configuration
    "TaxYearConfig",
    "TAX_YEAR_2025",
    "TAX_YEAR_CONFIGS",
    "get_tax_year_config",
    # Rules
    "FilingStatus",
    "RuleTableError",
    "coerce_filing_status",
    "count_deduction_boxes",
    "federal_tax",
    "standard_deduction",
    # Indiana counties
    "CountyTable",
    "CountyTableError",
    "get_county_table",
]
