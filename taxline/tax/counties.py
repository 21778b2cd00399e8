"""Indiana county income tax rate table.

County rates are configuration, not computation: they are read from a YAML
table (bundled by default, overridable via COUNTY_TABLE_PATH) and looked up
by county name during intake.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from taxline.core.config import settings

DEFAULT_COUNTY_TABLE = Path(__file__).parent / "data" / "indiana_counties.yaml"


class CountyTableError(Exception):
    """Raised when the county table cannot be loaded or a county is unknown."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class CountyRate(BaseModel):
    """One county and its income tax rate in percent."""

    name: str = Field(..., min_length=1)
    rate: Decimal = Field(..., ge=0, le=10)

    @field_validator("rate", mode="before")
    @classmethod
    def parse_rate(cls, v: object) -> object:
        """Read YAML floats through their text form to keep exact cents."""
        if isinstance(v, float):
            return str(v)
        return v


class CountyTable(BaseModel):
    """All county rates for one tax year."""

    tax_year: int
    counties: list[CountyRate]

    def rate_for(self, county: str) -> Decimal:
        """Look up a county rate by name, ignoring case.

        Raises:
            CountyTableError: If the county is not in the table.
        """
        wanted = county.strip().lower()
        for entry in self.counties:
            if entry.name.lower() == wanted:
                return entry.rate
        raise CountyTableError(f"Unknown Indiana county: {county}")

    def canonical_name(self, county: str) -> str:
        """Return the table's spelling of a county name."""
        wanted = county.strip().lower()
        for entry in self.counties:
            if entry.name.lower() == wanted:
                return entry.name
        raise CountyTableError(f"Unknown Indiana county: {county}")


def load_county_table(path: str | Path | None = None) -> CountyTable:
    """Load a county rate table from YAML.

    Args:
        path: Table location. Defaults to the configured or bundled table.

    Returns:
        Validated CountyTable.

    Raises:
        CountyTableError: If the file is missing, malformed, or invalid.
    """
    path = Path(path or settings.county_table_path or DEFAULT_COUNTY_TABLE)
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except FileNotFoundError:
        raise CountyTableError(f"County table not found: {path}", path=path)
    except YAMLError as e:
        raise CountyTableError(f"Failed to parse county table: {e}", path=path)

    if not isinstance(data, dict):
        raise CountyTableError("County table must be a YAML mapping", path=path)

    try:
        return CountyTable.model_validate(data)
    except ValidationError as e:
        errors = [err["msg"] for err in e.errors()]
        raise CountyTableError(f"Invalid county table: {errors[0]}", path=path)


@lru_cache(maxsize=1)
def get_county_table() -> CountyTable:
    """Get the process-wide county table, loading it on first use."""
    return load_county_table()
