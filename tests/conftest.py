"""Pytest configuration and shared fixtures for tests."""

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taxline.forms.profile import AgeFlags, FilingProfile, TaxType
from taxline.models import Base
from taxline.persistence.store import FileReturnStore, SqlReturnStore
from taxline.tax.filing_status import FilingStatus


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests.

    Returns:
        Backend name string.
    """
    return "asyncio"


@pytest.fixture
def single_profile() -> FilingProfile:
    """Federal 1040, single, no boxes checked."""
    return FilingProfile(tax_type=TaxType.FEDERAL_1040, filing_status=FilingStatus.SINGLE)


@pytest.fixture
def married_profile() -> FilingProfile:
    """Federal 1040, married filing jointly, all four boxes checked."""
    return FilingProfile(
        tax_type=TaxType.FEDERAL_1040,
        filing_status=FilingStatus.MARRIED,
        age_flags=AgeFlags(self_65=True, self_blind=True, spouse_65=True, spouse_blind=True),
    )


@pytest.fixture
def combined_profile() -> FilingProfile:
    """Federal plus Indiana, single, Marion County (2.02%)."""
    return FilingProfile(
        tax_type=TaxType.COMBINED,
        filing_status=FilingStatus.SINGLE,
        county="Marion",
        county_rate=Decimal("2.02"),
    )


@pytest.fixture
def indiana_profile() -> FilingProfile:
    """Indiana IT-40 only, Hamilton County (1.06%)."""
    return FilingProfile(
        tax_type=TaxType.INDIANA, county="Hamilton", county_rate=Decimal("1.06")
    )


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create sqlite-backed session factory with all tables."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlReturnStore:
    """Saved-return store over the sqlite database."""
    return SqlReturnStore(session_factory)


@pytest.fixture
def file_store(tmp_path) -> FileReturnStore:
    """Saved-return store over a JSON document in a temp directory."""
    return FileReturnStore(str(tmp_path / "saved-returns.json"))
