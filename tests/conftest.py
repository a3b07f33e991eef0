"""Pytest fixtures for crew payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crew_payroll.api.app import create_app
from crew_payroll.calculators.entry_builder import EntryBuilder
from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.calculators.types import HourThresholds, PayrollEntry, RateProfile, RawTimeRecord
from crew_payroll.database import make_session_factory
from crew_payroll.models import Base
from crew_payroll.services.entry_store import InMemoryEntryStore, SqlEntryStore
from crew_payroll.services.payroll_service import PayrollService
from crew_payroll.services.state_machine import ReviewState

# In-memory SQLite shared by every session of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

WORK_DATE = date(2025, 1, 10)
FIXED_NOW = datetime(2025, 1, 10, 18, 0, tzinfo=timezone.utc)


def make_record(**overrides: Any) -> RawTimeRecord:
    """Build a raw time record with sensible defaults."""
    values: dict[str, Any] = {
        "record_id": "rec-1",
        "employee_id": "emp-1",
        "employee_name": "Ana Torres",
        "employee_number": "1001",
        "project_id": "proj-1",
        "project_name": "Harbor Bridge",
        "work_date": WORK_DATE,
        "total_hours": Decimal("8"),
    }
    values.update(overrides)
    return RawTimeRecord(**values)


def sequential_ids(prefix: str = "PAY-") -> Callable[[], str]:
    """Deterministic entry id factory."""
    counter = count(1)
    return lambda: f"{prefix}{next(counter):04d}"


@pytest.fixture
def thresholds() -> HourThresholds:
    return HourThresholds()


@pytest.fixture
def rate_book(thresholds: HourThresholds) -> RateBook:
    """Project-wide 20/30/40 rates plus an employee override on proj-1."""
    return RateBook(
        [
            RateProfile(
                regular_rate=Decimal("20"),
                overtime_rate=Decimal("30"),
                double_time_rate=Decimal("40"),
                project_id="proj-1",
                thresholds=thresholds,
            ),
            RateProfile(
                regular_rate=Decimal("20"),
                overtime_rate=Decimal("30"),
                double_time_rate=Decimal("40"),
                project_id="proj-2",
                thresholds=thresholds,
            ),
            RateProfile.from_base_rate(
                Decimal("25"),
                employee_id="emp-9",
                project_id="proj-1",
                thresholds=thresholds,
            ),
        ],
        default_thresholds=thresholds,
    )


@pytest.fixture
def builder(rate_book: RateBook) -> EntryBuilder:
    return EntryBuilder(rate_book, clock=lambda: FIXED_NOW, id_factory=sequential_ids())


@pytest.fixture
def store() -> InMemoryEntryStore:
    return InMemoryEntryStore()


@pytest.fixture
def service(store: InMemoryEntryStore, rate_book: RateBook) -> PayrollService:
    return PayrollService(store, rate_book)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the payroll tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
def sql_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlEntryStore:
    return SqlEntryStore(session_factory)


@pytest_asyncio.fixture
async def client(service: PayrollService) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app(service=service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def make_entry(**overrides: Any) -> PayrollEntry:
    """Build a stored-looking payroll entry directly."""
    values: dict[str, Any] = {
        "entry_id": "PAY-0001",
        "report_id": None,
        "employee_id": "emp-1",
        "employee_name": "Ana Torres",
        "employee_number": "1001",
        "project_id": "proj-1",
        "project_name": "Harbor Bridge",
        "work_date": WORK_DATE,
        "regular_hours": Decimal("8"),
        "overtime_hours": Decimal("0"),
        "double_time_hours": Decimal("0"),
        "total_hours": Decimal("8"),
        "regular_rate": Decimal("15"),
        "overtime_rate": Decimal("22.5"),
        "double_time_rate": Decimal("30"),
        "total_cost": Decimal("120.00"),
        "review_state": ReviewState.PENDING,
        "created_at": FIXED_NOW,
    }
    values.update(overrides)
    return PayrollEntry(**values)
