"""
Pytest fixtures for the expense reimbursement test suite.

Provides:
- Structured logging configuration and log capture
- Rate record and per diem rate builders
- SQLite (default) or PostgreSQL database sessions for selector tests

Environment Variables:
- DATABASE_URL: database connection URL for the selector tests.
  If not set, an in-memory SQLite database is used.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from expense_engines.rate_resolver import RateResolver
from expense_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from expense_kernel.domain.clock import DeterministicClock
from expense_kernel.domain.rates import PerDiemRate, RateCategory, RateRecord
from expense_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# Test actor ID for rows created by the tests
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture expense_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, calculator):
            calculator.calculate(Decimal("10"), False, "business", trip_date)
            logs = captured_logs()
            assert any(r["message"] == "mileage_calculated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("expense_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Rate fixtures
# =============================================================================


def make_rate(
    category: str = "business",
    rate: str = "0.67",
    effective_from: date = date(2024, 1, 1),
    effective_until: date | None = None,
) -> RateRecord:
    return RateRecord(
        category=RateCategory(category),
        rate=Decimal(rate),
        effective_from=effective_from,
        effective_until=effective_until,
    )


def make_per_diem_rate(
    location_name: str = "CONUS Standard",
    lodging: str = "107",
    mie: str = "68",
    state: str | None = None,
    city: str | None = None,
    effective_from: date = date(2024, 10, 1),
    effective_until: date | None = None,
    organization_id=None,
    is_active: bool = True,
    country_code: str = "US",
) -> PerDiemRate:
    return PerDiemRate(
        location_name=location_name,
        country_code=country_code,
        lodging_rate=Decimal(lodging),
        mie_rate=Decimal(mie),
        effective_from=effective_from,
        effective_until=effective_until,
        state=state,
        city=city,
        organization_id=organization_id,
        is_active=is_active,
    )


@pytest.fixture
def irs_rates() -> list[RateRecord]:
    """IRS business/medical rate history, 2023 through open-ended 2025."""
    return [
        make_rate("business", "0.655", date(2023, 1, 1), date(2023, 12, 31)),
        make_rate("business", "0.67", date(2024, 1, 1), date(2024, 12, 31)),
        make_rate("business", "0.70", date(2025, 1, 1)),
        make_rate("medical", "0.21", date(2024, 1, 1)),
        make_rate("charity", "0.14", date(2023, 1, 1)),
    ]


@pytest.fixture
def resolver(irs_rates) -> RateResolver:
    return RateResolver(irs_rates)


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """A session on a freshly created schema, dropped after the test."""
    init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
    create_tables()
    session = get_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        drop_tables()
        reset_engine()
