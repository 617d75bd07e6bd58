"""
Rate selector and rate table persistence tests.

Verifies:
- Mileage rate rows round-trip to equal RateRecord DTOs.
- Mileage rates come back ordered by (category, effective_from) and can be
  filtered by category.
- Per diem selection: inactive rows excluded, system defaults always
  included, organization rows only for that organization.
- Selected rows drive the engines exactly like in-memory tables.
- session_scope commits on success and rolls back on error.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from expense_engines.per_diem import PerDiemRateTable
from expense_engines.rate_resolver import RateResolver
from expense_kernel.db.engine import session_scope
from expense_kernel.domain.rates import Location, RateCategory
from expense_kernel.exceptions import InvalidInputError
from expense_kernel.models.rate_tables import MileageRateModel, PerDiemRateModel
from expense_kernel.selectors.rate_selector import (
    MileageRateSelector,
    PerDiemRateSelector,
)
from tests.conftest import TEST_ACTOR_ID, make_per_diem_rate, make_rate

ACME_ORG = uuid4()
OTHER_ORG = uuid4()


@pytest.fixture
def seeded_mileage(db_session, irs_rates):
    # Insert newest first so ordering comes from the query, not insertion.
    for record in reversed(irs_rates):
        db_session.add(MileageRateModel.from_dto(record, created_by_id=TEST_ACTOR_ID))
    db_session.flush()
    return irs_rates


@pytest.fixture
def seeded_per_diem(db_session):
    rates = [
        make_per_diem_rate("CONUS Standard", "107", "68"),
        make_per_diem_rate("Denver, CO", "199", "86", state="CO", city="Denver"),
        make_per_diem_rate("Acme Denver", "150", "70", state="CO", city="Denver",
                           organization_id=ACME_ORG),
        make_per_diem_rate("Other Org Standard", "90", "50", organization_id=OTHER_ORG),
        make_per_diem_rate("Retired Boulder", "180", "80", state="CO", city="Boulder",
                           is_active=False),
    ]
    for rate in rates:
        db_session.add(PerDiemRateModel.from_dto(rate, created_by_id=TEST_ACTOR_ID))
    db_session.flush()
    return rates


class TestMileageRateSelector:

    def test_round_trip_to_dto(self, db_session, seeded_mileage):
        loaded = MileageRateSelector(db_session).rates()
        assert sorted(loaded, key=lambda r: (r.category.value, r.effective_from)) == loaded
        assert set(loaded) == set(seeded_mileage)

    def test_rates_are_decimal(self, db_session, seeded_mileage):
        for record in MileageRateSelector(db_session).rates():
            assert isinstance(record.rate, Decimal)

    def test_filter_by_category(self, db_session, seeded_mileage):
        business = MileageRateSelector(db_session).rates("business")
        assert [r.rate for r in business] == [
            Decimal("0.655"), Decimal("0.67"), Decimal("0.70"),
        ]
        assert all(r.category is RateCategory.BUSINESS for r in business)

    def test_category_is_case_insensitive(self, db_session, seeded_mileage):
        selector = MileageRateSelector(db_session)
        assert selector.rates(" Business ") == selector.rates(RateCategory.BUSINESS)
        assert len(selector.rates("MEDICAL")) == 1

    def test_unknown_category_rejected(self, db_session):
        with pytest.raises(InvalidInputError) as exc_info:
            MileageRateSelector(db_session).rates("commute")
        assert exc_info.value.field == "category"

    def test_empty_table(self, db_session):
        assert MileageRateSelector(db_session).rates() == []

    def test_selected_rates_drive_resolver(self, db_session, seeded_mileage):
        resolver = RateResolver(MileageRateSelector(db_session).rates())
        assert resolver.resolve("business", date(2024, 6, 1)).rate == Decimal("0.67")

    def test_duplicate_effective_from_rejected(self, db_session):
        record = make_rate("business", "0.67", date(2024, 1, 1))
        db_session.add(MileageRateModel.from_dto(record, created_by_id=TEST_ACTOR_ID))
        db_session.flush()
        db_session.add(MileageRateModel.from_dto(
            make_rate("business", "0.68", date(2024, 1, 1)), created_by_id=TEST_ACTOR_ID,
        ))
        with pytest.raises(IntegrityError):
            db_session.flush()


class TestPerDiemRateSelector:

    def test_system_defaults_only(self, db_session, seeded_per_diem):
        names = {r.location_name for r in PerDiemRateSelector(db_session).active_rates()}
        assert names == {"CONUS Standard", "Denver, CO"}

    def test_organization_rates_included(self, db_session, seeded_per_diem):
        names = {
            r.location_name
            for r in PerDiemRateSelector(db_session).active_rates(ACME_ORG)
        }
        assert names == {"CONUS Standard", "Denver, CO", "Acme Denver"}

    def test_inactive_rates_excluded(self, db_session, seeded_per_diem):
        for org in (None, ACME_ORG, OTHER_ORG):
            rates = PerDiemRateSelector(db_session).active_rates(org)
            assert all(r.is_active for r in rates)

    def test_round_trip_fields(self, db_session, seeded_per_diem):
        rates = PerDiemRateSelector(db_session).active_rates(ACME_ORG)
        acme = next(r for r in rates if r.location_name == "Acme Denver")
        assert acme == seeded_per_diem[2]
        assert acme.organization_id == ACME_ORG

    def test_selected_rates_drive_rate_table(self, db_session, seeded_per_diem):
        denver = Location("US", "CO", "Denver")
        as_of = date(2025, 3, 10)

        org_table = PerDiemRateTable(PerDiemRateSelector(db_session).active_rates(ACME_ORG))
        default_table = PerDiemRateTable(PerDiemRateSelector(db_session).active_rates())

        assert org_table.lookup(denver, as_of, ACME_ORG).lodging_rate == Decimal("150")
        assert default_table.lookup(denver, as_of).lodging_rate == Decimal("199")


class TestSessionScope:

    @staticmethod
    def _count() -> int:
        with session_scope() as session:
            return session.scalar(select(func.count()).select_from(MileageRateModel))

    def test_commits_on_success(self, db_session):
        with session_scope() as session:
            session.add(MileageRateModel.from_dto(make_rate(), created_by_id=TEST_ACTOR_ID))

        assert self._count() == 1

    def test_rolls_back_on_error(self, db_session, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(MileageRateModel.from_dto(make_rate(), created_by_id=TEST_ACTOR_ID))
                session.flush()
                raise RuntimeError("abort")

        assert self._count() == 0
        assert any(
            r["message"] == "transaction_rolled_back" for r in captured_logs()
        )
