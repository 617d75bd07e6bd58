"""
SQLAlchemy ORM persistence models for reimbursement rate tables.

Responsibility
--------------
Database-backed storage for the effective-dated rate tables the engines
read: IRS standard mileage rates and GSA-style per diem rates.  The
engines themselves never touch these models; selectors convert rows to
the frozen ``RateRecord`` / ``PerDiemRate`` DTOs first.

Architecture position
---------------------
**Kernel > Models** -- inherits from ``TrackedBase`` (kernel db layer).
Read by ``expense_kernel.selectors.rate_selector``.

Invariants enforced
-------------------
* Rates use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields are stored as String(50) for readability and portability.
* ``effective_until`` NULL means open-ended.

Audit relevance
---------------
* Every row records its creator (``created_by_id``) so a reimbursement
  can be traced to whoever seeded the rate it used.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import TrackedBase


# ---------------------------------------------------------------------------
# MileageRateModel
# ---------------------------------------------------------------------------


class MileageRateModel(TrackedBase):
    """
    An IRS standard mileage rate for one category and date range.

    Maps to the ``RateRecord`` DTO in ``expense_kernel.domain.rates``.
    """

    __tablename__ = "irs_mileage_rates"

    __table_args__ = (
        UniqueConstraint(
            "category", "effective_from", name="uq_mileage_rate_category_from",
        ),
        Index("idx_mileage_rate_category", "category"),
    )

    category: Mapped[str] = mapped_column(String(50), nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from expense_kernel.domain.rates import RateCategory, RateRecord

        return RateRecord(
            category=RateCategory(self.category),
            rate=self.rate,
            effective_from=self.effective_from,
            effective_until=self.effective_until,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "MileageRateModel":
        return cls(
            category=dto.category.value,
            rate=dto.rate,
            effective_from=dto.effective_from,
            effective_until=dto.effective_until,
            notes=dto.notes,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<MileageRateModel {self.category} {self.rate} "
            f"from {self.effective_from}>"
        )


# ---------------------------------------------------------------------------
# PerDiemRateModel
# ---------------------------------------------------------------------------


class PerDiemRateModel(TrackedBase):
    """
    A per diem rate for a location and date range.

    Maps to the ``PerDiemRate`` DTO in ``expense_kernel.domain.rates``.
    ``organization_id`` NULL marks a system default rate.
    """

    __tablename__ = "per_diem_rates"

    __table_args__ = (
        Index("idx_per_diem_rate_location", "country_code", "state", "city"),
        Index("idx_per_diem_rate_org", "organization_id"),
    )

    location_name: Mapped[str] = mapped_column(String(200), nullable=False)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lodging_rate: Mapped[Decimal] = mapped_column(nullable=False)
    mie_rate: Mapped[Decimal] = mapped_column(nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    organization_id: Mapped[UUID | None]
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="gsa")

    def to_dto(self):
        from expense_kernel.domain.rates import PerDiemRate

        return PerDiemRate(
            location_name=self.location_name,
            country_code=self.country_code,
            state=self.state,
            city=self.city,
            lodging_rate=self.lodging_rate,
            mie_rate=self.mie_rate,
            effective_from=self.effective_from,
            effective_until=self.effective_until,
            organization_id=self.organization_id,
            is_active=self.is_active,
            source=self.source,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "PerDiemRateModel":
        return cls(
            location_name=dto.location_name,
            country_code=dto.country_code,
            state=dto.state,
            city=dto.city,
            lodging_rate=dto.lodging_rate,
            mie_rate=dto.mie_rate,
            effective_from=dto.effective_from,
            effective_until=dto.effective_until,
            organization_id=dto.organization_id,
            is_active=dto.is_active,
            source=dto.source,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PerDiemRateModel {self.location_name} from {self.effective_from}>"
