"""
Module: expense_kernel.selectors.rate_selector
Responsibility: Load mileage and per diem rate rows as frozen DTOs ready for
    ``RateResolver`` and ``PerDiemRateTable``.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Mileage rates are returned ordered by (category, effective_from).
    - Per diem rates are filtered to active rows; an organization filter
      includes system defaults (organization_id NULL) alongside the
      organization's own rates.
"""

from uuid import UUID

from sqlalchemy import or_, select

from expense_kernel.domain.rates import PerDiemRate, RateCategory, RateRecord, coerce_category
from expense_kernel.logging_config import get_logger
from expense_kernel.models.rate_tables import MileageRateModel, PerDiemRateModel
from expense_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.rate")


class MileageRateSelector(BaseSelector[MileageRateModel]):
    """Read access to the IRS mileage rate table."""

    def rates(self, category: RateCategory | str | None = None) -> list[RateRecord]:
        """All mileage rate records, optionally for one category."""
        stmt = select(MileageRateModel).order_by(
            MileageRateModel.category, MileageRateModel.effective_from,
        )
        resolved = coerce_category(category) if category is not None else None
        if resolved is not None:
            stmt = stmt.where(MileageRateModel.category == resolved.value)
        records = [row.to_dto() for row in self.session.scalars(stmt)]
        logger.debug(
            "mileage_rates_loaded",
            extra={
                "category": resolved.value if resolved is not None else None,
                "count": len(records),
            },
        )
        return records


class PerDiemRateSelector(BaseSelector[PerDiemRateModel]):
    """Read access to the per diem rate table."""

    def active_rates(self, organization_id: UUID | None = None) -> list[PerDiemRate]:
        """
        Active per diem rates.

        With ``organization_id`` set, returns system defaults plus that
        organization's rates; otherwise only system defaults.
        """
        stmt = select(PerDiemRateModel).where(PerDiemRateModel.is_active.is_(True))
        if organization_id is None:
            stmt = stmt.where(PerDiemRateModel.organization_id.is_(None))
        else:
            stmt = stmt.where(
                or_(
                    PerDiemRateModel.organization_id.is_(None),
                    PerDiemRateModel.organization_id == organization_id,
                )
            )
        stmt = stmt.order_by(
            PerDiemRateModel.country_code,
            PerDiemRateModel.location_name,
            PerDiemRateModel.effective_from,
        )
        rates = [row.to_dto() for row in self.session.scalars(stmt)]
        logger.debug(
            "per_diem_rates_loaded",
            extra={
                "organization_id": organization_id,
                "count": len(rates),
            },
        )
        return rates
