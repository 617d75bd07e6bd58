"""
Mileage Result Types (``expense_kernel.domain.mileage``).

Frozen value objects produced by ``expense_engines.mileage``.  All
distances and amounts are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from expense_kernel.domain.rates import RateCategory, RateSource


@dataclass(frozen=True)
class MileageComputationResult:
    """Reimbursement for a single mileage trip."""
    category: RateCategory
    distance: Decimal  # one-way distance as entered
    is_round_trip: bool
    rate_used: Decimal
    total_miles: Decimal  # distance * 2 for round trips
    reimbursement_amount: Decimal  # rounded to cents, half-up
    rate_effective_date: date
    rate_source: RateSource = RateSource.IRS
    irs_rate: Decimal | None = None


@dataclass(frozen=True)
class MileageStats:
    """Summary across a set of computed trips."""
    total_trips: int
    total_miles: Decimal
    total_reimbursement: Decimal
    trips_by_category: dict[RateCategory, int] = field(default_factory=dict)
