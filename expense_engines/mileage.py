"""
Mileage reimbursement calculation.

Responsibility:
    Turn a trip distance into a reimbursement amount: round-trip doubling,
    rate resolution (IRS standard or an organization's custom rate), and
    half-up rounding to cents.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Depends on RateResolver.

Invariants enforced:
    - ``total_miles = distance * 2`` for a round trip, else ``distance``.
    - ``reimbursement_amount = round(total_miles * rate, 2)`` half-up.
    - Distances are coerced to Decimal through ``str`` (10.5 stays 10.5).

Failure modes:
    - InvalidInputError for a non-numeric or non-positive distance.
    - RateNotFoundError propagates unchanged; there is no fallback rate.

Usage:
    calculator = MileageCalculator(RateResolver(records))
    result = calculator.calculate(Decimal("10.5"), True, "business", trip_date)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from expense_engines.rate_resolver import RateResolver, coerce_category
from expense_engines.tracer import traced_engine
from expense_kernel.domain.mileage import MileageComputationResult, MileageStats
from expense_kernel.domain.policy import MileagePolicy
from expense_kernel.domain.rates import EffectiveMileageRate, RateCategory, RateSource
from expense_kernel.domain.values import ZERO, Numeric, round_money, to_decimal
from expense_kernel.exceptions import InvalidInputError
from expense_kernel.logging_config import get_logger

logger = get_logger("engines.mileage")


class MileageCalculator:
    """Computes mileage reimbursements against a rate resolver."""

    def __init__(self, resolver: RateResolver, policy: MileagePolicy | None = None):
        self._resolver = resolver
        self._policy = policy or MileagePolicy()

    @property
    def policy(self) -> MileagePolicy:
        return self._policy

    def effective_rate(
        self, category: RateCategory | str, as_of: date,
    ) -> EffectiveMileageRate:
        """
        The per-mile rate the organization reimburses at on ``as_of``.

        The IRS rate is always resolved, so a missing IRS rate raises
        RateNotFoundError even when a custom rate is configured.
        """
        record = self._resolver.resolve(category, as_of)
        if self._policy.applies_custom_rate:
            return EffectiveMileageRate(
                rate=self._policy.custom_rate_per_mile,
                source=RateSource.CUSTOM,
                irs_rate=record.rate,
                effective_date=record.effective_from,
            )
        return EffectiveMileageRate(
            rate=record.rate,
            source=RateSource.IRS,
            irs_rate=record.rate,
            effective_date=record.effective_from,
        )

    @traced_engine(
        "mileage", "1.0",
        fingerprint_fields=("distance", "is_round_trip", "category", "as_of"),
    )
    def calculate(
        self,
        distance: Numeric,
        is_round_trip: bool,
        category: RateCategory | str,
        as_of: date,
    ) -> MileageComputationResult:
        """
        Reimbursement for one trip.

        Raises:
            InvalidInputError: ``distance`` is not a positive number.
            RateNotFoundError: No rate covers ``category`` on ``as_of``.
        """
        miles = to_decimal(distance, "distance")
        if miles <= ZERO:
            raise InvalidInputError("distance", distance, "must be positive")

        rate = self.effective_rate(category, as_of)
        total_miles = miles * 2 if is_round_trip else miles
        amount = round_money(total_miles * rate.rate)

        record_category = coerce_category(category)

        logger.info(
            "mileage_calculated",
            extra={
                "category": record_category.value,
                "total_miles": total_miles,
                "rate": rate.rate,
                "rate_source": rate.source.value,
                "reimbursement_amount": amount,
            },
        )

        return MileageComputationResult(
            category=record_category,
            distance=miles,
            is_round_trip=is_round_trip,
            rate_used=rate.rate,
            total_miles=total_miles,
            reimbursement_amount=amount,
            rate_effective_date=rate.effective_date,
            rate_source=rate.source,
            irs_rate=rate.irs_rate,
        )


def summarize_trips(results: Iterable[MileageComputationResult]) -> MileageStats:
    """Totals and per-category trip counts across computed trips."""
    results = list(results)
    by_category = Counter(r.category for r in results)
    return MileageStats(
        total_trips=len(results),
        total_miles=sum((r.total_miles for r in results), Decimal("0")),
        total_reimbursement=sum(
            (r.reimbursement_amount for r in results), Decimal("0"),
        ),
        trips_by_category=dict(by_category),
    )
