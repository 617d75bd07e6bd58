"""
Per diem allocation over a trip's calendar days.

Responsibility:
    Produce a day-by-day per diem breakdown for a trip: lodging at the
    location's rate, M&IE reduced on the first and last travel day, and
    deductions for meals provided.  Also resolves per diem rates for a
    location from an effective-dated rate table.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The daily rate lookup is
    injected; ``PerDiemRateTable`` is one implementation of it.

Invariants enforced:
    - ``total_days = end_date - start_date + 1``; every calendar day is
      visited once, in order.
    - First and last day use ``mie_rate * first_last_day_pct``.  A
      single-day trip is both, and the reduction applies once.
    - Meal deductions are percentages of the day's reduced ``base_mie``.
    - Lodging is never reduced.
    - ``adjusted_mie`` is not clamped at zero.
    - Arithmetic is exact Decimal; nothing is rounded here.

Failure modes:
    - InvalidInputError when ``end_date`` precedes ``start_date``.
    - PerDiemRateNotFoundError from ``PerDiemRateTable.lookup`` when no
      rate covers a location on a date.

Usage:
    table = PerDiemRateTable(rates)
    allocator = PerDiemAllocator()
    trip = allocator.allocate(
        date(2025, 3, 10), date(2025, 3, 12),
        table.daily_lookup(Location("US", "CA", "San Francisco")),
    )
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from expense_engines.tracer import traced_engine
from expense_kernel.domain.per_diem import (
    NO_MEALS_PROVIDED,
    MealAdjustment,
    MealFlags,
    MealType,
    PerDiemDay,
    TripPerDiemCalculation,
)
from expense_kernel.domain.policy import AllowancePolicy
from expense_kernel.domain.rates import DailyRate, Location, PerDiemRate
from expense_kernel.domain.values import ZERO, Numeric, to_decimal
from expense_kernel.exceptions import InvalidInputError, PerDiemRateNotFoundError
from expense_kernel.logging_config import get_logger

logger = get_logger("engines.per_diem")

DailyRateLookup = Callable[[date], "DailyRate | tuple[Numeric, Numeric]"]

_MEAL_LABELS = {
    MealType.BREAKFAST: "Breakfast",
    MealType.LUNCH: "Lunch",
    MealType.DINNER: "Dinner",
}


def calculate_travel_day_mie(mie_rate: Decimal, policy: AllowancePolicy) -> Decimal:
    """M&IE for a first or last travel day."""
    return mie_rate * policy.first_last_day_pct


def calculate_meal_deduction(
    base_mie: Decimal, meal: MealType, policy: AllowancePolicy,
) -> Decimal:
    """Deduction for one provided meal, against the day's ``base_mie``."""
    return base_mie * policy.meal_pct(meal)


class PerDiemAllocator:
    """Allocates per diem across the days of a trip."""

    def __init__(self, policy: AllowancePolicy | None = None):
        self._policy = policy or AllowancePolicy()

    @property
    def policy(self) -> AllowancePolicy:
        return self._policy

    def _allocate_day(
        self,
        day: date,
        day_number: int,
        total_days: int,
        rate: DailyRate,
        meal_flags: MealFlags,
    ) -> PerDiemDay:
        is_first = day_number == 1
        is_last = day_number == total_days
        if is_first or is_last:
            base_mie = calculate_travel_day_mie(rate.mie_rate, self._policy)
        else:
            base_mie = rate.mie_rate

        adjustments: list[MealAdjustment] = []
        adjusted_mie = base_mie
        for meal in meal_flags.provided():
            pct = self._policy.meal_pct(meal)
            deduction = calculate_meal_deduction(base_mie, meal, self._policy)
            adjusted_mie -= deduction
            adjustments.append(
                MealAdjustment(
                    meal=meal,
                    deduction=deduction,
                    reason=f"{_MEAL_LABELS[meal]} provided ({pct * 100:.0f}% of M&IE)",
                )
            )

        if adjusted_mie < ZERO:
            logger.warning(
                "per_diem_negative_adjusted_mie",
                extra={
                    "date": day,
                    "base_mie": base_mie,
                    "adjusted_mie": adjusted_mie,
                    "meals_provided": [m.value for m in meal_flags.provided()],
                },
            )

        return PerDiemDay(
            date=day,
            day_number=day_number,
            is_first_day=is_first,
            is_last_day=is_last,
            lodging_allowance=rate.lodging_rate,
            mie_rate=rate.mie_rate,
            mie_allowance=base_mie,
            meal_flags=meal_flags,
            adjustments=tuple(adjustments),
            adjusted_mie=adjusted_mie,
            total=rate.lodging_rate + adjusted_mie,
        )

    @traced_engine("per_diem", "1.0", fingerprint_fields=("start_date", "end_date"))
    def allocate(
        self,
        start_date: date,
        end_date: date,
        daily_rate_lookup: DailyRateLookup,
        meals_provided: Mapping[date, MealFlags] | None = None,
    ) -> TripPerDiemCalculation:
        """
        Day-by-day per diem for a trip from ``start_date`` to ``end_date``
        inclusive.

        ``daily_rate_lookup`` is called once per day and returns a
        ``DailyRate`` or a ``(lodging, mie)`` pair.  ``meals_provided``
        maps a date to the meals provided that day.

        Raises:
            InvalidInputError: ``end_date`` is before ``start_date``.
        """
        if end_date < start_date:
            raise InvalidInputError(
                "end_date", end_date, f"cannot precede start_date {start_date}",
            )
        meals_provided = meals_provided or {}
        total_days = (end_date - start_date).days + 1

        days: list[PerDiemDay] = []
        for offset in range(total_days):
            day = start_date + timedelta(days=offset)
            lodging, mie = daily_rate_lookup(day)
            rate = DailyRate(
                lodging_rate=to_decimal(lodging, "lodging_rate"),
                mie_rate=to_decimal(mie, "mie_rate"),
            )
            days.append(
                self._allocate_day(
                    day,
                    offset + 1,
                    total_days,
                    rate,
                    meals_provided.get(day, NO_MEALS_PROVIDED),
                )
            )

        total_lodging = sum((d.lodging_allowance for d in days), Decimal("0"))
        total_mie = sum((d.adjusted_mie for d in days), Decimal("0"))

        logger.info(
            "per_diem_allocated",
            extra={
                "start_date": start_date,
                "end_date": end_date,
                "total_days": total_days,
                "total_lodging": total_lodging,
                "total_mie": total_mie,
            },
        )

        return TripPerDiemCalculation(
            start_date=start_date,
            end_date=end_date,
            total_days=total_days,
            total_lodging=total_lodging,
            total_mie=total_mie,
            total_per_diem=total_lodging + total_mie,
            daily_breakdown=tuple(days),
        )


# ---------------------------------------------------------------------------
# Rate table
# ---------------------------------------------------------------------------


def _same(a: str | None, b: str | None) -> bool:
    return a is not None and b is not None and a.strip().lower() == b.strip().lower()


class PerDiemRateTable:
    """
    Effective-dated per diem rates, searchable by location.

    A rate matches a location when it is active, effective on the date,
    in the same country, owned by the organization or a system default,
    and either country-wide, for the location's state, or for its city.
    Preference: organization rates, then city over state over country,
    then the latest ``effective_from``.
    """

    def __init__(self, rates: Iterable[PerDiemRate]):
        self._rates: tuple[PerDiemRate, ...] = tuple(rates)

    @property
    def rates(self) -> tuple[PerDiemRate, ...]:
        return self._rates

    def _covers(self, rate: PerDiemRate, location: Location) -> bool:
        if rate.city is not None:
            return _same(rate.city, location.city) and _same(rate.state, location.state)
        if rate.state is not None:
            return _same(rate.state, location.state)
        return True

    def lookup(
        self,
        location: Location,
        as_of: date,
        organization_id: UUID | None = None,
    ) -> PerDiemRate:
        """
        Most specific applicable rate for ``location`` on ``as_of``.

        Raises:
            PerDiemRateNotFoundError: No rate covers the location on that date.
        """
        candidates = [
            r for r in self._rates
            if r.is_active
            and _same(r.country_code, location.country_code)
            and r.is_effective(as_of)
            and (r.organization_id is None or r.organization_id == organization_id)
            and self._covers(r, location)
        ]
        if not candidates:
            logger.warning(
                "per_diem_rate_not_found",
                extra={"location": str(location), "as_of": as_of},
            )
            raise PerDiemRateNotFoundError(str(location), as_of)

        best = min(
            candidates,
            key=lambda r: (
                r.organization_id is None,
                r.specificity,
                -r.effective_from.toordinal(),
            ),
        )
        logger.debug(
            "per_diem_rate_resolved",
            extra={
                "location": str(location),
                "as_of": as_of,
                "rate_location": best.location_name,
                "lodging_rate": best.lodging_rate,
                "mie_rate": best.mie_rate,
            },
        )
        return best

    def daily_lookup(
        self,
        location: Location,
        organization_id: UUID | None = None,
        itinerary: Mapping[date, Location] | None = None,
        lodging_override: Numeric | None = None,
        mie_override: Numeric | None = None,
    ) -> Callable[[date], DailyRate]:
        """
        A ``daily_rate_lookup`` for ``PerDiemAllocator.allocate``.

        ``itinerary`` assigns a different location to specific days of a
        multi-location trip.  Overrides replace the looked-up lodging or
        M&IE rate for every day (custom trip rates).
        """
        itinerary = dict(itinerary or {})
        lodging = to_decimal(lodging_override, "lodging_override") if lodging_override is not None else None
        mie = to_decimal(mie_override, "mie_override") if mie_override is not None else None

        def lookup(day: date) -> DailyRate:
            rate = self.lookup(itinerary.get(day, location), day, organization_id)
            return DailyRate(
                lodging_rate=lodging if lodging is not None else rate.lodging_rate,
                mie_rate=mie if mie is not None else rate.mie_rate,
            )

        return lookup
