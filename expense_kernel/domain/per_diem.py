"""
Per Diem Types (``expense_kernel.domain.per_diem``).

Responsibility
--------------
Frozen value objects for a trip's day-by-day per diem breakdown: meal
flags, meal deductions, per-day allowances and trip totals.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Produced by
``expense_engines.per_diem.PerDiemAllocator``.

Invariants enforced
-------------------
* ``mie_allowance`` is the day's M&IE after the first/last-day reduction
  and before meal deductions (``base_mie`` is an alias).
* ``adjusted_mie == mie_allowance - sum(adjustment.deduction)``.
* ``total == lodging_allowance + adjusted_mie``.
* ``adjusted_mie`` may be negative; it is never clamped here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


class MealType(str, Enum):
    """Meals that may be provided during travel (GSA deduction basis)."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


@dataclass(frozen=True)
class MealFlags:
    """Which meals were provided (conference, client, hotel) on a day."""
    breakfast_provided: bool = False
    lunch_provided: bool = False
    dinner_provided: bool = False

    def provided(self) -> tuple[MealType, ...]:
        """Provided meals, in breakfast/lunch/dinner order."""
        meals: list[MealType] = []
        if self.breakfast_provided:
            meals.append(MealType.BREAKFAST)
        if self.lunch_provided:
            meals.append(MealType.LUNCH)
        if self.dinner_provided:
            meals.append(MealType.DINNER)
        return tuple(meals)


NO_MEALS_PROVIDED = MealFlags()


@dataclass(frozen=True)
class MealAdjustment:
    """A deduction from a day's M&IE for a provided meal."""
    meal: MealType
    deduction: Decimal
    reason: str


@dataclass(frozen=True)
class PerDiemDay:
    """Per diem allowance for a single calendar day of a trip."""
    date: date
    day_number: int  # 1-based within the trip
    is_first_day: bool
    is_last_day: bool
    lodging_allowance: Decimal
    mie_rate: Decimal  # full daily M&IE rate for the location
    mie_allowance: Decimal  # after first/last-day reduction
    meal_flags: MealFlags = NO_MEALS_PROVIDED
    adjustments: tuple[MealAdjustment, ...] = field(default_factory=tuple)
    adjusted_mie: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @property
    def base_mie(self) -> Decimal:
        """The day's M&IE before meal deductions."""
        return self.mie_allowance

    @property
    def total_deductions(self) -> Decimal:
        return sum((a.deduction for a in self.adjustments), Decimal("0"))


@dataclass(frozen=True)
class TripPerDiemCalculation:
    """Per diem for a whole trip with its daily breakdown."""
    start_date: date
    end_date: date
    total_days: int
    total_lodging: Decimal
    total_mie: Decimal
    total_per_diem: Decimal
    daily_breakdown: tuple[PerDiemDay, ...] = field(default_factory=tuple)
