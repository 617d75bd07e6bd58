"""
Rate Types (``expense_kernel.domain.rates``).

Responsibility
--------------
Frozen dataclass value objects for effective-dated reimbursement rates:
IRS-style mileage rates by category, and GSA-style per diem rates by
location.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Consumed by
``expense_engines.rate_resolver``, ``expense_engines.mileage`` and
``expense_engines.per_diem``; produced by the config loader and the
rate-table selectors.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``effective_until is None`` means open-ended (currently active).
* ``effective_until`` may not precede ``effective_from``.

Failure modes
-------------
* Construction with a negative rate raises ``ValueError``.
* Construction with an inverted date range raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import NamedTuple
from uuid import UUID

from expense_kernel.exceptions import InvalidInputError


class RateCategory(str, Enum):
    """IRS standard mileage rate categories."""
    BUSINESS = "business"
    MEDICAL = "medical"
    CHARITY = "charity"
    MOVING = "moving"


def coerce_category(category: RateCategory | str) -> RateCategory:
    """Accept a ``RateCategory`` or its string value, in any case."""
    if isinstance(category, RateCategory):
        return category
    try:
        return RateCategory(str(category).strip().lower())
    except ValueError as e:
        raise InvalidInputError(
            "category",
            category,
            f"must be one of {[c.value for c in RateCategory]}",
        ) from e


class RateSource(str, Enum):
    """Where an effective mileage rate came from."""
    IRS = "irs"
    CUSTOM = "custom"


def _check_range(effective_from: date, effective_until: date | None) -> None:
    if effective_until is not None and effective_until < effective_from:
        raise ValueError(
            f"effective_until ({effective_until}) cannot precede "
            f"effective_from ({effective_from})"
        )


def _is_effective(
    effective_from: date, effective_until: date | None, as_of: date,
) -> bool:
    if effective_from > as_of:
        return False
    return effective_until is None or effective_until >= as_of


# ---------------------------------------------------------------------------
# Mileage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateRecord:
    """A time-bounded per-mile reimbursement rate for one category.

    For a given category, effective ranges must not overlap; see
    ``expense_engines.rate_resolver.find_rate_overlaps``.
    """
    category: RateCategory
    rate: Decimal  # currency per mile, e.g. Decimal("0.670")
    effective_from: date
    effective_until: date | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.category, RateCategory):
            object.__setattr__(self, "category", RateCategory(self.category))
        if not isinstance(self.rate, Decimal):
            object.__setattr__(self, "rate", Decimal(str(self.rate)))
        if self.rate < Decimal("0"):
            raise ValueError(f"rate cannot be negative: {self.rate}")
        _check_range(self.effective_from, self.effective_until)

    def is_effective(self, as_of: date) -> bool:
        """Whether this record applies on ``as_of`` (bounds inclusive)."""
        return _is_effective(self.effective_from, self.effective_until, as_of)


@dataclass(frozen=True)
class EffectiveMileageRate:
    """The per-mile rate an organization actually reimburses at.

    ``irs_rate`` is always reported, even when a custom organization rate
    overrides it, so reviewers can compare the two.
    """
    rate: Decimal
    source: RateSource
    irs_rate: Decimal
    effective_date: date


# ---------------------------------------------------------------------------
# Per diem
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Location:
    """A travel destination, at country, state, or city granularity."""
    country_code: str
    state: str | None = None
    city: str | None = None

    def __str__(self) -> str:
        parts = [p for p in (self.city, self.state, self.country_code) if p]
        return ", ".join(parts)


@dataclass(frozen=True)
class PerDiemRate:
    """GSA-style per diem rate for a location and date range.

    ``organization_id is None`` marks a system default rate; an
    organization may publish its own rates that take precedence.  A rate
    with neither ``state`` nor ``city`` is the country-wide standard rate.
    """
    location_name: str
    country_code: str
    lodging_rate: Decimal  # max nightly lodging
    mie_rate: Decimal  # meals & incidental expenses, full day
    effective_from: date
    effective_until: date | None = None
    state: str | None = None
    city: str | None = None
    organization_id: UUID | None = None
    is_active: bool = True
    source: str = "gsa"

    def __post_init__(self) -> None:
        for name in ("lodging_rate", "mie_rate"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                value = Decimal(str(value))
                object.__setattr__(self, name, value)
            if value < Decimal("0"):
                raise ValueError(f"{name} cannot be negative: {value}")
        if self.city is not None and self.state is None:
            raise ValueError(
                f"city-level rate {self.location_name!r} requires a state"
            )
        _check_range(self.effective_from, self.effective_until)

    @property
    def total_rate(self) -> Decimal:
        """Full daily rate (lodging + M&IE)."""
        return self.lodging_rate + self.mie_rate

    @property
    def specificity(self) -> int:
        """0 for city-level, 1 for state-level, 2 for country-level."""
        if self.city is not None:
            return 0
        if self.state is not None:
            return 1
        return 2

    def is_effective(self, as_of: date) -> bool:
        """Whether this rate applies on ``as_of`` (bounds inclusive)."""
        return _is_effective(self.effective_from, self.effective_until, as_of)


class DailyRate(NamedTuple):
    """The (lodging, M&IE) pair a daily rate lookup returns for one day."""
    lodging_rate: Decimal
    mie_rate: Decimal
