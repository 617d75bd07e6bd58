"""
Effective-dated mileage rate resolution.

Responsibility:
    Given a category and a date, select the applicable ``RateRecord`` from
    an in-memory list of effective-dated records.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Records are materialized
    by the caller (config loader or ``MileageRateSelector``).

Invariants enforced:
    - A record applies when ``effective_from <= as_of`` and
      (``effective_until is None`` or ``effective_until >= as_of``).
    - Among applicable records the latest ``effective_from`` wins; equal
      ``effective_from`` keeps the record listed first.  Identical inputs
      always resolve to the identical record.
    - The engine never reads the system clock; "current" resolution takes
      an injected ``Clock``.

Failure modes:
    - RateNotFoundError when no record applies.  Terminal: the rate table
      is missing seed data and retrying cannot help.
    - InvalidInputError for an unknown category string.

Usage:
    resolver = RateResolver(records)
    record = resolver.resolve("business", date(2025, 11, 20))
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from itertools import combinations

from expense_engines.tracer import traced_engine
from expense_kernel.domain.clock import Clock
from expense_kernel.domain.rates import RateCategory, RateRecord, coerce_category
from expense_kernel.exceptions import RateNotFoundError
from expense_kernel.logging_config import get_logger

logger = get_logger("engines.rate_resolver")


def _ranges_overlap(a: RateRecord, b: RateRecord) -> bool:
    a_end = a.effective_until or date.max
    b_end = b.effective_until or date.max
    return a.effective_from <= b_end and b.effective_from <= a_end


def find_rate_overlaps(
    records: Iterable[RateRecord],
) -> list[tuple[RateRecord, RateRecord]]:
    """Pairs of same-category records whose effective ranges overlap."""
    by_category: dict[RateCategory, list[RateRecord]] = {}
    for record in records:
        by_category.setdefault(record.category, []).append(record)

    overlaps: list[tuple[RateRecord, RateRecord]] = []
    for category in RateCategory:
        for a, b in combinations(by_category.get(category, []), 2):
            if _ranges_overlap(a, b):
                overlaps.append((a, b))
    return overlaps


def find_applicable_rate(
    records: Iterable[RateRecord],
    category: RateCategory | str,
    as_of: date,
) -> RateRecord | None:
    """
    The record that applies to ``category`` on ``as_of``, or None.

    Latest ``effective_from`` wins; on a tie the earlier record in
    ``records`` is kept.
    """
    category = coerce_category(category)
    matches = [
        r for r in records
        if r.category == category and r.is_effective(as_of)
    ]
    if not matches:
        return None

    if len(matches) > 1:
        logger.warning(
            "rate_overlap_detected",
            extra={
                "category": category.value,
                "as_of": as_of,
                "match_count": len(matches),
                "effective_from": [m.effective_from for m in matches],
            },
        )

    best = matches[0]
    for candidate in matches[1:]:
        if candidate.effective_from > best.effective_from:
            best = candidate
    return best


class RateResolver:
    """
    Resolves mileage rates from a fixed set of effective-dated records.

    The record list is copied at construction; the resolver holds no other
    state and may be shared freely.
    """

    def __init__(self, records: Iterable[RateRecord]):
        self._records: tuple[RateRecord, ...] = tuple(records)

    @property
    def records(self) -> tuple[RateRecord, ...]:
        return self._records

    @traced_engine("rate_resolver", "1.0", fingerprint_fields=("category", "as_of"))
    def resolve(self, category: RateCategory | str, as_of: date) -> RateRecord:
        """
        Find the rate record for ``category`` on ``as_of``.

        Raises:
            RateNotFoundError: No record covers the category on that date.
            InvalidInputError: ``category`` is not a known category.
        """
        record = find_applicable_rate(self._records, category, as_of)
        if record is None:
            resolved = coerce_category(category)
            logger.warning(
                "mileage_rate_not_found",
                extra={"category": resolved.value, "as_of": as_of},
            )
            raise RateNotFoundError(resolved.value, as_of)

        logger.debug(
            "mileage_rate_resolved",
            extra={
                "category": record.category.value,
                "as_of": as_of,
                "rate": record.rate,
                "effective_from": record.effective_from,
            },
        )
        return record

    def resolve_current(self, category: RateCategory | str, clock: Clock) -> RateRecord:
        """Resolve the rate in effect on the clock's current date."""
        return self.resolve(category, clock.today())
