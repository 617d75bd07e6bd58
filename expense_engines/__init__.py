"""
Module: expense_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    reimbursement engines.  This is the canonical import surface for
    callers (configuration wiring, expense workflows, tests).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import expense_kernel (domain values, exceptions, logging)
    and sibling engine modules.  MUST NOT import expense_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in explicitly, or read from an injected ``Clock``.
    - Decimal-only arithmetic for every monetary amount and rate.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are traced via the ``@traced_engine`` decorator
    (see ``expense_engines.tracer``), emitting EXPENSE_ENGINE_TRACE log
    records with engine name, version, input fingerprint, and duration.

Usage:
    from expense_engines.rate_resolver import RateResolver
    from expense_engines.mileage import MileageCalculator
    from expense_engines.per_diem import PerDiemAllocator, PerDiemRateTable
    from expense_engines.receipt_extraction import ReceiptFieldExtractor
"""

from expense_kernel.logging_config import get_logger

logger = get_logger("engines")

from expense_engines.line_items import (
    CATEGORY_KEYWORDS,
    classify_category,
    extract_line_items,
    should_suggest_split,
    validate_split_total,
)
from expense_engines.mileage import MileageCalculator, summarize_trips
from expense_engines.per_diem import (
    PerDiemAllocator,
    PerDiemRateTable,
    calculate_meal_deduction,
    calculate_travel_day_mie,
)
from expense_engines.rate_resolver import (
    RateResolver,
    find_applicable_rate,
    find_rate_overlaps,
)
from expense_engines.receipt_extraction import (
    ReceiptFieldExtractor,
    fallback_result,
    merchant_from_filename,
)
from expense_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Rate resolution
    "RateResolver",
    "find_applicable_rate",
    "find_rate_overlaps",
    # Mileage
    "MileageCalculator",
    "summarize_trips",
    # Per diem
    "PerDiemAllocator",
    "PerDiemRateTable",
    "calculate_meal_deduction",
    "calculate_travel_day_mie",
    # Receipts
    "ReceiptFieldExtractor",
    "fallback_result",
    "merchant_from_filename",
    "CATEGORY_KEYWORDS",
    "classify_category",
    "extract_line_items",
    "should_suggest_split",
    "validate_split_total",
    # Tracing
    "traced_engine",
    "compute_input_fingerprint",
]
