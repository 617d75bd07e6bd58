"""
Receipt Extraction Types (``expense_kernel.domain.receipts``).

Responsibility
--------------
Frozen value objects for best-effort receipt field extraction from OCR
text: per-field values tagged with a confidence score, detected line
items, and expense category suggestions.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Produced by
``expense_engines.receipt_extraction`` and ``expense_engines.line_items``.

Invariants enforced
-------------------
* Confidence scores are heuristic floats in ``[0.0, 1.0]``; they are not
  calibrated probabilities.
* A field that found nothing has ``value is None`` and ``confidence == 0.0``.
* Amounts are ``Decimal``; dates are ISO ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

# Default review threshold; extractors record their configured one on each result.
MANUAL_REVIEW_THRESHOLD = 0.5


@dataclass(frozen=True)
class ExtractedField(Generic[T]):
    """One extracted receipt field and how much we trust it."""
    value: T | None = None
    confidence: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"confidence must be within [0.0, 1.0], got {self.confidence}"
            )

    @classmethod
    def empty(cls) -> ExtractedField[Any]:
        return cls(value=None, confidence=0.0)

    @property
    def found(self) -> bool:
        return self.value is not None


class ExpenseCategory(str, Enum):
    """Expense categories suggested for receipt line items."""
    LODGING = "Lodging"
    MEALS = "Meals & Entertainment"
    FUEL = "Fuel"
    GROUND_TRANSPORTATION = "Ground Transportation"
    AIRFARE = "Airfare"
    OFFICE_SUPPLIES = "Office Supplies"
    SOFTWARE = "Software/Subscriptions"
    MISCELLANEOUS = "Miscellaneous"


@dataclass(frozen=True)
class CategoryMatch:
    """Result of keyword classification of a piece of text."""
    category: ExpenseCategory
    confidence: float
    keywords: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DetectedLineItem:
    """A ``Description $Amount`` line found on a multi-line receipt."""
    description: str
    amount: Decimal
    suggested_category: ExpenseCategory
    confidence: float
    keywords: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ReceiptExtractionResult:
    """Fields extracted from one receipt's OCR text."""
    merchant: ExtractedField[str] = field(default_factory=ExtractedField.empty)
    amount: ExtractedField[Decimal] = field(default_factory=ExtractedField.empty)
    date: ExtractedField[str] = field(default_factory=ExtractedField.empty)
    tax: ExtractedField[Decimal] = field(default_factory=ExtractedField.empty)
    currency: ExtractedField[str] = field(default_factory=ExtractedField.empty)
    overall_confidence: float = 0.0
    raw_text: str = ""
    line_items: tuple[DetectedLineItem, ...] = field(default_factory=tuple)
    suggest_split: bool = False
    manual_review_threshold: float = MANUAL_REVIEW_THRESHOLD

    @property
    def needs_manual_review(self) -> bool:
        """Whether the caller should prompt for manual entry."""
        return self.overall_confidence < self.manual_review_threshold

    def field_confidences(self) -> dict[str, float]:
        return {
            "merchant": self.merchant.confidence,
            "amount": self.amount.confidence,
            "date": self.date.confidence,
            "tax": self.tax.confidence,
            "currency": self.currency.confidence,
        }
