"""
Receipt line-item detection and expense category classification.

Responsibility:
    Find ``Description $Amount`` lines on multi-line receipts, suggest an
    expense category for each by keyword matching, and decide whether a
    receipt spans enough categories to be worth splitting.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Used by
    ``expense_engines.receipt_extraction``.

Invariants enforced:
    - Keyword matching is case-insensitive and whole-word.
    - Confidence is ``min(distinct_matches / 2, 0.95)``; no match yields
      Miscellaneous at 0.0.
    - Total, subtotal, tax and balance lines are never line items.
    - Never raises on arbitrary text; ``None`` or empty text yields ``()``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from decimal import Decimal

from expense_kernel.domain.receipts import (
    CategoryMatch,
    DetectedLineItem,
    ExpenseCategory,
)
from expense_kernel.domain.values import ZERO, Numeric, to_decimal
from expense_kernel.logging_config import get_logger

logger = get_logger("engines.line_items")

# Two distinct keyword hits are treated as a confident match.
KEYWORD_SATURATION = 2
MAX_CATEGORY_CONFIDENCE = 0.95
SPLIT_CONFIDENCE_THRESHOLD = 0.5
MAX_DESCRIPTION_LENGTH = 200

CATEGORY_KEYWORDS: dict[ExpenseCategory, frozenset[str]] = {
    ExpenseCategory.LODGING: frozenset({
        "hotel", "motel", "inn", "resort", "lodging", "room", "night", "stay",
        "suite", "marriott", "hilton", "hyatt", "sheraton", "airbnb",
        "accommodation",
    }),
    ExpenseCategory.MEALS: frozenset({
        "breakfast", "lunch", "dinner", "meal", "food", "restaurant", "cafe",
        "coffee", "room service", "catering", "starbucks", "chipotle",
        "mcdonalds", "grill", "bistro", "snack", "beverage",
    }),
    ExpenseCategory.FUEL: frozenset({
        "gas", "gasoline", "fuel", "diesel", "unleaded", "petrol", "shell",
        "chevron", "exxon", "mobil", "bp", "gallons",
    }),
    ExpenseCategory.GROUND_TRANSPORTATION: frozenset({
        "uber", "lyft", "taxi", "cab", "ride share", "rideshare", "parking",
        "toll", "train", "bus", "shuttle", "rental car", "metro", "subway",
    }),
    ExpenseCategory.AIRFARE: frozenset({
        "airline", "airlines", "flight", "airfare", "boarding pass",
        "baggage", "delta", "united", "american airlines", "southwest",
        "jetblue", "seat upgrade",
    }),
    ExpenseCategory.OFFICE_SUPPLIES: frozenset({
        "office depot", "staples", "paper", "pens", "ink", "toner", "printer",
        "stationery", "supplies", "notebook", "folders",
    }),
    ExpenseCategory.SOFTWARE: frozenset({
        "software", "subscription", "license", "saas", "adobe",
        "creative cloud", "microsoft", "google workspace", "zoom", "slack",
        "github", "dropbox",
    }),
}


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    body = r"\s+".join(re.escape(part) for part in keyword.split())
    return re.compile(rf"(?<!\w){body}(?!\w)", re.IGNORECASE)


# Compiled once, in table order (ties resolve to the earlier category).
_COMPILED_KEYWORDS: tuple[tuple[ExpenseCategory, tuple[tuple[str, re.Pattern[str]], ...]], ...] = tuple(
    (category, tuple((kw, _keyword_pattern(kw)) for kw in sorted(keywords)))
    for category, keywords in CATEGORY_KEYWORDS.items()
)

_AMOUNT = r"\d{1,3}(?:,\d{3})+\.\d{2}|\d+\.\d{2}"
_LINE_ITEM_RE = re.compile(rf"^(?P<description>.+?)\s*\$?\s*(?P<amount>{_AMOUNT})\s*$")
_SKIP_LINE_RE = re.compile(
    r"\b(?:sub\s*-?\s*total|total|tax|balance\s+due|amount\s+due|change\s+due)\b",
    re.IGNORECASE,
)
_PUNCTUATION_RUN_RE = re.compile(r"[^\w\s&'/-]+")
_WHITESPACE_RE = re.compile(r"\s+")


def parse_amount(text: str) -> Decimal:
    """``"1,250.00"`` -> ``Decimal("1250.00")``."""
    return Decimal(text.replace(",", ""))


def classify_category(text: str | None) -> CategoryMatch:
    """Suggest an expense category for a piece of receipt text."""
    if not text:
        return CategoryMatch(ExpenseCategory.MISCELLANEOUS, 0.0)

    best_category = ExpenseCategory.MISCELLANEOUS
    best_keywords: tuple[str, ...] = ()
    for category, patterns in _COMPILED_KEYWORDS:
        matched = tuple(kw for kw, pattern in patterns if pattern.search(text))
        if len(matched) > len(best_keywords):
            best_category = category
            best_keywords = matched

    if not best_keywords:
        return CategoryMatch(ExpenseCategory.MISCELLANEOUS, 0.0)

    confidence = min(len(best_keywords) / KEYWORD_SATURATION, MAX_CATEGORY_CONFIDENCE)
    return CategoryMatch(best_category, confidence, best_keywords)


def clean_description(text: str) -> str:
    """Collapse punctuation noise and whitespace; cap the length."""
    cleaned = _PUNCTUATION_RUN_RE.sub(" ", text)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:MAX_DESCRIPTION_LENGTH].rstrip()


def extract_line_items(raw_text: str | None) -> tuple[DetectedLineItem, ...]:
    """Line items found in receipt text, in text order."""
    if not raw_text:
        return ()

    items: list[DetectedLineItem] = []
    for line in raw_text.splitlines():
        line = line.strip()
        if not line or _SKIP_LINE_RE.search(line):
            continue
        match = _LINE_ITEM_RE.match(line)
        if match is None:
            continue
        description = clean_description(match.group("description"))
        amount = parse_amount(match.group("amount"))
        if not description or amount <= ZERO:
            continue
        category = classify_category(description)
        items.append(
            DetectedLineItem(
                description=description,
                amount=amount,
                suggested_category=category.category,
                confidence=category.confidence,
                keywords=category.keywords,
            )
        )

    if items:
        logger.debug(
            "line_items_detected",
            extra={
                "count": len(items),
                "categories": sorted({i.suggested_category.value for i in items}),
            },
        )
    return tuple(items)


def should_suggest_split(items: Iterable[DetectedLineItem]) -> bool:
    """True when two or more confident items span two or more categories."""
    confident = [i for i in items if i.confidence > SPLIT_CONFIDENCE_THRESHOLD]
    if len(confident) < 2:
        return False
    return len({i.suggested_category for i in confident}) >= 2


def validate_split_total(
    expense_total: Numeric,
    amounts: Sequence[Numeric],
    tolerance: Numeric = Decimal("0.01"),
) -> tuple[bool, str | None]:
    """
    Check that split amounts add up to the expense total.

    Returns ``(True, None)`` when valid, otherwise ``(False, reason)``.
    """
    total = to_decimal(expense_total, "expense_total")
    parts = [to_decimal(a, "amount") for a in amounts]
    tol = to_decimal(tolerance, "tolerance")

    if len(parts) < 2:
        return False, "A split needs at least two parts"
    if any(p <= ZERO for p in parts):
        return False, "Split amounts must be positive"

    split_sum = sum(parts, Decimal("0"))
    difference = abs(split_sum - total)
    if difference > tol:
        return False, (
            f"Split amounts total {split_sum} but the expense total is {total} "
            f"(difference {difference})"
        )
    return True, None
