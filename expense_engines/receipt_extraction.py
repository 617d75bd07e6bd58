"""
Best-effort receipt field extraction from OCR text.

Responsibility:
    Pull merchant, total amount, date, tax and currency out of raw OCR
    text with heuristics, tagging every field with a confidence score, and
    attach detected line items with a split suggestion.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The OCR service that
    produces the text lives outside this package.

Invariants enforced:
    - ``extract`` never raises.  Anything it cannot read becomes an empty
      field with zero confidence.
    - Identical text always yields an identical result.
    - Overall confidence is the mean of the non-zero field confidences.

Heuristics:
    merchant   first non-empty line                            0.85
    amount     largest plausible money amount on any line       0.75
    date       first line carrying a recognizable date          0.80
    tax        first amount on the first "tax" line with one    0.70
    currency   code keyword 0.90, else symbol 0.85,
               else the default currency when amounts exist     0.50
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal

from expense_engines.line_items import extract_line_items, parse_amount, should_suggest_split
from expense_engines.tracer import traced_engine
from expense_kernel.domain.policy import ReceiptParsingPolicy
from expense_kernel.domain.receipts import ExtractedField, ReceiptExtractionResult
from expense_kernel.logging_config import get_logger

logger = get_logger("engines.receipt_extraction")

MERCHANT_CONFIDENCE = 0.85
AMOUNT_CONFIDENCE = 0.75
DATE_CONFIDENCE = 0.80
TAX_CONFIDENCE = 0.70
CURRENCY_KEYWORD_CONFIDENCE = 0.90
CURRENCY_SYMBOL_CONFIDENCE = 0.85
CURRENCY_DEFAULT_CONFIDENCE = 0.50
FILENAME_MERCHANT_CONFIDENCE = 0.3
FALLBACK_OVERALL_CONFIDENCE = 0.075

UNKNOWN_MERCHANT = "Unknown Merchant"

CURRENCY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("USD", "USD"),
    ("EUR", "EUR"),
    ("GBP", "GBP"),
    ("EURO", "EUR"),
    ("DOLLAR", "USD"),
    ("POUND", "GBP"),
)

# Multi-character symbols come first so "R$" is not read as "$".
CURRENCY_SYMBOLS: tuple[tuple[str, str], ...] = (
    ("R$", "BRL"),
    ("C$", "CAD"),
    ("A$", "AUD"),
    ("$", "USD"),
    ("€", "EUR"),
    ("£", "GBP"),
    ("¥", "JPY"),
)

_AMOUNT_RE = re.compile(r"(?<![\d,.])\$?\s*(\d{1,3}(?:,\d{3})+\.\d{2}|\d+\.\d{2})(?!\d)")
_TAX_LINE_RE = re.compile(r"tax", re.IGNORECASE)

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# (pattern, field order) tried in order; the first pattern found on a
# line decides that line.
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?<!\d)(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})(?!\d)"), "mdy"),
    (re.compile(r"(?<!\d)(\d{1,2})-(\d{1,2})-(\d{4}|\d{2})(?!\d)"), "mdy"),
    (re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)"), "ymd"),
    (
        re.compile(
            r"\b(Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?"
            r"|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\b\.?"
            r"\s+(\d{1,2}),?\s+(\d{4})(?!\d)",
            re.IGNORECASE,
        ),
        "month_name",
    ),
)

_FILENAME_EXTENSION_RE = re.compile(r"\.(jpg|jpeg|png|pdf)$", re.IGNORECASE)
_FILENAME_PREFIX_RE = re.compile(r"^(IMG|Screenshot|Photo|Scan|Receipt)[-_\s]*", re.IGNORECASE)


def _expand_year(year: str) -> int:
    value = int(year)
    return 2000 + value if len(year) == 2 else value


def _to_iso(match: re.Match[str], order: str) -> str | None:
    a, b, c = match.groups()
    try:
        if order == "mdy":
            parsed = date(_expand_year(c), int(a), int(b))
        elif order == "ymd":
            parsed = date(int(a), int(b), int(c))
        else:
            parsed = date(int(c), _MONTHS[a[:3].lower()], int(b))
    except ValueError:
        return None
    return parsed.isoformat()


def find_amounts(line: str) -> list[Decimal]:
    """Money amounts on one line, in order of appearance."""
    return [parse_amount(m.group(1)) for m in _AMOUNT_RE.finditer(line)]


def parse_date(lines: list[str]) -> str | None:
    """First recognizable date across ``lines``, as ``YYYY-MM-DD``."""
    for line in lines:
        for pattern, order in _DATE_PATTERNS:
            match = pattern.search(line)
            if match is None:
                continue
            iso = _to_iso(match, order)
            if iso is not None:
                return iso
            break
    return None


def detect_currency(text: str, has_amounts: bool, default: str = "USD") -> ExtractedField[str]:
    """Currency from code keywords, then symbols, then the default."""
    upper = text.upper()
    for keyword, code in CURRENCY_KEYWORDS:
        if keyword in upper:
            return ExtractedField(code, CURRENCY_KEYWORD_CONFIDENCE)
    for symbol, code in CURRENCY_SYMBOLS:
        if symbol in text:
            return ExtractedField(code, CURRENCY_SYMBOL_CONFIDENCE)
    if has_amounts:
        return ExtractedField(default, CURRENCY_DEFAULT_CONFIDENCE)
    return ExtractedField.empty()


def overall_confidence(*confidences: float) -> float:
    """Arithmetic mean of the non-zero confidences; 0.0 when none."""
    found = [c for c in confidences if c > 0]
    if not found:
        return 0.0
    return sum(found) / len(found)


def merchant_from_filename(filename: str | None) -> str:
    """Merchant name guessed from an uploaded file's name."""
    base = _FILENAME_EXTENSION_RE.sub("", filename or "")
    cleaned = _FILENAME_PREFIX_RE.sub("", base)
    cleaned = re.sub(r"[-_]", " ", cleaned).strip()
    return cleaned or UNKNOWN_MERCHANT


def fallback_result(
    filename: str | None, policy: ReceiptParsingPolicy | None = None,
) -> ReceiptExtractionResult:
    """Low-confidence result for a receipt whose OCR failed outright."""
    policy = policy or ReceiptParsingPolicy()
    return ReceiptExtractionResult(
        merchant=ExtractedField(merchant_from_filename(filename), FILENAME_MERCHANT_CONFIDENCE),
        overall_confidence=FALLBACK_OVERALL_CONFIDENCE,
        manual_review_threshold=policy.manual_review_threshold,
    )


class ReceiptFieldExtractor:
    """Extracts receipt fields from OCR text."""

    def __init__(self, policy: ReceiptParsingPolicy | None = None):
        self._policy = policy or ReceiptParsingPolicy()

    @property
    def policy(self) -> ReceiptParsingPolicy:
        return self._policy

    def needs_manual_review(self, result: ReceiptExtractionResult) -> bool:
        """Whether ``result`` falls below this extractor's review threshold."""
        return result.overall_confidence < self._policy.manual_review_threshold

    def fallback(self, filename: str | None) -> ReceiptExtractionResult:
        """``fallback_result`` under this extractor's policy."""
        return fallback_result(filename, self._policy)

    @traced_engine("receipt_extraction", "1.0")
    def extract(self, raw_text: str | None) -> ReceiptExtractionResult:
        """Fields found in ``raw_text``; empty fields where nothing was found."""
        if not isinstance(raw_text, str) or not raw_text.strip():
            logger.debug("receipt_text_empty")
            return ReceiptExtractionResult(
                raw_text=raw_text if isinstance(raw_text, str) else "",
                manual_review_threshold=self._policy.manual_review_threshold,
            )

        lines = [line.strip() for line in raw_text.splitlines()]
        non_empty = [line for line in lines if line]

        merchant = ExtractedField(non_empty[0], MERCHANT_CONFIDENCE)

        amounts = [
            amount
            for line in non_empty
            for amount in find_amounts(line)
            if Decimal("0") < amount < self._policy.max_plausible_amount
        ]
        amount = (
            ExtractedField(max(amounts), AMOUNT_CONFIDENCE)
            if amounts else ExtractedField.empty()
        )

        iso_date = parse_date(non_empty)
        receipt_date = (
            ExtractedField(iso_date, DATE_CONFIDENCE)
            if iso_date is not None else ExtractedField.empty()
        )

        tax: ExtractedField[Decimal] = ExtractedField.empty()
        for line in non_empty:
            if _TAX_LINE_RE.search(line):
                found = find_amounts(line)
                if found:
                    tax = ExtractedField(found[0], TAX_CONFIDENCE)
                    break

        currency = detect_currency(
            raw_text, bool(amounts), self._policy.default_currency,
        )

        line_items = extract_line_items(raw_text)
        result = ReceiptExtractionResult(
            merchant=merchant,
            amount=amount,
            date=receipt_date,
            tax=tax,
            currency=currency,
            overall_confidence=overall_confidence(
                merchant.confidence,
                amount.confidence,
                receipt_date.confidence,
                tax.confidence,
                currency.confidence,
            ),
            raw_text=raw_text,
            line_items=line_items,
            suggest_split=should_suggest_split(line_items),
            manual_review_threshold=self._policy.manual_review_threshold,
        )

        logger.info(
            "receipt_fields_extracted",
            extra={
                "overall_confidence": round(result.overall_confidence, 4),
                "fields_found": sorted(
                    name for name, c in result.field_confidences().items() if c > 0
                ),
                "line_item_count": len(line_items),
                "suggest_split": result.suggest_split,
            },
        )
        return result
