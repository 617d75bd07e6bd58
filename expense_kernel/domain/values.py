"""
Values -- Decimal coercion and rounding for reimbursement arithmetic.

Responsibility:
    Turns caller-supplied numbers (form input arrives as int, float, or
    string) into ``Decimal`` at the engine boundary, and rounds monetary
    results to cents.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Floats are converted through ``str`` so ``10.5`` becomes
      ``Decimal("10.5")``, never its binary expansion.
    - Monetary rounding is ROUND_HALF_UP to the cent (no systematic
      underpayment from banker's rounding).

Failure modes:
    - InvalidInputError for booleans, non-numeric strings, NaN, infinity.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from expense_kernel.exceptions import InvalidInputError

CENT = Decimal("0.01")
ZERO = Decimal("0")

Numeric = Decimal | int | float | str


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Coerce a caller-supplied number to a finite ``Decimal``.

    Raises:
        InvalidInputError: If ``value`` is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(field, value, "must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise InvalidInputError(field, value, "must be a number") from e
    if not result.is_finite():
        raise InvalidInputError(field, value, "must be finite")
    return result


def round_money(amount: Decimal) -> Decimal:
    """Round a monetary amount to cents, half-up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
