"""
Typed Exception Hierarchy for the Expense Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Reimbursement amounts are money owed to people. A caller must be able to
tell "you typed a negative distance" apart from "nobody seeded the 2026
IRS rate" without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        calculator.calculate(distance, True, "business", trip_date)
    except Exception as e:
        if "No mileage rate" in str(e):  # FRAGILE - message might change
            ask_admin_to_seed_rates()

Example - RIGHT way (what this module enables):
    try:
        calculator.calculate(distance, True, "business", trip_date)
    except RateNotFoundError as e:  # Typed catch
        log.warning("missing rate", extra={"category": e.category})
        api_response(code=e.code, as_of=e.as_of)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ExpenseKernelError:

    ExpenseKernelError (base)
    |
    +-- InvalidInputError
    |
    +-- RateError
        +-- RateNotFoundError
        +-- PerDiemRateNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Input           | INVALID_INPUT               | Non-positive distance, empty day range,
                |                             | unknown rate category
----------------|-----------------------------|-----------------------------------------
Rate            | RATE_NOT_FOUND              | No mileage rate for category/date
                | PER_DIEM_RATE_NOT_FOUND     | No per diem rate for location/date

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Input errors are the caller's to fix. They are never corrected
   silently (a zero-mile trip is not "rounded up" to something valid).

2. Rate errors are terminal. They mean the rate table is incomplete and
   an administrator has to act; retrying the same call cannot succeed.

3. Receipt extraction never raises. Noisy OCR text produces empty fields
   with zero confidence instead (see expense_engines.receipt_extraction).
"""

from datetime import date


class ExpenseKernelError(Exception):
    """
    Base exception for all expense kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "EXPENSE_KERNEL_ERROR"


class InvalidInputError(ExpenseKernelError):
    """A computation input is outside its valid domain."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} ({value!r}): {reason}")


# Rate-related exceptions


class RateError(ExpenseKernelError):
    """Base exception for rate lookup errors."""

    code: str = "RATE_ERROR"


class RateNotFoundError(RateError):
    """No mileage rate record covers the category on the given date."""

    code: str = "RATE_NOT_FOUND"

    def __init__(self, category: str, as_of: date):
        self.category = category
        self.as_of = as_of
        super().__init__(
            f"No mileage rate found for category '{category}' as of {as_of.isoformat()}"
        )


class PerDiemRateNotFoundError(RateError):
    """No per diem rate covers the location on the given date."""

    code: str = "PER_DIEM_RATE_NOT_FOUND"

    def __init__(self, location: str, as_of: date):
        self.location = location
        self.as_of = as_of
        super().__init__(
            f"No per diem rate found for {location} as of {as_of.isoformat()}"
        )
