"""
Reimbursement policy settings consumed by the engines.

Defines the structure and defaults for allowance, mileage and receipt
parsing settings.  Actual values are loaded from YAML configuration at
runtime (see ``expense_config``); the engines only ever see these frozen
objects.
"""

from dataclasses import dataclass
from decimal import Decimal

from expense_kernel.domain.per_diem import MealType
from expense_kernel.logging_config import get_logger

logger = get_logger("domain.policy")


@dataclass(frozen=True)
class AllowancePolicy:
    """
    Per diem allowance rules.

    Defaults follow GSA travel-day and meal-deduction conventions:
    first and last day at 75% of M&IE; provided breakfast, lunch and
    dinner deduct 20%, 30% and 50% of the day's M&IE.
    """

    first_last_day_pct: Decimal = Decimal("0.75")
    breakfast_pct: Decimal = Decimal("0.20")
    lunch_pct: Decimal = Decimal("0.30")
    dinner_pct: Decimal = Decimal("0.50")

    def __post_init__(self):
        for name in ("first_last_day_pct", "breakfast_pct", "lunch_pct", "dinner_pct"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                value = Decimal(str(value))
                object.__setattr__(self, name, value)
            if not Decimal("0") <= value <= Decimal("1"):
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

    def meal_pct(self, meal: MealType) -> Decimal:
        """Deduction percentage for a provided meal."""
        if meal is MealType.BREAKFAST:
            return self.breakfast_pct
        if meal is MealType.LUNCH:
            return self.lunch_pct
        return self.dinner_pct


@dataclass(frozen=True)
class MileagePolicy:
    """
    Organization mileage settings.

    When ``use_custom_rate`` is set and ``custom_rate_per_mile`` is
    positive, the organization reimburses at its own rate instead of the
    IRS standard rate.
    """

    use_custom_rate: bool = False
    custom_rate_per_mile: Decimal | None = None

    def __post_init__(self):
        rate = self.custom_rate_per_mile
        if rate is not None:
            if not isinstance(rate, Decimal):
                rate = Decimal(str(rate))
                object.__setattr__(self, "custom_rate_per_mile", rate)
            if rate < 0:
                raise ValueError("custom_rate_per_mile cannot be negative")
        if self.use_custom_rate:
            logger.debug(
                "mileage_policy_custom_rate",
                extra={"custom_rate_per_mile": str(rate) if rate is not None else None},
            )

    @property
    def applies_custom_rate(self) -> bool:
        return (
            self.use_custom_rate
            and self.custom_rate_per_mile is not None
            and self.custom_rate_per_mile > 0
        )


@dataclass(frozen=True)
class ReceiptParsingPolicy:
    """Receipt text extraction settings."""

    # Amounts at or above this are treated as OCR noise (card numbers etc.).
    max_plausible_amount: Decimal = Decimal("10000")
    manual_review_threshold: float = 0.5
    default_currency: str = "USD"

    def __post_init__(self):
        if not isinstance(self.max_plausible_amount, Decimal):
            object.__setattr__(
                self, "max_plausible_amount", Decimal(str(self.max_plausible_amount)),
            )
        if self.max_plausible_amount <= 0:
            raise ValueError("max_plausible_amount must be positive")
        if not 0.0 <= self.manual_review_threshold <= 1.0:
            raise ValueError(
                f"manual_review_threshold must be within [0.0, 1.0], "
                f"got {self.manual_review_threshold}"
            )
        if len(self.default_currency) != 3 or not self.default_currency.isalpha():
            raise ValueError(
                f"default_currency must be a 3-letter code, got '{self.default_currency}'"
            )
