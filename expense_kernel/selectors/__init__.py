"""Read-only selectors over the rate tables."""

from expense_kernel.selectors.rate_selector import (
    MileageRateSelector,
    PerDiemRateSelector,
)

__all__ = [
    "MileageRateSelector",
    "PerDiemRateSelector",
]
