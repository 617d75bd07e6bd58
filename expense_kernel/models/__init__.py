"""ORM models for the reimbursement rate tables."""

from expense_kernel.models.rate_tables import MileageRateModel, PerDiemRateModel

__all__ = [
    "MileageRateModel",
    "PerDiemRateModel",
]
