"""
Reimbursement configuration schema.

Defines the parsed, in-memory form of a reimbursement configuration
document: rate tables plus allowance, mileage and receipt policies.  The
loader builds one ``ReimbursementConfig`` from YAML; the wiring methods
hand each engine exactly the part of the configuration it needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from expense_engines.mileage import MileageCalculator
from expense_engines.per_diem import PerDiemAllocator, PerDiemRateTable
from expense_engines.rate_resolver import RateResolver
from expense_engines.receipt_extraction import ReceiptFieldExtractor
from expense_kernel.domain.policy import (
    AllowancePolicy,
    MileagePolicy,
    ReceiptParsingPolicy,
)
from expense_kernel.domain.rates import PerDiemRate, RateRecord

__all__ = [
    "AllowancePolicy",
    "MileagePolicy",
    "ReceiptParsingPolicy",
    "ReimbursementConfig",
]


@dataclass(frozen=True)
class ReimbursementConfig:
    """A loaded reimbursement configuration."""

    mileage_rates: tuple[RateRecord, ...] = field(default_factory=tuple)
    per_diem_rates: tuple[PerDiemRate, ...] = field(default_factory=tuple)
    allowances: AllowancePolicy = field(default_factory=AllowancePolicy)
    mileage: MileagePolicy = field(default_factory=MileagePolicy)
    receipts: ReceiptParsingPolicy = field(default_factory=ReceiptParsingPolicy)
    checksum: str = ""
    source_path: str | None = None

    def rate_resolver(self) -> RateResolver:
        return RateResolver(self.mileage_rates)

    def per_diem_table(self) -> PerDiemRateTable:
        return PerDiemRateTable(self.per_diem_rates)

    def mileage_calculator(self) -> MileageCalculator:
        return MileageCalculator(self.rate_resolver(), self.mileage)

    def per_diem_allocator(self) -> PerDiemAllocator:
        return PerDiemAllocator(self.allowances)

    def receipt_extractor(self) -> ReceiptFieldExtractor:
        return ReceiptFieldExtractor(self.receipts)
