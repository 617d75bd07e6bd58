"""
Expense Kernel

Value objects, typed errors, and persistence plumbing shared by the
reimbursement engines:
- Effective-dated mileage and per diem rate records
- Decimal-only monetary values
- Structured JSON logging
- Read-only selectors over the rate tables
"""

__version__ = "0.1.0"
