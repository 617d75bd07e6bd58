"""Pure value objects for the reimbursement engines (zero I/O)."""
