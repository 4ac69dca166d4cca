"""
Cash-flow Kernel

The account ledger and cash-flow reconciliation engine of a print-shop ERP:
- Atomic account balance mutation
- Auditable cash history for every mutation
- Compensated multi-step operations (transfers, advances, expenses)
- Running-balance reconstruction for historical display
"""

__version__ = "0.1.0"
