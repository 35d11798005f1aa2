"""
Coop Kernel - cooperative account ledger

A member account ledger with:
- Cached balances backed by an append-only ledger
- Atomic, batch-wide liquidations
- Eligibility scanning for periodic liquidation
- Typed errors and structured logging
"""

__version__ = "0.1.0"
