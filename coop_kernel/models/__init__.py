"""Domain models for the cooperative ledger kernel."""

from coop_kernel.models.account import Account, AccountType
from coop_kernel.models.liquidation import (
    Liquidation,
    LiquidationEntry,
    LiquidationType,
)
from coop_kernel.models.member import Member
from coop_kernel.models.receipt import RECEIPT_TYPE_LIQUIDATION, Receipt
from coop_kernel.models.transaction import (
    LedgerTransaction,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "Account",
    "AccountType",
    "LedgerTransaction",
    "Liquidation",
    "LiquidationEntry",
    "LiquidationType",
    "Member",
    "RECEIPT_TYPE_LIQUIDATION",
    "Receipt",
    "TransactionStatus",
    "TransactionType",
]
