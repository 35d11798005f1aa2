"""
Module: coop_kernel.models.transaction
Responsibility: ORM persistence for ledger entries, the append-only record
    behind every account balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount > 0 (ck_transaction_amount_positive); direction comes from
      transaction_type, never from the sign of amount.
    - Append-only: UPDATE and DELETE are rejected by db/immutability.py.
    - Only COMPLETED entries count toward an account balance.

Failure modes:
    - IntegrityError if amount <= 0 reaches the database.
    - ImmutabilityViolationError on any attempt to modify or delete a row.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase, UUIDString


class TransactionType(str, Enum):
    """Kinds of ledger entry and the direction each moves the balance."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    ADJUSTMENT = "adjustment"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    SURPLUS_DISTRIBUTION = "surplus_distribution"
    LIQUIDATION = "liquidation"

    @property
    def is_debit(self) -> bool:
        return self in _DEBIT_TYPES

    def signed(self, amount: Decimal) -> Decimal:
        """Effect of an entry of this type on the account balance."""
        return -amount if self.is_debit else amount


_DEBIT_TYPES = frozenset(
    {
        TransactionType.WITHDRAWAL,
        TransactionType.TRANSFER_OUT,
        TransactionType.LIQUIDATION,
    }
)


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LedgerTransaction(TrackedBase):
    """
    One immutable movement on one account.

    Guarantees:
        - fiscal_year is resolved from transaction_date when the entry is
          written and never recomputed.
        - created_by_id is the actor who caused the movement.
    """

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        Index("idx_transaction_account", "account_id"),
        Index("idx_transaction_account_status", "account_id", "status"),
        Index("idx_transaction_fiscal_year", "fiscal_year"),
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    transaction_type: Mapped[TransactionType] = mapped_column(
        String(30),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    transaction_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    fiscal_year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    status: Mapped[TransactionStatus] = mapped_column(
        String(20),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )

    def __repr__(self) -> str:
        return f"<LedgerTransaction {self.transaction_type} {self.amount} account={self.account_id}>"
