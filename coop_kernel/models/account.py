"""
Module: coop_kernel.models.account
Responsibility: ORM persistence for member sub-accounts and their cached
    balances.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One account per (member, account_type) (uq_account_member_type).
    - current_balance >= 0 (ck_account_balance_non_negative).
    - current_balance equals the signed sum of the account's completed
      ledger entries.  Only services/ledger_writer.py writes it, in the same
      flush as the entry that changes it.

Failure modes:
    - IntegrityError on a second account of the same type for a member.
    - IntegrityError if a balance would be stored below zero.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase, UUIDString


class AccountType(str, Enum):
    """The three sub-accounts every member holds."""

    SAVINGS = "savings"
    CONTRIBUTIONS = "contributions"
    SURPLUS = "surplus"


class Account(TrackedBase):
    """
    Member sub-account with a cached balance.

    Non-goals:
        - Does NOT hold ledger history; see LedgerTransaction.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("member_id", "account_type", name="uq_account_member_type"),
        CheckConstraint("current_balance >= 0", name="ck_account_balance_non_negative"),
        Index("idx_account_cooperative", "cooperative_id"),
    )

    member_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("members.id"),
        nullable=False,
    )

    cooperative_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    current_balance: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0.00"),
    )

    def __repr__(self) -> str:
        return f"<Account {self.account_type} member={self.member_id} balance={self.current_balance}>"
