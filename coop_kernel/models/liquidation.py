"""
Module: coop_kernel.models.liquidation
Responsibility: ORM persistence for liquidation records and their links to
    the ledger entries each liquidation produced.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - total_amount = total_savings + total_contributions + total_surplus
      (ck_liquidation_total_consistent).
    - Liquidation and LiquidationEntry rows are immutable once created
      (db/immutability.py).
    - A LiquidationEntry references a ledger entry; it does not own it.

Failure modes:
    - IntegrityError if the totals are inconsistent.
    - ImmutabilityViolationError on update/delete.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase, UUIDString


class LiquidationType(str, Enum):
    PERIODIC = "periodic"
    EXIT = "exit"

    @property
    def label(self) -> str:
        """Human label used in ledger descriptions."""
        return "Periodic" if self is LiquidationType.PERIODIC else "Exit"


class Liquidation(TrackedBase):
    """
    The record that a member's accounts were paid out and zeroed.

    Contract:
        Written once by the liquidation engine, in the same transaction as
        the ledger entries it links to.
    """

    __tablename__ = "liquidations"

    __table_args__ = (
        CheckConstraint(
            "total_amount = total_savings + total_contributions + total_surplus",
            name="ck_liquidation_total_consistent",
        ),
        Index("idx_liquidation_member", "member_id"),
        Index("idx_liquidation_cooperative_date", "cooperative_id", "liquidation_date"),
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

    liquidation_type: Mapped[LiquidationType] = mapped_column(
        String(20),
        nullable=False,
    )

    liquidation_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    total_savings: Mapped[Decimal] = mapped_column(nullable=False)
    total_contributions: Mapped[Decimal] = mapped_column(nullable=False)
    total_surplus: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    member_continues: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    processed_by_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Liquidation {self.liquidation_type} member={self.member_id} total={self.total_amount}>"


class LiquidationEntry(TrackedBase):
    """Link between a liquidation and one ledger entry it produced."""

    __tablename__ = "liquidation_entries"

    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_liquidation_entry_transaction"),
        Index("idx_liquidation_entry_liquidation", "liquidation_id"),
    )

    liquidation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("liquidations.id"),
        nullable=False,
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("transactions.id"),
        nullable=False,
    )

    # Order of the entry within its liquidation (savings, contributions, surplus)
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
