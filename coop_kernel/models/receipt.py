"""
Module: coop_kernel.models.receipt
Responsibility: ORM persistence for receipts issued for liquidations.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one receipt per liquidation (uq_receipt_liquidation).
    - receipt_number is unique (uq_receipt_number) and formatted YYYY-NNNN.

Failure modes:
    - IntegrityError when two writers race for the same number or the same
      liquidation; the receipt service surfaces it as
      ReceiptGenerationError.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase, UUIDString

RECEIPT_TYPE_LIQUIDATION = "liquidation"


class Receipt(TrackedBase):
    __tablename__ = "receipts"

    __table_args__ = (
        UniqueConstraint("liquidation_id", name="uq_receipt_liquidation"),
        UniqueConstraint("receipt_number", name="uq_receipt_number"),
        Index("idx_receipt_cooperative", "cooperative_id"),
    )

    cooperative_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    liquidation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("liquidations.id"),
        nullable=False,
    )

    member_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("members.id"),
        nullable=False,
    )

    receipt_number: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    receipt_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=RECEIPT_TYPE_LIQUIDATION,
    )

    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Receipt {self.receipt_number} liquidation={self.liquidation_id}>"
