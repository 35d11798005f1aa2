"""
Module: coop_kernel.models.member
Responsibility: ORM persistence for cooperative members, the owners of the
    savings, contributions and surplus accounts.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - identification is unique; member_code is unique when present.
    - last_liquidation_date never moves backwards (ORM listener in
      db/immutability.py).  Only the liquidation workflow writes it.
    - is_active flips to False only on a liquidation where the member does
      not continue.

Failure modes:
    - IntegrityError on duplicate identification or member_code.
"""

from datetime import date

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase


class Member(TrackedBase):
    """
    A person affiliated with a cooperative.

    Guarantees:
        - Exactly one active/inactive state.
        - The eligibility reference date is last_liquidation_date, or
          affiliation_date when the member was never liquidated.
    """

    __tablename__ = "members"

    __table_args__ = (
        UniqueConstraint("identification", name="uq_member_identification"),
        UniqueConstraint("member_code", name="uq_member_code"),
        Index("idx_member_cooperative_active", "cooperative_id", "is_active"),
    )

    cooperative_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # National identification document
    identification: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    member_code: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    affiliation_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    last_liquidation_date: Mapped[date | None] = mapped_column(
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    @property
    def liquidation_reference_date(self) -> date:
        """Date the liquidation clock runs from."""
        return self.last_liquidation_date or self.affiliation_date

    def __repr__(self) -> str:
        return f"<Member {self.identification}: {self.full_name}>"
