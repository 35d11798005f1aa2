"""
Service layer for Member operations.

Affiliation (a member plus its three zero-balance accounts), lookups, and
the status changes a liquidation applies to a member.

Returns MemberInfo DTOs, except for the row-locking helper used inside the
liquidation transaction.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coop_kernel.domain.dtos import MemberInfo
from coop_kernel.exceptions import MemberNotFoundError
from coop_kernel.logging_config import get_logger
from coop_kernel.models.account import AccountType
from coop_kernel.models.member import Member
from coop_kernel.services.base import BaseService
from coop_kernel.services.ledger_writer import LedgerWriter

logger = get_logger("services.member")


class MemberService(BaseService[Member]):
    """Service for managing members."""

    def __init__(self, session: AsyncSession, ledger_writer: LedgerWriter | None = None):
        super().__init__(session)
        self._ledger = ledger_writer or LedgerWriter(session)

    async def _get_by_id(self, member_id: UUID) -> Member:
        """Get member by ID, raising if not found."""
        member = await self.session.get(Member, member_id)
        if member is None:
            raise MemberNotFoundError(str(member_id))
        return member

    async def get_member(self, member_id: UUID) -> MemberInfo:
        """
        Get member by ID.

        Raises:
            MemberNotFoundError: If member doesn't exist.
        """
        return MemberInfo.from_model(await self._get_by_id(member_id))

    async def lock_member(self, member_id: UUID) -> Member:
        """
        Load the member row with SELECT ... FOR UPDATE.

        The lock is held until the caller's transaction ends, so two
        liquidations of the same member cannot interleave.

        Raises:
            MemberNotFoundError: If member doesn't exist.
        """
        stmt = (
            select(Member)
            .where(Member.id == member_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        member = (await self.session.execute(stmt)).scalar_one_or_none()
        if member is None:
            raise MemberNotFoundError(str(member_id))
        return member

    async def affiliate_member(
        self,
        cooperative_id: str,
        full_name: str,
        identification: str,
        affiliation_date: date,
        actor_id: UUID,
        member_code: str | None = None,
    ) -> MemberInfo:
        """
        Create a member and open its savings, contributions and surplus
        accounts at zero.
        """
        member = Member(
            cooperative_id=cooperative_id,
            full_name=full_name,
            identification=identification,
            member_code=member_code,
            affiliation_date=affiliation_date,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(member)
        await self.session.flush()

        for account_type in AccountType:
            await self._ledger.open_account(member, account_type, actor_id)

        logger.info(
            "member_affiliated",
            extra={
                "member_id": str(member.id),
                "cooperative_id": cooperative_id,
            },
        )
        return MemberInfo.from_model(member)

    async def record_liquidation(
        self,
        member: Member,
        liquidation_date: date,
        member_continues: bool,
        actor_id: UUID,
    ) -> None:
        """
        Apply a liquidation to the member row.

        last_liquidation_date only moves forward.  A member who does not
        continue is deactivated; a continuing member keeps its current
        state.
        """
        if member.last_liquidation_date is None or liquidation_date > member.last_liquidation_date:
            member.last_liquidation_date = liquidation_date
        if not member_continues:
            member.is_active = False
        member.updated_by_id = actor_id
        await self.session.flush()
