"""
Module: coop_kernel.selectors.eligibility_selector
Responsibility: Find active members due for a periodic liquidation.
Architecture position: Kernel > Selectors.

A member is due once the full years since their last liquidation (or since
affiliation, if never liquidated) reach the policy threshold.  Years are
counted in Python with calendar-aware anniversaries so the query itself is
a plain, portable filter on cooperative and active flag.

Ordering: most years first, then the oldest reference date, then name.
"""

from datetime import date

from sqlalchemy import select

from coop_kernel.domain.dtos import MemberInfo, PendingMember
from coop_kernel.domain.fiscal import full_years_between
from coop_kernel.models.member import Member
from coop_kernel.selectors.base import BaseSelector

DEFAULT_MIN_YEARS = 6


class EligibilitySelector(BaseSelector[Member]):
    def __init__(self, session, min_years: int = DEFAULT_MIN_YEARS):
        super().__init__(session)
        if min_years < 0:
            raise ValueError(f"min_years must be >= 0, got {min_years}")
        self.min_years = min_years

    async def get_members_pending_liquidation(
        self,
        cooperative_id: str,
        as_of: date,
    ) -> list[PendingMember]:
        stmt = select(Member).where(
            Member.cooperative_id == cooperative_id,
            Member.is_active.is_(True),
        )
        result = await self.session.execute(stmt)

        pending = []
        for member in result.scalars():
            info = MemberInfo.from_model(member)
            years = full_years_between(info.reference_date, as_of)
            if years >= self.min_years:
                pending.append(
                    PendingMember(member=info, years_since_last_liquidation=years)
                )

        pending.sort(
            key=lambda p: (
                -p.years_since_last_liquidation,
                p.member.reference_date,
                p.member.full_name,
            )
        )
        return pending
