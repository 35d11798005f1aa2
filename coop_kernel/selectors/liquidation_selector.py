"""
Module: coop_kernel.selectors.liquidation_selector
Responsibility: Read-only queries over liquidation records: lookup by id,
    filtered history, and per-year aggregates for stats.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - History is ordered by liquidation_date descending (newest first),
      ties broken by creation time.
    - Linked transaction ids are returned in entry order.

Failure modes:
    - get_by_id() returns None for an unknown id; raising is the caller's
      decision.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from coop_kernel.domain.dtos import LiquidationHistoryFilter, LiquidationInfo, to_money
from coop_kernel.models.liquidation import Liquidation, LiquidationEntry, LiquidationType
from coop_kernel.models.member import Member
from coop_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LiquidationTotals:
    """Aggregate over a date range for one cooperative."""

    count: int
    periodic_count: int
    exit_count: int
    total_amount: Decimal


class LiquidationSelector(BaseSelector[Liquidation]):
    """Selector for liquidation records."""

    async def get_by_id(self, liquidation_id: UUID) -> LiquidationInfo | None:
        stmt = (
            select(Liquidation, Member)
            .join(Member, Member.id == Liquidation.member_id)
            .where(Liquidation.id == liquidation_id)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None

        liquidation, member = row
        transaction_ids = await self.transaction_ids_for([liquidation.id])
        return LiquidationInfo.from_model(
            liquidation, member, transaction_ids.get(liquidation.id, ())
        )

    async def history(self, filters: LiquidationHistoryFilter) -> list[LiquidationInfo]:
        """
        Liquidations matching every set field of ``filters``.

        start_date and end_date are inclusive.
        """
        stmt = select(Liquidation, Member).join(Member, Member.id == Liquidation.member_id)

        if filters.member_id is not None:
            stmt = stmt.where(Liquidation.member_id == filters.member_id)
        if filters.cooperative_id is not None:
            stmt = stmt.where(Liquidation.cooperative_id == filters.cooperative_id)
        if filters.liquidation_type is not None:
            stmt = stmt.where(
                Liquidation.liquidation_type == filters.liquidation_type.value
            )
        if filters.start_date is not None:
            stmt = stmt.where(Liquidation.liquidation_date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(Liquidation.liquidation_date <= filters.end_date)

        stmt = stmt.order_by(
            Liquidation.liquidation_date.desc(),
            Liquidation.created_at.desc(),
        )
        if filters.limit is not None:
            stmt = stmt.limit(filters.limit)

        rows = (await self.session.execute(stmt)).all()
        transaction_ids = await self.transaction_ids_for([liq.id for liq, _ in rows])

        return [
            LiquidationInfo.from_model(liq, member, transaction_ids.get(liq.id, ()))
            for liq, member in rows
        ]

    async def transaction_ids_for(
        self,
        liquidation_ids: list[UUID],
    ) -> dict[UUID, tuple[UUID, ...]]:
        """Ledger entry ids linked to each liquidation, in entry order."""
        if not liquidation_ids:
            return {}

        stmt = (
            select(LiquidationEntry.liquidation_id, LiquidationEntry.transaction_id)
            .where(LiquidationEntry.liquidation_id.in_(liquidation_ids))
            .order_by(LiquidationEntry.liquidation_id, LiquidationEntry.position)
        )
        grouped: dict[UUID, list[UUID]] = defaultdict(list)
        for liquidation_id, transaction_id in (await self.session.execute(stmt)).all():
            grouped[liquidation_id].append(transaction_id)

        return {k: tuple(v) for k, v in grouped.items()}

    async def totals_between(
        self,
        cooperative_id: str,
        start: date,
        end: date,
    ) -> LiquidationTotals:
        """Counts and amount of liquidations dated within [start, end]."""
        stmt = (
            select(
                Liquidation.liquidation_type,
                func.count(Liquidation.id),
                func.coalesce(func.sum(Liquidation.total_amount), 0),
            )
            .where(
                Liquidation.cooperative_id == cooperative_id,
                Liquidation.liquidation_date >= start,
                Liquidation.liquidation_date <= end,
            )
            .group_by(Liquidation.liquidation_type)
        )

        counts = {t: 0 for t in LiquidationType}
        total = Decimal("0")
        for liquidation_type, count, amount in (await self.session.execute(stmt)).all():
            counts[LiquidationType(liquidation_type)] = count
            total += to_money(amount)

        return LiquidationTotals(
            count=sum(counts.values()),
            periodic_count=counts[LiquidationType.PERIODIC],
            exit_count=counts[LiquidationType.EXIT],
            total_amount=to_money(total),
        )
