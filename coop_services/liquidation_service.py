"""
coop_services.liquidation_service -- Liquidation engine and its read side.

Responsibility:
    Zero the savings, contributions and surplus accounts of a batch of
    members in ONE transaction, record what was paid out, update each
    member's status, and only then ask for receipts.  Also serves the
    eligibility scan, previews, history, lookups and yearly stats.

Architecture position:
    Services -- orchestration over kernel selectors and services.  Owns the
    transaction boundary through session_scope(); kernel services only
    flush.

Flow of execute_liquidation():

    LiquidationRequest.create()          validation, no transaction yet
         |
         v
    session_scope() ------------------------------------------------+
    |  for each member id:                                          |
    |    lock member row (FOR UPDATE)        MemberNotFoundError --+|
    |    lock + read balances                                      ||
    |    total == 0 -> skip                                        ||
    |    LedgerWriter: one LIQUIDATION entry per non-zero account  ||
    |    member: last_liquidation_date, is_active                  ||
    |    Liquidation + LiquidationEntry rows                       ||
    +-- commit ------------------------------------ rollback <----++
         |
         v
    CommittedLiquidationBatch(outcomes, hooks)
         |
         v
    run_hooks(): one receipt per outcome, failures captured per result

Invariants enforced:
    - Atomicity: any failure before commit leaves no entry, no record and
      no member change from the batch.
    - Zero-sum: each liquidated account ends at exactly 0.00 and the
      liquidation's total equals the sum of the entries it links.
    - last_liquidation_date never moves backwards.
    - A receipt failure never rolls back or fails a liquidation.

Failure modes:
    - InvalidLiquidationRequestError before any transaction opens.
    - MemberNotFoundError / other CoopKernelError: batch rolled back,
      error propagates unchanged.
    - Anything else: logged with traceback, batch rolled back, re-raised
      as InternalError.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, Awaitable, Callable
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from coop_kernel.db.engine import session_scope
from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.domain.dtos import (
    ZERO,
    LiquidationHistoryFilter,
    LiquidationInfo,
    LiquidationOutcome,
    LiquidationPreview,
    LiquidationRequest,
    LiquidationResult,
    LiquidationStats,
    PendingMember,
    ReceiptInfo,
)
from coop_kernel.domain.fiscal import FiscalYearResolver, fiscal_year_for, make_fiscal_year_resolver
from coop_kernel.exceptions import (
    CoopKernelError,
    InternalError,
    InvalidLiquidationRequestError,
    LiquidationNotFoundError,
)
from coop_kernel.logging_config import LogContext, get_logger
from coop_kernel.models.liquidation import Liquidation, LiquidationEntry
from coop_kernel.models.transaction import TransactionType
from coop_kernel.selectors.balance_selector import BalanceSelector
from coop_kernel.selectors.eligibility_selector import DEFAULT_MIN_YEARS, EligibilitySelector
from coop_kernel.selectors.liquidation_selector import LiquidationSelector
from coop_kernel.services.ledger_writer import LedgerWriter
from coop_kernel.services.member_service import MemberService
from coop_services.receipt_service import ReceiptGenerator

logger = get_logger("services.liquidation")

DEFAULT_PENDING_TOP_N = 5


# ---------------------------------------------------------------------------
# Post-commit contract
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PostCommitHook:
    """Receipt work for one committed liquidation."""

    outcome: LiquidationOutcome
    action: Callable[[UUID], Awaitable[ReceiptInfo]]

    async def run(self) -> LiquidationResult:
        liquidation_id = self.outcome.liquidation_id
        with LogContext.bind(
            member_id=str(self.outcome.member_id),
            liquidation_id=str(liquidation_id),
        ):
            try:
                receipt = await self.action(liquidation_id)
            except Exception as exc:
                # The liquidation is already committed; the failure is
                # reported on the result instead of raised.
                logger.warning("liquidation_receipt_failed", exc_info=True)
                return LiquidationResult.from_outcome(self.outcome, receipt_error=str(exc))

            logger.info(
                "liquidation_receipt_generated",
                extra={"receipt_number": receipt.receipt_number},
            )
            return LiquidationResult.from_outcome(self.outcome, receipt=receipt)


@dataclass(frozen=True)
class CommittedLiquidationBatch:
    """
    A batch that has committed, with the work still owed to it.

    outcomes are durable the moment this object exists.  hooks hold at most
    one entry per outcome; an outcome without a hook gets no receipt.
    """

    outcomes: tuple[LiquidationOutcome, ...]
    hooks: tuple[PostCommitHook, ...] = ()

    async def run_hooks(self) -> list[LiquidationResult]:
        by_liquidation = {hook.outcome.liquidation_id: hook for hook in self.hooks}
        results = []
        for outcome in self.outcomes:
            hook = by_liquidation.get(outcome.liquidation_id)
            if hook is None:
                results.append(LiquidationResult.from_outcome(outcome))
            else:
                results.append(await hook.run())
        return results


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class LiquidationService:
    """
    Liquidation engine, preview, eligibility and history.

    Args:
        session_factory: Produces a fresh AsyncSession per operation.
        receipt_generator: Issues receipts after commit.  None disables
            receipts.
        clock: Decides "today" for liquidation and entry dates.
        fiscal_year_resolver: Tags ledger entries with their fiscal year.
        min_years: Full years before a member is due for periodic
            liquidation.
        pending_top_n: Members listed in stats as most overdue.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        receipt_generator: ReceiptGenerator | None = None,
        clock: Clock | None = None,
        fiscal_year_resolver: FiscalYearResolver = fiscal_year_for,
        min_years: int = DEFAULT_MIN_YEARS,
        pending_top_n: int = DEFAULT_PENDING_TOP_N,
    ):
        self._session_factory = session_factory
        self._receipts = receipt_generator
        self._clock = clock or SystemClock()
        self._fiscal_year = fiscal_year_resolver
        self._min_years = min_years
        self._pending_top_n = pending_top_n

    @classmethod
    def from_config(
        cls,
        config,
        session_factory: Callable[[], AsyncSession],
        receipt_generator: ReceiptGenerator | None = None,
        clock: Clock | None = None,
    ) -> LiquidationService:
        """Build from a coop_config.CoopConfig."""
        return cls(
            session_factory=session_factory,
            receipt_generator=receipt_generator,
            clock=clock,
            fiscal_year_resolver=make_fiscal_year_resolver(config.fiscal.start_month),
            min_years=config.liquidation.min_years_for_periodic,
            pending_top_n=config.liquidation.pending_top_n,
        )

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        """Pass operational errors through; wrap everything else."""
        try:
            yield
        except CoopKernelError:
            raise
        except Exception as exc:
            logger.error(f"{name}_failed", exc_info=True)
            raise InternalError(name) from exc

    # -- eligibility and preview ---------------------------------------------

    async def get_members_pending_liquidation(
        self,
        cooperative_id: str,
        as_of: date | None = None,
    ) -> list[PendingMember]:
        """Active members due for periodic liquidation, most overdue first."""
        with LogContext.bind(cooperative_id=cooperative_id):
            async with self._operation("get_members_pending_liquidation"):
                async with session_scope(self._session_factory) as session:
                    selector = EligibilitySelector(session, min_years=self._min_years)
                    return await selector.get_members_pending_liquidation(
                        cooperative_id, as_of or self._clock.today()
                    )

    async def get_liquidation_preview(self, member_id: UUID) -> LiquidationPreview:
        """What execute_liquidation would pay this member right now."""
        with LogContext.bind(member_id=str(member_id)):
            async with self._operation("get_liquidation_preview"):
                async with session_scope(self._session_factory) as session:
                    member = await MemberService(session).get_member(member_id)
                    balances = await BalanceSelector(session).get_member_balances(member_id)
                    return LiquidationPreview(
                        member=member,
                        savings_balance=balances.savings.balance,
                        contributions_balance=balances.contributions.balance,
                        surplus_balance=balances.surplus.balance,
                        total_amount=balances.total,
                    )

    # -- execution -----------------------------------------------------------

    async def execute_liquidation(self, request: LiquidationRequest) -> list[LiquidationResult]:
        """
        Liquidate every member of the batch, then issue receipts.

        Members with nothing to liquidate are skipped, so the result list
        can be shorter than request.member_ids.
        """
        batch = await self.commit_liquidation(request)
        return await batch.run_hooks()

    async def commit_liquidation(self, request: LiquidationRequest) -> CommittedLiquidationBatch:
        """
        Phase one: the atomic batch.

        Returns once the transaction has committed; receipts are not yet
        issued.
        """
        if not isinstance(request, LiquidationRequest):
            raise InvalidLiquidationRequestError("request", "must be a LiquidationRequest")
        request = LiquidationRequest.create(
            member_ids=request.member_ids,
            liquidation_type=request.liquidation_type,
            member_continues=request.member_continues,
            processed_by=request.processed_by,
            notes=request.notes,
        )

        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(request.processed_by),
        ):
            logger.info(
                "liquidation_batch_started",
                extra={
                    "member_count": len(request.member_ids),
                    "liquidation_type": request.liquidation_type.value,
                    "member_continues": request.member_continues,
                },
            )
            t0 = time.monotonic()

            try:
                async with session_scope(self._session_factory) as session:
                    today = self._clock.today()
                    outcomes = []
                    for member_id in request.member_ids:
                        outcome = await self._liquidate_member(session, member_id, request, today)
                        if outcome is not None:
                            outcomes.append(outcome)
            except CoopKernelError:
                logger.error(
                    "liquidation_batch_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise
            except Exception as exc:
                logger.error(
                    "liquidation_batch_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise InternalError("execute_liquidation") from exc

            logger.info(
                "liquidation_batch_committed",
                extra={
                    "liquidated_count": len(outcomes),
                    "skipped_count": len(request.member_ids) - len(outcomes),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )

        hooks: tuple[PostCommitHook, ...] = ()
        if self._receipts is not None:
            hooks = tuple(
                PostCommitHook(outcome, self._receipts.generate_receipt_for_liquidation)
                for outcome in outcomes
            )
        return CommittedLiquidationBatch(outcomes=tuple(outcomes), hooks=hooks)

    async def _liquidate_member(
        self,
        session: AsyncSession,
        member_id: UUID,
        request: LiquidationRequest,
        today: date,
    ) -> LiquidationOutcome | None:
        members = MemberService(session)
        ledger = LedgerWriter(session, self._clock, self._fiscal_year)

        member = await members.lock_member(member_id)
        with LogContext.bind(member_id=str(member.id), cooperative_id=member.cooperative_id):
            balances = await BalanceSelector(session).get_member_balances(
                member.id, for_update=True
            )
            total = balances.total
            if total == ZERO:
                logger.info("liquidation_member_skipped", extra={"reason": "zero_balance"})
                return None

            description = f"{request.liquidation_type.label} liquidation - {member.full_name}"
            transaction_ids = []
            for account in balances.accounts():
                if account.account_id is None or account.balance <= ZERO:
                    continue
                transaction_ids.append(
                    await ledger.record_entry(
                        account_id=account.account_id,
                        transaction_type=TransactionType.LIQUIDATION,
                        amount=account.balance,
                        actor_id=request.processed_by,
                        description=description,
                        transaction_date=today,
                    )
                )

            await members.record_liquidation(
                member, today, request.member_continues, request.processed_by
            )

            liquidation = Liquidation(
                member_id=member.id,
                cooperative_id=member.cooperative_id,
                liquidation_type=request.liquidation_type.value,
                liquidation_date=today,
                total_savings=balances.savings.balance,
                total_contributions=balances.contributions.balance,
                total_surplus=balances.surplus.balance,
                total_amount=total,
                member_continues=request.member_continues,
                notes=request.notes,
                processed_by_id=request.processed_by,
                created_by_id=request.processed_by,
            )
            session.add(liquidation)
            await session.flush()

            session.add_all(
                LiquidationEntry(
                    liquidation_id=liquidation.id,
                    transaction_id=transaction_id,
                    position=position,
                    created_by_id=request.processed_by,
                )
                for position, transaction_id in enumerate(transaction_ids)
            )
            await session.flush()

            logger.info(
                "liquidation_member_completed",
                extra={
                    "liquidation_id": str(liquidation.id),
                    "total_amount": str(total),
                    "entry_count": len(transaction_ids),
                    "member_continues": request.member_continues,
                },
            )
            return LiquidationOutcome(
                member_id=member.id,
                member_name=member.full_name,
                liquidation_id=liquidation.id,
                total_liquidated=total,
                transaction_ids=tuple(transaction_ids),
            )

    # -- reads -----------------------------------------------------------------

    async def get_liquidation_by_id(self, liquidation_id: UUID) -> LiquidationInfo:
        """
        Raises:
            LiquidationNotFoundError: If the liquidation doesn't exist.
        """
        with LogContext.bind(liquidation_id=str(liquidation_id)):
            async with self._operation("get_liquidation_by_id"):
                async with session_scope(self._session_factory) as session:
                    info = await LiquidationSelector(session).get_by_id(liquidation_id)
                    if info is None:
                        raise LiquidationNotFoundError(str(liquidation_id))
                    return info

    async def get_liquidation_history(
        self,
        filters: LiquidationHistoryFilter | None = None,
    ) -> list[LiquidationInfo]:
        """Liquidations matching ``filters``, newest first."""
        async with self._operation("get_liquidation_history"):
            async with session_scope(self._session_factory) as session:
                return await LiquidationSelector(session).history(
                    filters or LiquidationHistoryFilter()
                )

    async def get_liquidation_stats(self, cooperative_id: str) -> LiquidationStats:
        """Pending members and this calendar year's liquidation totals."""
        with LogContext.bind(cooperative_id=cooperative_id):
            async with self._operation("get_liquidation_stats"):
                async with session_scope(self._session_factory) as session:
                    today = self._clock.today()
                    pending = await EligibilitySelector(
                        session, min_years=self._min_years
                    ).get_members_pending_liquidation(cooperative_id, today)
                    totals = await LiquidationSelector(session).totals_between(
                        cooperative_id,
                        date(today.year, 1, 1),
                        date(today.year, 12, 31),
                    )
                    return LiquidationStats(
                        cooperative_id=cooperative_id,
                        pending_count=len(pending),
                        pending_top=tuple(pending[: self._pending_top_n]),
                        year=today.year,
                        liquidations_this_year=totals.count,
                        periodic_this_year=totals.periodic_count,
                        exit_this_year=totals.exit_count,
                        total_amount_this_year=totals.total_amount,
                    )
