"""
coop_services.receipt_service -- Receipts for committed liquidations.

Responsibility:
    Allocate a receipt number and persist a receipt row for a liquidation
    that has already committed.  Rendering (PDF, QR) is somebody else's
    job; this service only produces the record a renderer would read.

Architecture position:
    Services -- owns its own transaction through session_scope().  Called
    by the liquidation service after the batch commit, never inside it.

Invariants enforced:
    - Idempotent: a liquidation has at most one receipt; asking again
      returns the existing one.
    - Numbers are YYYY-NNNN, YYYY the calendar year of issue and NNNN one
      more than the highest number issued that year.
    - A number collision (two concurrent issuers) is retried with the next
      number a bounded number of times.

Failure modes:
    - LiquidationNotFoundError if the liquidation does not exist.
    - ReceiptGenerationError for anything else that prevents the receipt
      from being written.
"""

from __future__ import annotations

from typing import Callable, Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coop_kernel.db.engine import session_scope
from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.domain.dtos import ReceiptInfo
from coop_kernel.exceptions import (
    CoopKernelError,
    LiquidationNotFoundError,
    ReceiptGenerationError,
)
from coop_kernel.logging_config import LogContext, get_logger
from coop_kernel.models.liquidation import Liquidation
from coop_kernel.models.receipt import RECEIPT_TYPE_LIQUIDATION, Receipt

logger = get_logger("services.receipt")

MAX_NUMBER_ATTEMPTS = 3


class ReceiptGenerator(Protocol):
    """Anything that can issue a receipt for a committed liquidation."""

    async def generate_receipt_for_liquidation(self, liquidation_id: UUID) -> ReceiptInfo:
        ...


def format_receipt_number(year: int, sequence: int, width: int = 4) -> str:
    return f"{year}-{sequence:0{width}d}"


def parse_receipt_sequence(receipt_number: str) -> int:
    """Sequence part of a YYYY-NNNN number."""
    _, _, sequence = receipt_number.partition("-")
    return int(sequence)


class ReceiptService:
    """
    Default ReceiptGenerator backed by the receipts table.

    Args:
        session_factory: Produces a fresh AsyncSession per receipt.
        clock: Decides the calendar year of issue.
        number_width: Digits in the sequence part of the number.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        clock: Clock | None = None,
        number_width: int = 4,
    ):
        if number_width <= 0:
            raise ValueError(f"number_width must be positive, got {number_width}")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._number_width = number_width

    async def generate_receipt_for_liquidation(self, liquidation_id: UUID) -> ReceiptInfo:
        with LogContext.bind(liquidation_id=str(liquidation_id)):
            for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
                try:
                    return await self._issue(liquidation_id)
                except IntegrityError as exc:
                    logger.warning(
                        "receipt_number_conflict",
                        extra={"attempt": attempt},
                    )
                    if attempt == MAX_NUMBER_ATTEMPTS:
                        raise ReceiptGenerationError(
                            str(liquidation_id), "receipt number allocation kept conflicting"
                        ) from exc
                except CoopKernelError:
                    raise
                except Exception as exc:
                    logger.error("receipt_generation_failed", exc_info=True)
                    raise ReceiptGenerationError(str(liquidation_id), type(exc).__name__) from exc

    async def _issue(self, liquidation_id: UUID) -> ReceiptInfo:
        async with session_scope(self._session_factory) as session:
            existing = (
                await session.execute(
                    select(Receipt).where(Receipt.liquidation_id == liquidation_id)
                )
            ).scalar_one_or_none()
            if existing is not None:
                logger.info(
                    "receipt_already_issued",
                    extra={"receipt_number": existing.receipt_number},
                )
                return ReceiptInfo(receipt_id=existing.id, receipt_number=existing.receipt_number)

            liquidation = await session.get(Liquidation, liquidation_id)
            if liquidation is None:
                raise LiquidationNotFoundError(str(liquidation_id))

            year = self._clock.today().year
            number = format_receipt_number(
                year, await self._next_sequence(session, year), self._number_width
            )

            receipt = Receipt(
                cooperative_id=liquidation.cooperative_id,
                liquidation_id=liquidation.id,
                member_id=liquidation.member_id,
                receipt_number=number,
                receipt_type=RECEIPT_TYPE_LIQUIDATION,
                amount=liquidation.total_amount,
                created_by_id=liquidation.processed_by_id,
            )
            session.add(receipt)
            await session.flush()

            logger.info(
                "receipt_issued",
                extra={
                    "receipt_id": str(receipt.id),
                    "receipt_number": number,
                    "amount": str(liquidation.total_amount),
                },
            )
            return ReceiptInfo(receipt_id=receipt.id, receipt_number=number)

    async def _next_sequence(self, session: AsyncSession, year: int) -> int:
        # Longest then greatest, so 2024-10000 sorts after 2024-9999.
        stmt = (
            select(Receipt.receipt_number)
            .where(Receipt.receipt_number.like(f"{year}-%"))
            .order_by(
                func.length(Receipt.receipt_number).desc(),
                Receipt.receipt_number.desc(),
            )
            .limit(1)
        )
        last = (await session.execute(stmt)).scalar_one_or_none()
        if last is None:
            return 1
        return parse_receipt_sequence(last) + 1
