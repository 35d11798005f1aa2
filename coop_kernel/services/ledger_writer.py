"""
Module: coop_kernel.services.ledger_writer
Responsibility: The only writer of ledger entries and cached account
    balances.  Each call appends one immutable entry and moves the cached
    balance by the entry's signed amount in the same flush.
Architecture position: Kernel > Services.  Runs inside the caller's
    session; never commits.

Invariants enforced:
    - amount > 0; direction comes from the transaction type.
    - The resulting balance is never negative.
    - The account row is locked (FOR UPDATE) before its balance is read, so
      concurrent writers to the same account serialize.
    - Existing entries are never updated or deleted.

Failure modes:
    - InvalidAmountError for a non-positive or non-numeric amount.
    - AccountNotFoundError for an unknown account.
    - InsufficientBalanceError when a debit exceeds the balance.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.domain.dtos import ZERO, to_money
from coop_kernel.domain.fiscal import FiscalYearResolver, fiscal_year_for
from coop_kernel.exceptions import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from coop_kernel.logging_config import get_logger
from coop_kernel.models.account import Account, AccountType
from coop_kernel.models.transaction import (
    LedgerTransaction,
    TransactionStatus,
    TransactionType,
)
from coop_kernel.services.base import BaseService

logger = get_logger("services.ledger_writer")


def _parse_amount(amount) -> Decimal:
    if isinstance(amount, (float, bool)):
        raise InvalidAmountError(str(amount))
    try:
        value = to_money(Decimal(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(str(amount))
    if not value.is_finite() or value <= ZERO:
        raise InvalidAmountError(str(amount))
    return value


class LedgerWriter(BaseService[LedgerTransaction]):
    """
    Appends ledger entries and keeps cached balances in step.

    Args:
        session: Caller-owned session.
        clock: Source of the default transaction date.
        fiscal_year_resolver: Maps a transaction date to its fiscal year.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        fiscal_year_resolver: FiscalYearResolver = fiscal_year_for,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._fiscal_year = fiscal_year_resolver

    async def _lock_account(self, account_id: UUID) -> Account:
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        account = (await self.session.execute(stmt)).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    async def record_entry(
        self,
        account_id: UUID,
        transaction_type: TransactionType | str,
        amount: Decimal | int | str,
        actor_id: UUID,
        description: str | None = None,
        transaction_date: date | None = None,
    ) -> UUID:
        """
        Append one completed entry and apply it to the cached balance.

        Args:
            account_id: Account to move.
            transaction_type: Kind of entry; decides the sign.
            amount: Strictly positive amount, quantized to cents.
            actor_id: Recorded as created_by_id on the entry.
            description: Free text shown on statements.
            transaction_date: Defaults to the clock's today.

        Returns:
            The new entry's id.
        """
        kind = TransactionType(transaction_type)
        value = _parse_amount(amount)

        account = await self._lock_account(account_id)
        current = to_money(account.current_balance)
        new_balance = current + kind.signed(value)
        if new_balance < ZERO:
            raise InsufficientBalanceError(
                account_id=str(account_id),
                balance=str(current),
                requested=str(value),
            )

        day = transaction_date or self._clock.today()
        entry = LedgerTransaction(
            account_id=account_id,
            transaction_type=kind.value,
            amount=value,
            transaction_date=day,
            fiscal_year=self._fiscal_year(day),
            description=description,
            status=TransactionStatus.COMPLETED.value,
            created_by_id=actor_id,
        )
        self.session.add(entry)

        account.current_balance = new_balance
        account.updated_by_id = actor_id
        await self.session.flush()

        logger.info(
            "ledger_entry_recorded",
            extra={
                "transaction_id": str(entry.id),
                "account_id": str(account_id),
                "transaction_type": kind.value,
                "amount": str(value),
                "balance_after": str(new_balance),
                "fiscal_year": entry.fiscal_year,
            },
        )
        return entry.id

    async def open_account(
        self,
        member,
        account_type: AccountType | str,
        actor_id: UUID,
    ) -> Account:
        """
        Create a zero-balance account of ``account_type`` for ``member``.

        ``member`` is a Member row or a MemberInfo; only its id and
        cooperative_id are read.
        """
        kind = AccountType(account_type)
        account = Account(
            member_id=member.id,
            cooperative_id=member.cooperative_id,
            account_type=kind.value,
            current_balance=Decimal("0.00"),
            created_by_id=actor_id,
        )
        self.session.add(account)
        await self.session.flush()

        logger.info(
            "account_opened",
            extra={
                "account_id": str(account.id),
                "member_id": str(member.id),
                "account_type": kind.value,
            },
        )
        return account
