"""
Module: coop_kernel.selectors.balance_selector
Responsibility: Account balance reads for a member, plus replay of an
    account's balance from its ledger entries.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Side-effect free.  for_update=True only adds row locks so that the
      balances read inside a liquidation are exactly the balances zeroed.
    - A missing account reads as balance 0.00 with account_id None.
    - Replayed balances count COMPLETED entries only, signed by
      transaction type.

Failure modes:
    - AccountNotFoundError from verify_account() for an unknown account.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from coop_kernel.domain.dtos import (
    AccountBalance,
    BalanceCheck,
    MemberBalances,
    to_money,
)
from coop_kernel.exceptions import AccountNotFoundError
from coop_kernel.models.account import Account, AccountType
from coop_kernel.models.transaction import (
    LedgerTransaction,
    TransactionStatus,
    TransactionType,
)
from coop_kernel.selectors.base import BaseSelector

_DEBIT_VALUES = [t.value for t in TransactionType if t.is_debit]


class BalanceSelector(BaseSelector[Account]):
    """Reads cached balances and replays ledger balances."""

    async def get_member_balances(
        self,
        member_id: UUID,
        for_update: bool = False,
    ) -> MemberBalances:
        """
        Balances of the member's savings, contributions and surplus accounts.

        Args:
            member_id: Member whose accounts are read.
            for_update: Lock the account rows until the caller's transaction
                ends (no-op on SQLite).
        """
        stmt = select(Account).where(Account.member_id == member_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        by_type = {AccountType(a.account_type): a for a in result.scalars()}

        def _balance(account_type: AccountType) -> AccountBalance:
            account = by_type.get(account_type)
            if account is None:
                return AccountBalance(account_type=account_type, account_id=None)
            return AccountBalance(
                account_type=account_type,
                account_id=account.id,
                balance=to_money(account.current_balance),
            )

        return MemberBalances(
            member_id=member_id,
            savings=_balance(AccountType.SAVINGS),
            contributions=_balance(AccountType.CONTRIBUTIONS),
            surplus=_balance(AccountType.SURPLUS),
        )

    async def compute_ledger_balance(self, account_id: UUID) -> Decimal:
        """Signed sum of the account's completed ledger entries."""
        signed = case(
            (
                LedgerTransaction.transaction_type.in_(_DEBIT_VALUES),
                -LedgerTransaction.amount,
            ),
            else_=LedgerTransaction.amount,
        )
        stmt = select(func.coalesce(func.sum(signed), 0)).where(
            LedgerTransaction.account_id == account_id,
            LedgerTransaction.status == TransactionStatus.COMPLETED.value,
        )
        total = (await self.session.execute(stmt)).scalar_one()
        return to_money(total)

    async def verify_account(self, account_id: UUID) -> BalanceCheck:
        """Compare an account's cached balance with its ledger replay."""
        account = await self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))

        return BalanceCheck(
            account_id=account_id,
            cached=to_money(account.current_balance),
            computed=await self.compute_ledger_balance(account_id),
        )
