"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the kernel boundary:
    liquidation requests and results, balances, previews, eligibility rows,
    history filters and stats.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters used by selectors
    and services; domain logic never touches ORM entities.

Invariants enforced:
    - Money is Decimal, quantized to cents.
    - LiquidationRequest.create() is the only way a request enters the
      engine; it rejects malformed input before any transaction opens.

Failure modes:
    - InvalidLiquidationRequestError from LiquidationRequest.create().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable
from uuid import UUID

from coop_kernel.exceptions import InvalidLiquidationRequestError
from coop_kernel.models.account import AccountType
from coop_kernel.models.liquidation import LiquidationType

if TYPE_CHECKING:
    from coop_kernel.models.liquidation import Liquidation as LiquidationModel
    from coop_kernel.models.member import Member as MemberModel

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value: Decimal | int | str | None) -> Decimal:
    """Quantize to cents.  None is zero."""
    if value is None:
        return ZERO
    return Decimal(value).quantize(CENT)


def _as_uuid(value: Any, field_name: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise InvalidLiquidationRequestError(field_name, f"not a valid id: {value!r}")


# ---------------------------------------------------------------------------
# Members and balances
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MemberInfo:
    id: UUID
    cooperative_id: str
    full_name: str
    identification: str
    member_code: str | None
    affiliation_date: date
    last_liquidation_date: date | None
    is_active: bool

    @classmethod
    def from_model(cls, member: MemberModel) -> MemberInfo:
        return cls(
            id=member.id,
            cooperative_id=member.cooperative_id,
            full_name=member.full_name,
            identification=member.identification,
            member_code=member.member_code,
            affiliation_date=member.affiliation_date,
            last_liquidation_date=member.last_liquidation_date,
            is_active=member.is_active,
        )

    @property
    def reference_date(self) -> date:
        return self.last_liquidation_date or self.affiliation_date


@dataclass(frozen=True)
class AccountBalance:
    """
    Balance of one sub-account.

    account_id is None when the member has no account of this type; the
    balance is then zero.
    """

    account_type: AccountType
    account_id: UUID | None
    balance: Decimal = ZERO


@dataclass(frozen=True)
class MemberBalances:
    member_id: UUID
    savings: AccountBalance
    contributions: AccountBalance
    surplus: AccountBalance

    @property
    def total(self) -> Decimal:
        return self.savings.balance + self.contributions.balance + self.surplus.balance

    def accounts(self) -> tuple[AccountBalance, ...]:
        return (self.savings, self.contributions, self.surplus)


@dataclass(frozen=True)
class BalanceCheck:
    """Cached balance compared with the balance replayed from the ledger."""

    account_id: UUID
    cached: Decimal
    computed: Decimal

    @property
    def matches(self) -> bool:
        return self.cached == self.computed


# ---------------------------------------------------------------------------
# Eligibility and preview
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PendingMember:
    member: MemberInfo
    years_since_last_liquidation: int

    @property
    def member_id(self) -> UUID:
        return self.member.id


@dataclass(frozen=True)
class LiquidationPreview:
    member: MemberInfo
    savings_balance: Decimal
    contributions_balance: Decimal
    surplus_balance: Decimal
    total_amount: Decimal


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiquidationRequest:
    """
    A validated liquidation batch.

    Build it with create(); the constructor does not validate.
    """

    member_ids: tuple[UUID, ...]
    liquidation_type: LiquidationType
    member_continues: bool
    processed_by: UUID
    notes: str | None = None

    @classmethod
    def create(
        cls,
        member_ids: Iterable[UUID | str] | None,
        liquidation_type: LiquidationType | str | None,
        member_continues: Any,
        processed_by: UUID | str | None,
        notes: str | None = None,
    ) -> LiquidationRequest:
        """
        Validate and normalize a request.

        Duplicate member ids collapse to their first occurrence so a batch
        never liquidates the same member twice.

        Raises:
            InvalidLiquidationRequestError: On the first invalid field.
        """
        if member_ids is None or isinstance(member_ids, (str, bytes)):
            raise InvalidLiquidationRequestError("member_ids", "must be a list of ids")

        seen: dict[UUID, None] = {}
        for raw in member_ids:
            seen.setdefault(_as_uuid(raw, "member_ids"), None)
        if not seen:
            raise InvalidLiquidationRequestError("member_ids", "must not be empty")

        try:
            kind = LiquidationType(liquidation_type)
        except ValueError:
            raise InvalidLiquidationRequestError(
                "liquidation_type",
                f"must be one of {[t.value for t in LiquidationType]}, got {liquidation_type!r}",
            )

        if not isinstance(member_continues, bool):
            raise InvalidLiquidationRequestError("member_continues", "must be a boolean")

        if processed_by is None or processed_by == "":
            raise InvalidLiquidationRequestError("processed_by", "is required")
        actor = _as_uuid(processed_by, "processed_by")

        if notes is not None and not isinstance(notes, str):
            raise InvalidLiquidationRequestError("notes", "must be a string")

        return cls(
            member_ids=tuple(seen),
            liquidation_type=kind,
            member_continues=member_continues,
            processed_by=actor,
            notes=notes,
        )


@dataclass(frozen=True)
class LiquidationOutcome:
    """What one member's liquidation committed, before any receipt work."""

    member_id: UUID
    member_name: str
    liquidation_id: UUID
    total_liquidated: Decimal
    transaction_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class ReceiptInfo:
    receipt_id: UUID
    receipt_number: str


@dataclass(frozen=True)
class LiquidationResult:
    """
    Final per-member result.

    Exactly one of receipt_number / receipt_error is set once the receipt
    hook has run.
    """

    member_id: UUID
    member_name: str
    liquidation_id: UUID
    total_liquidated: Decimal
    transaction_ids: tuple[UUID, ...]
    receipt_id: UUID | None = None
    receipt_number: str | None = None
    receipt_error: str | None = None

    @classmethod
    def from_outcome(
        cls,
        outcome: LiquidationOutcome,
        receipt: ReceiptInfo | None = None,
        receipt_error: str | None = None,
    ) -> LiquidationResult:
        return cls(
            member_id=outcome.member_id,
            member_name=outcome.member_name,
            liquidation_id=outcome.liquidation_id,
            total_liquidated=outcome.total_liquidated,
            transaction_ids=outcome.transaction_ids,
            receipt_id=receipt.receipt_id if receipt else None,
            receipt_number=receipt.receipt_number if receipt else None,
            receipt_error=receipt_error,
        )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiquidationInfo:
    id: UUID
    member_id: UUID
    cooperative_id: str
    liquidation_type: LiquidationType
    liquidation_date: date
    total_savings: Decimal
    total_contributions: Decimal
    total_surplus: Decimal
    total_amount: Decimal
    member_continues: bool
    notes: str | None
    processed_by_id: UUID
    member_name: str
    member_identification: str
    member_code: str | None
    transaction_ids: tuple[UUID, ...] = ()

    @classmethod
    def from_model(
        cls,
        liquidation: LiquidationModel,
        member: MemberModel,
        transaction_ids: Iterable[UUID] = (),
    ) -> LiquidationInfo:
        return cls(
            id=liquidation.id,
            member_id=liquidation.member_id,
            cooperative_id=liquidation.cooperative_id,
            liquidation_type=LiquidationType(liquidation.liquidation_type),
            liquidation_date=liquidation.liquidation_date,
            total_savings=to_money(liquidation.total_savings),
            total_contributions=to_money(liquidation.total_contributions),
            total_surplus=to_money(liquidation.total_surplus),
            total_amount=to_money(liquidation.total_amount),
            member_continues=liquidation.member_continues,
            notes=liquidation.notes,
            processed_by_id=liquidation.processed_by_id,
            member_name=member.full_name,
            member_identification=member.identification,
            member_code=member.member_code,
            transaction_ids=tuple(transaction_ids),
        )


@dataclass(frozen=True)
class LiquidationHistoryFilter:
    """
    All fields optional; unset fields do not filter.

    liquidation_type is normalised to LiquidationType; a bad type or limit
    raises InvalidLiquidationRequestError before any query runs.
    """

    member_id: UUID | None = None
    cooperative_id: str | None = None
    liquidation_type: LiquidationType | str | None = None
    start_date: date | None = None
    end_date: date | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.liquidation_type is not None:
            try:
                kind = LiquidationType(self.liquidation_type)
            except ValueError:
                raise InvalidLiquidationRequestError(
                    "liquidation_type",
                    f"must be one of {[t.value for t in LiquidationType]}, got {self.liquidation_type!r}",
                ) from None
            object.__setattr__(self, "liquidation_type", kind)
        if self.limit is not None and (
            isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit <= 0
        ):
            raise InvalidLiquidationRequestError("limit", f"must be a positive integer, got {self.limit!r}")


@dataclass(frozen=True)
class LiquidationStats:
    cooperative_id: str
    pending_count: int
    pending_top: tuple[PendingMember, ...]
    year: int
    liquidations_this_year: int
    periodic_this_year: int
    exit_this_year: int
    total_amount_this_year: Decimal = field(default=ZERO)
