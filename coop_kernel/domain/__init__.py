"""
Pure domain layer.

Immutable DTOs, the injectable clock and fiscal calendar arithmetic.
Nothing here opens a session or performs I/O.
"""

from coop_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from coop_kernel.domain.dtos import (
    AccountBalance,
    BalanceCheck,
    LiquidationHistoryFilter,
    LiquidationInfo,
    LiquidationOutcome,
    LiquidationPreview,
    LiquidationRequest,
    LiquidationResult,
    LiquidationStats,
    MemberBalances,
    MemberInfo,
    PendingMember,
    ReceiptInfo,
)
from coop_kernel.domain.fiscal import (
    FiscalYearResolver,
    fiscal_year_for,
    full_years_between,
    make_fiscal_year_resolver,
)

__all__ = [
    "AccountBalance",
    "BalanceCheck",
    "Clock",
    "DeterministicClock",
    "FiscalYearResolver",
    "LiquidationHistoryFilter",
    "LiquidationInfo",
    "LiquidationOutcome",
    "LiquidationPreview",
    "LiquidationRequest",
    "LiquidationResult",
    "LiquidationStats",
    "MemberBalances",
    "MemberInfo",
    "PendingMember",
    "ReceiptInfo",
    "SystemClock",
    "fiscal_year_for",
    "full_years_between",
    "make_fiscal_year_resolver",
]
