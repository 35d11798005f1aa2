"""Read-only selectors for the cooperative ledger kernel."""

from coop_kernel.selectors.balance_selector import BalanceSelector
from coop_kernel.selectors.base import BaseSelector
from coop_kernel.selectors.eligibility_selector import (
    DEFAULT_MIN_YEARS,
    EligibilitySelector,
)
from coop_kernel.selectors.liquidation_selector import (
    LiquidationSelector,
    LiquidationTotals,
)

__all__ = [
    "BalanceSelector",
    "BaseSelector",
    "DEFAULT_MIN_YEARS",
    "EligibilitySelector",
    "LiquidationSelector",
    "LiquidationTotals",
]
