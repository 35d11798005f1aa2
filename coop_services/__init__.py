"""
coop_services -- orchestration that owns transaction boundaries.

The liquidation service runs the atomic batch and the read side; the
receipt service issues receipts after a batch has committed.
"""

from coop_services.liquidation_service import (
    CommittedLiquidationBatch,
    LiquidationService,
    PostCommitHook,
)
from coop_services.receipt_service import ReceiptGenerator, ReceiptService
from coop_services.runtime import CoopRuntime, build_runtime

__all__ = [
    "CommittedLiquidationBatch",
    "CoopRuntime",
    "LiquidationService",
    "PostCommitHook",
    "ReceiptGenerator",
    "ReceiptService",
    "build_runtime",
]
