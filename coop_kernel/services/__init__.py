"""Flush-only write services for the cooperative ledger kernel."""

from coop_kernel.services.base import BaseService
from coop_kernel.services.ledger_writer import LedgerWriter
from coop_kernel.services.member_service import MemberService

__all__ = [
    "BaseService",
    "LedgerWriter",
    "MemberService",
]
