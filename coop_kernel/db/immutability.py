"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

An account's cached balance is only trustworthy while the ledger behind it
is append-only.  Ledger entries, liquidation records and the links between
them are therefore never updated or deleted through the ORM; a correction is
a new entry.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below raise ImmutabilityViolationError from those
events, which aborts the flush and, through session_scope(), rolls back the
whole transaction.

    session.flush()
         |
         v
    [before_update] --> _reject_update() --> ImmutabilityViolationError
    [before_delete] --> _reject_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | When Immutable          | Notes
------------------|-------------------------|--------------------------------
LedgerTransaction | ALWAYS (from creation)  | Balances are derived from it
Liquidation       | ALWAYS (from creation)  | Totals are a historical record
LiquidationEntry  | ALWAYS (from creation)  | Link rows
Member            | last_liquidation_date   | May only move forward

Mapper events fire inside the synchronous flush that AsyncSession runs on
its greenlet, so the same listeners cover sync and async sessions.

===============================================================================
USAGE
===============================================================================

    from coop_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

Tests that need to violate the rules on purpose call
unregister_immutability_listeners() and re-register afterwards.
===============================================================================
"""

from sqlalchemy import event, inspect

from coop_kernel.exceptions import ImmutabilityViolationError
from coop_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _violation(target, operation: str) -> ImmutabilityViolationError:
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        operation=operation,
    )


def _reject_update(mapper, connection, target):
    """Append-only rows cannot be modified."""
    raise _violation(target, "update")


def _reject_delete(mapper, connection, target):
    """Append-only rows cannot be deleted."""
    raise _violation(target, "delete")


def _check_member_liquidation_date(mapper, connection, target):
    """
    last_liquidation_date is monotonically non-decreasing.

    Clearing it, or moving it to an earlier date, is rejected.
    """
    history = inspect(target).attrs.last_liquidation_date.history
    if not history.has_changes() or not history.deleted:
        return

    previous = history.deleted[0]
    current = target.last_liquidation_date
    if previous is None:
        return
    if current is None or current < previous:
        raise _violation(target, "move last_liquidation_date backwards on")


def _check_member_delete(mapper, connection, target):
    """Members are deactivated, never deleted."""
    raise _violation(target, "delete")


_PROTECTED = ("LedgerTransaction", "Liquidation", "LiquidationEntry")


def _protected_models():
    from coop_kernel.models.liquidation import Liquidation, LiquidationEntry
    from coop_kernel.models.transaction import LedgerTransaction

    return (LedgerTransaction, Liquidation, LiquidationEntry)


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Registering twice is harmless.
    """
    from coop_kernel.models.member import Member

    for model in _protected_models():
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)

    if not event.contains(Member, "before_update", _check_member_liquidation_date):
        event.listen(Member, "before_update", _check_member_liquidation_date)
    if not event.contains(Member, "before_delete", _check_member_delete):
        event.listen(Member, "before_delete", _check_member_delete)

    logger.info(
        "immutability_listeners_registered",
        extra={"entities": list(_PROTECTED) + ["Member"]},
    )


def _safe_remove_listener(target, identifier, fn):
    if event.contains(target, identifier, fn):
        event.remove(target, identifier, fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from coop_kernel.models.member import Member

    for model in _protected_models():
        _safe_remove_listener(model, "before_update", _reject_update)
        _safe_remove_listener(model, "before_delete", _reject_delete)

    _safe_remove_listener(Member, "before_update", _check_member_liquidation_date)
    _safe_remove_listener(Member, "before_delete", _check_member_delete)
