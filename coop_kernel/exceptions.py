"""
Typed Exception Hierarchy for the Cooperative Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A liquidation either commits for the whole batch or not at all, and the
caller has to know exactly why it did not.  Parsing message strings for
that is fragile, so every error here:

  1. Has its own class (catch by type, not by message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Has a STATUS_CODE class attribute (HTTP-style status class)
  4. Carries its context as attributes (member_id, account_id, ...)

Example:
    try:
        results = await service.execute_liquidation(request)
    except MemberNotFoundError as e:
        respond(status=e.status_code, code=e.code, member_id=e.member_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CoopKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidLiquidationRequestError
    |   +-- InvalidAmountError
    |
    +-- MemberError
    |   +-- MemberNotFoundError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- InsufficientBalanceError
    |
    +-- LiquidationError
    |   +-- LiquidationNotFoundError
    |
    +-- ReceiptError
    |   +-- ReceiptGenerationError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- InternalError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                       | Status | When Raised
--------------|----------------------------|--------|-----------------------------
Validation    | VALIDATION_ERROR           | 400    | Malformed liquidation request
              | INVALID_AMOUNT             | 400    | Ledger amount <= 0
--------------|----------------------------|--------|-----------------------------
Member        | MEMBER_NOT_FOUND           | 404    | Member ID doesn't exist
--------------|----------------------------|--------|-----------------------------
Account       | ACCOUNT_NOT_FOUND          | 404    | Account ID doesn't exist
              | INSUFFICIENT_BALANCE       | 409    | Entry would leave balance < 0
--------------|----------------------------|--------|-----------------------------
Liquidation   | LIQUIDATION_NOT_FOUND      | 404    | Liquidation ID doesn't exist
--------------|----------------------------|--------|-----------------------------
Receipt       | RECEIPT_GENERATION_FAILED  | 500    | Receipt could not be written
--------------|----------------------------|--------|-----------------------------
Immutability  | IMMUTABILITY_VIOLATION     | 409    | Update/delete of ledger rows
--------------|----------------------------|--------|-----------------------------
Internal      | INTERNAL_ERROR             | 500    | Unexpected failure (wrapped)

===============================================================================
HANDLING PATTERNS
===============================================================================

1. OPERATIONAL vs UNEXPECTED:

    Every CoopKernelError is operational (is_operational = True) and may be
    shown to a caller as-is.  Anything else is logged with its traceback
    and replaced by InternalError, whose message is generic:

        except CoopKernelError:
            raise
        except Exception as exc:
            logger.error("liquidation_failed", exc_info=True)
            raise InternalError("execute_liquidation") from exc

2. RECEIPT ERRORS ARE NOT LIQUIDATION ERRORS:

    A ReceiptGenerationError raised after a liquidation committed is
    captured on the per-member result, never re-raised.

===============================================================================
"""


class CoopKernelError(Exception):
    """
    Base exception for all cooperative ledger errors.

    All subclasses must have a `code` and a `status_code` class attribute.
    """

    code: str = "COOP_KERNEL_ERROR"
    status_code: int = 500
    is_operational: bool = True


# Validation exceptions


class ValidationError(CoopKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"
    status_code: int = 400


class InvalidLiquidationRequestError(ValidationError):
    """Liquidation request is malformed; raised before any transaction opens."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid liquidation request ({field}): {reason}")


class InvalidAmountError(ValidationError):
    """Ledger amounts must be strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Amount must be greater than zero, got {amount}")


# Member exceptions


class MemberError(CoopKernelError):
    """Base exception for member-related errors."""

    code: str = "MEMBER_ERROR"


class MemberNotFoundError(MemberError):
    """Member with given ID was not found."""

    code: str = "MEMBER_NOT_FOUND"
    status_code: int = 404

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member not found: {member_id}")


# Account exceptions


class AccountError(CoopKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"
    status_code: int = 404

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class InsufficientBalanceError(AccountError):
    """A debit would drive the account balance below zero."""

    code: str = "INSUFFICIENT_BALANCE"
    status_code: int = 409

    def __init__(self, account_id: str, balance: str, requested: str):
        self.account_id = account_id
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Insufficient balance in account {account_id}: "
            f"balance={balance}, requested={requested}"
        )


# Liquidation exceptions


class LiquidationError(CoopKernelError):
    """Base exception for liquidation-related errors."""

    code: str = "LIQUIDATION_ERROR"


class LiquidationNotFoundError(LiquidationError):
    """Liquidation with given ID was not found."""

    code: str = "LIQUIDATION_NOT_FOUND"
    status_code: int = 404

    def __init__(self, liquidation_id: str):
        self.liquidation_id = liquidation_id
        super().__init__(f"Liquidation not found: {liquidation_id}")


# Receipt exceptions


class ReceiptError(CoopKernelError):
    """Base exception for receipt-related errors."""

    code: str = "RECEIPT_ERROR"


class ReceiptGenerationError(ReceiptError):
    """Receipt could not be generated for a committed liquidation."""

    code: str = "RECEIPT_GENERATION_FAILED"

    def __init__(self, liquidation_id: str, reason: str):
        self.liquidation_id = liquidation_id
        self.reason = reason
        super().__init__(
            f"Receipt generation failed for liquidation {liquidation_id}: {reason}"
        )


# Immutability exceptions


class ImmutabilityError(CoopKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"
    status_code: int = 409


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Ledger entries and liquidation records are never updated or deleted;
    corrections are new entries.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, operation: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.operation = operation
        super().__init__(
            f"Cannot {operation} {entity_type} {entity_id}: record is immutable"
        )


# Internal errors


class InternalError(CoopKernelError):
    """
    Unexpected failure, surfaced without internal details.

    The original exception is chained (``raise ... from exc``) and logged;
    the message only names the operation.
    """

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Internal error during {operation}")
