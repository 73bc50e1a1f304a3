"""Error taxonomy for pricing, discount and payment operations."""

from __future__ import annotations

from typing import Optional


class BillingError(Exception):
    """Base class for every error raised by the billing engine."""

    code = "BILLING_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BillingValidationError(BillingError, ValueError):
    """A user-originated input was rejected; nothing was mutated."""

    code = "VALIDATION_ERROR"


class InvalidAmountError(BillingValidationError):
    code = "INVALID_AMOUNT"


class AmountExceedsRemainingError(BillingValidationError):
    code = "AMOUNT_EXCEEDS_REMAINING"

    def __init__(self, message: str, amount=None, remaining=None) -> None:
        super().__init__(message)
        self.amount = amount
        self.remaining = remaining


class MissingRequiredFieldError(BillingValidationError):
    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.field = field


class NoSelectionError(BillingValidationError):
    code = "NO_SELECTION"


class BillClosedError(BillingValidationError):
    """Raised when a cancelled or settled bill is asked to change."""

    code = "BILL_CLOSED"


class RemoteSubmissionError(BillingError):
    """A payment or discount call to the backend failed or timed out.

    The local ledger is left as it was before the submission.
    """

    code = "REMOTE_SUBMISSION_FAILURE"

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause

    @property
    def is_retryable(self) -> bool:
        return bool(getattr(self.cause, "is_retryable", False))
