"""Payment ledger for a bill.

Payments are append-only. Every payment is validated against the remaining
balance at the moment it is recorded, never against an earlier snapshot.

The module-level functions are pure projections over a ``Bill``.
``PaymentLedger`` adds the two-phase bookkeeping used while a payment is in
flight to the backend: a pending entry is opened under a correlation id,
then either confirmed (local state replaced by the server's bill) or rolled
back.
"""

from __future__ import annotations

import threading
import uuid
from decimal import Decimal
from typing import Dict, Optional

from ..utils.logging import get_logger
from .errors import (
    AmountExceedsRemainingError,
    BillClosedError,
    BillingValidationError,
    InvalidAmountError,
    MissingRequiredFieldError,
)
from .models import Bill, BillStatus, LedgerState, Payment, PaymentMethod
from .money import ZERO, format_money, parse_money, quantize_money

logger = get_logger(__name__)


def remaining_balance(bill: Bill) -> Decimal:
    return max(ZERO, bill.total_amount - bill.paid_amount)


def ledger_state(bill: Bill) -> LedgerState:
    # A bill discounted down to zero counts as settled.
    if bill.paid_amount >= bill.total_amount:
        return LedgerState.FULLY_PAID
    if bill.paid_amount <= ZERO:
        return LedgerState.UNPAID
    return LedgerState.PARTIALLY_PAID


def is_fully_paid(bill: Bill) -> bool:
    return ledger_state(bill) is LedgerState.FULLY_PAID


def validate_payment(bill: Bill, payment: Payment, pending_total: Decimal = ZERO) -> None:
    """Raise the first validation error for ``payment`` against ``bill``.

    Checks run in order: bill open, amount positive, amount within the
    remaining balance (less anything already pending), card transaction id.
    Amounts finer than a cent are refused rather than rounded.
    """
    if bill.is_cancelled:
        raise BillClosedError(f"Bill {bill.id or ''} is cancelled")

    amount = parse_money(payment.amount)
    if amount <= ZERO:
        raise InvalidAmountError("Please enter a valid amount")
    if amount != quantize_money(amount):
        raise InvalidAmountError(f"Amount {amount} has more than two decimal places")

    remaining = max(ZERO, remaining_balance(bill) - pending_total)
    if amount > remaining:
        raise AmountExceedsRemainingError(
            f"Amount {format_money(amount)} exceeds remaining balance {format_money(remaining)}",
            amount=amount,
            remaining=remaining,
        )

    if payment.method is PaymentMethod.BANK_CARD:
        if not payment.transaction_id or not payment.transaction_id.strip():
            raise MissingRequiredFieldError(
                "Transaction ID is required for card payments", field="transactionId"
            )


def _append(bill: Bill, payment: Payment) -> Bill:
    paid = bill.paid_amount + parse_money(payment.amount)
    updated = bill.evolve(payments=bill.payments + (payment,), paid_amount=paid)
    if is_fully_paid(updated):
        updated = updated.evolve(status=BillStatus.PAID)
    return updated


def record_payment(bill: Bill, payment: Payment) -> Bill:
    """Validate ``payment`` and return the bill with it appended.

    On any validation error the input bill is untouched.
    """
    try:
        validate_payment(bill, payment)
    except BillingValidationError as e:
        logger.warning("Payment rejected for bill %s: %s", bill.id, e)
        raise
    updated = _append(bill, payment)
    logger.debug("Recorded %s payment of %s on bill %s; paid %s of %s",
                 payment.method.value, payment.amount, bill.id,
                 updated.paid_amount, updated.total_amount)
    return updated


class PaymentLedger:
    """Pending/confirmed payment bookkeeping for one bill.

    All mutation happens under a per-ledger lock so two submissions for the
    same bill cannot both pass validation against the same balance.
    """

    def __init__(self, bill: Bill) -> None:
        self._bill = bill
        self._pending: Dict[str, Payment] = {}
        self._lock = threading.Lock()

    @property
    def bill(self) -> Bill:
        """Last confirmed bill."""
        return self._bill

    @property
    def pending(self) -> Dict[str, Payment]:
        with self._lock:
            return dict(self._pending)

    @property
    def pending_total(self) -> Decimal:
        with self._lock:
            return self._pending_total()

    def _pending_total(self) -> Decimal:
        return sum((parse_money(p.amount) for p in self._pending.values()), ZERO)

    @property
    def projected_bill(self) -> Bill:
        """Confirmed bill with every pending payment folded in (optimistic preview)."""
        with self._lock:
            projected = self._bill
            for payment in self._pending.values():
                projected = _append(projected, payment)
            return projected

    @property
    def remaining_balance(self) -> Decimal:
        return remaining_balance(self.projected_bill)

    @property
    def state(self) -> LedgerState:
        return ledger_state(self.projected_bill)

    def begin(self, payment: Payment, correlation_id: Optional[str] = None) -> str:
        """Validate and park ``payment`` as pending; return its correlation id."""
        with self._lock:
            try:
                validate_payment(self._bill, payment, pending_total=self._pending_total())
            except BillingValidationError as e:
                logger.warning("Payment rejected for bill %s: %s", self._bill.id, e)
                raise
            key = correlation_id or uuid.uuid4().hex
            if key in self._pending:
                raise ValueError(f"Correlation id {key} is already pending")
            self._pending[key] = payment
            logger.debug("Pending payment %s of %s on bill %s", key, payment.amount, self._bill.id)
            return key

    def confirm(self, correlation_id: str, authoritative_bill: Optional[Bill] = None) -> Bill:
        """Settle a pending payment.

        With ``authoritative_bill`` (the server's response) local state is
        replaced by it. Without one the payment is appended locally, for
        ledgers kept on this device only.
        """
        with self._lock:
            payment = self._pending.pop(correlation_id)
            if authoritative_bill is not None:
                self._bill = authoritative_bill
            else:
                self._bill = _append(self._bill, payment)
            logger.debug("Confirmed payment %s on bill %s", correlation_id, self._bill.id)
            return self._bill

    def rollback(self, correlation_id: str) -> Payment:
        """Drop a pending payment; the confirmed bill is unchanged."""
        with self._lock:
            payment = self._pending.pop(correlation_id)
            logger.info("Rolled back pending payment %s on bill %s", correlation_id, self._bill.id)
            return payment

    def replace(self, bill: Bill) -> Bill:
        """Overwrite the confirmed bill with an authoritative copy."""
        with self._lock:
            self._bill = bill
            return self._bill

    def record(self, payment: Payment) -> Bill:
        """Begin and immediately confirm locally."""
        return self.confirm(self.begin(payment))
