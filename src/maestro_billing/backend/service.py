"""Billing service: local previews reconciled against the backend."""

from __future__ import annotations

import threading
from decimal import Decimal
from typing import Dict, Optional

from ..pricing.bill import apply_discounts as apply_discounts_locally
from ..pricing.discounts import (
    DiscountCatalog,
    DiscountResult,
    DiscountSelection,
    calculate_for_selection,
    validate_selection,
)
from ..pricing.errors import RemoteSubmissionError
from ..pricing.ledger import PaymentLedger
from ..pricing.models import Bill, Payment
from ..utils.logging import get_logger
from .client import ApiClientError, BillingApiClient

logger = get_logger(__name__)


class BillingService:
    """High-level service for discount and payment operations on bills.

    The backend is the final arbiter of every bill. Local computations give
    an instant preview; on each successful call local state is replaced by
    the server's bill, and on failure it is left as it was.
    """

    def __init__(self, client: BillingApiClient) -> None:
        self.client = client
        self._ledgers: Dict[str, PaymentLedger] = {}
        self._lock = threading.Lock()

    def ledger(self, bill: Bill) -> PaymentLedger:
        """Ledger for ``bill``, created on first use."""
        if not bill.id:
            raise ValueError("Bill has no id")
        with self._lock:
            ledger = self._ledgers.get(bill.id)
            if ledger is None:
                ledger = PaymentLedger(bill)
                self._ledgers[bill.id] = ledger
            return ledger

    def load_bill(self, bill_id: str) -> Bill:
        """Fetch the bill and overwrite any local copy with it."""
        try:
            bill = self.client.get_bill(bill_id)
        except ApiClientError as e:
            raise RemoteSubmissionError(f"Failed to load bill {bill_id}: {e.message}", cause=e) from e
        self.ledger(bill).replace(bill)
        return bill

    # -- discounts ---------------------------------------------------------

    def preview_discounts(self, bill_amount, catalog: DiscountCatalog,
                          selection: DiscountSelection) -> DiscountResult:
        return calculate_for_selection(bill_amount, catalog, selection)

    def calculate_discount_total(self, bill_amount, selection: DiscountSelection,
                                 customer_id: Optional[str] = None) -> Decimal:
        """Server-computed catalog discount plus the custom amount."""
        custom = selection.custom_amount if selection.custom_amount > 0 else Decimal("0")
        if not selection.discount_ids:
            return custom
        try:
            result = self.client.calculate_discounts(bill_amount, selection.discount_ids, customer_id)
        except ApiClientError as e:
            logger.error("Discount calculation failed: %s", e.message)
            raise RemoteSubmissionError(f"Discount calculation failed: {e.message}", cause=e) from e
        return result["totalDiscount"] + custom

    def apply_discounts(self, bill: Bill, catalog: DiscountCatalog,
                        selection: DiscountSelection) -> Bill:
        """Apply the selector state, returning the server's updated bill.

        Validation runs first and a local recalculation is made so a closed
        bill is refused before any request goes out.
        """
        custom = validate_selection(selection)
        preview = apply_discounts_locally(bill, catalog, selection)
        logger.debug("Discount preview for bill %s: total %s", bill.id, preview.total_amount)
        try:
            updated = self.client.update_bill_discounts(bill.id, selection.discount_ids, custom)
        except ApiClientError as e:
            logger.error("Applying discounts to bill %s failed: %s", bill.id, e.message)
            raise RemoteSubmissionError(f"Failed to apply discounts: {e.message}", cause=e) from e
        self.ledger(updated).replace(updated)
        return updated

    # -- payments ----------------------------------------------------------

    def submit_payment(self, bill: Bill, payment: Payment) -> Bill:
        """Record ``payment`` against ``bill`` through the backend.

        The payment is validated and held as pending in the bill's ledger
        while the request is in flight, so a concurrent submission for the
        same bill sees the reduced balance. The pending entry is rolled back
        if the request fails.
        """
        ledger = self.ledger(bill)
        correlation_id = ledger.begin(payment)
        try:
            self.client.create_payment(bill.id, payment)
        except Exception as e:
            # Any failure leaves the balance as it was before the submission.
            ledger.rollback(correlation_id)
            message = e.message if isinstance(e, ApiClientError) else str(e)
            logger.error("Payment on bill %s failed: %s", bill.id, message)
            raise RemoteSubmissionError(f"Failed to process payment: {message}", cause=e) from e

        try:
            authoritative = self.client.get_bill(bill.id)
        except Exception as e:
            # The payment exists server-side; keep it locally until the next load.
            logger.warning("Payment on bill %s accepted but refetch failed: %s", bill.id, e)
            return ledger.confirm(correlation_id)
        return ledger.confirm(correlation_id, authoritative)

