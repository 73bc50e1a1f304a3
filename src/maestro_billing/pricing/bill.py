"""Bill totals and bill assembly.

The bill total is always ``max(0, subtotal - discount) + service fee`` and
the service fee is charged on the discounted subtotal.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from ..utils.logging import get_logger
from .discounts import (
    DiscountCatalog,
    DiscountResult,
    DiscountSelection,
    calculate_for_selection,
    validate_selection,
)
from .errors import BillClosedError
from .models import Bill, BillStatus, ServiceFeeConfig
from .money import ZERO, format_money, parse_money
from .service_fee import service_fee

logger = get_logger(__name__)


def post_discount_subtotal(subtotal: Any, discount_amount: Any) -> Decimal:
    return max(ZERO, parse_money(subtotal) - parse_money(discount_amount))


def bill_total(subtotal: Any, discount_amount: Any, service_fee_amount: Any) -> Decimal:
    """Single source of truth for a bill's payable total."""
    return post_discount_subtotal(subtotal, discount_amount) + parse_money(service_fee_amount)


def build_bill(
    subtotal: Any,
    discount_result: Optional[DiscountResult] = None,
    service_fee_config: Optional[ServiceFeeConfig] = None,
    bill_id: Optional[str] = None,
    order_id: Optional[str] = None,
) -> Bill:
    """Finalize an order total into an unpaid bill."""
    base = parse_money(subtotal)
    discount_amount = discount_result.total_discount if discount_result else ZERO
    fee = service_fee(post_discount_subtotal(base, discount_amount), service_fee_config)
    total = bill_total(base, discount_amount, fee)
    logger.debug("Built bill %s: subtotal=%s discount=%s fee=%s total=%s",
                 bill_id, base, discount_amount, fee, total)
    return Bill(
        id=bill_id,
        order_id=order_id,
        subtotal=base,
        discount_amount=discount_amount,
        service_fee_amount=fee,
        total_amount=total,
        discounts=discount_result.applied if discount_result else (),
        custom_discount_amount=discount_result.custom_amount if discount_result else ZERO,
        service_fee=service_fee_config,
        status=BillStatus.FINALIZED,
    )


def recalculate(bill: Bill, discount_result: DiscountResult) -> Bill:
    """Return ``bill`` with new discounts and the fee and total re-derived."""
    if bill.is_cancelled or bill.status is BillStatus.PAID:
        raise BillClosedError(f"Bill {bill.id or ''} is {bill.status.value}; discounts cannot change")
    fee = service_fee(post_discount_subtotal(bill.subtotal, discount_result.total_discount),
                      bill.service_fee)
    total = bill_total(bill.subtotal, discount_result.total_discount, fee)
    if total < bill.paid_amount:
        raise BillClosedError(
            f"Discounts would bring bill {bill.id or ''} to {format_money(total)}, "
            f"below the {format_money(bill.paid_amount)} already paid"
        )
    status = bill.status
    if bill.paid_amount > ZERO and bill.paid_amount >= total:
        status = BillStatus.PAID
    return bill.evolve(
        discounts=discount_result.applied,
        custom_discount_amount=discount_result.custom_amount,
        discount_amount=discount_result.total_discount,
        service_fee_amount=fee,
        total_amount=total,
        status=status,
    )


def apply_discounts(bill: Bill, catalog: DiscountCatalog, selection: DiscountSelection) -> Bill:
    """Validate the selector state and apply it to the bill.

    Percentage discounts resolve against the bill subtotal now; the stored
    amounts are not re-derived later.
    """
    validate_selection(selection)
    result = calculate_for_selection(bill.subtotal, catalog, selection)
    return recalculate(bill, result)


def cancel_bill(bill: Bill) -> Bill:
    if bill.status is BillStatus.PAID:
        raise BillClosedError(f"Bill {bill.id or ''} is already paid")
    return bill.evolve(status=BillStatus.CANCELLED)
