"""Discount selection and resolution.

Selected catalog discounts and an optional custom amount are always
additive; there is no "best discount" or precedence logic. The reported
``total_discount`` is the unclamped sum, while ``final_amount`` is floored
at zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..utils.logging import get_logger
from .errors import InvalidAmountError, NoSelectionError
from .models import AppliedDiscount, Discount, DiscountValueType
from .money import ZERO, parse_money, quantize_money, sanitize_amount_input

logger = get_logger(__name__)

HUNDRED = Decimal("100")

DiscountCatalog = Union[Mapping[str, Discount], Iterable[Discount]]


def resolve_discount(discount: Discount, bill_amount: Any) -> Decimal:
    """Money value of a single discount against ``bill_amount``."""
    if discount.value_type is DiscountValueType.PERCENTAGE:
        return quantize_money(parse_money(bill_amount) * discount.value / HUNDRED)
    return discount.value


@dataclass(frozen=True)
class DiscountResult:
    applied: Tuple[AppliedDiscount, ...]
    custom_amount: Decimal
    total_discount: Decimal
    final_amount: Decimal

    @property
    def discount_ids(self) -> List[str]:
        return [item.discount_id for item in self.applied]


def calculate_discounts(
    bill_amount: Any,
    discounts: Iterable[Discount] = (),
    custom_amount: Any = None,
) -> DiscountResult:
    """Resolve every selected discount and add the custom amount.

    A negative or unparseable custom amount contributes nothing.
    """
    base = parse_money(bill_amount)
    applied = tuple(
        AppliedDiscount(discount_id=d.id, amount=resolve_discount(d, base), title=d.title)
        for d in discounts
    )
    custom = max(ZERO, parse_money(custom_amount))
    total = sum((item.amount for item in applied), ZERO) + custom
    final_amount = max(ZERO, base - total)
    logger.debug(
        "Discounts on %s: %d selected, custom=%s, total=%s, final=%s",
        base, len(applied), custom, total, final_amount,
    )
    return DiscountResult(
        applied=applied,
        custom_amount=custom,
        total_discount=total,
        final_amount=final_amount,
    )


@dataclass(frozen=True)
class DiscountSelection:
    """What the waiter has picked in the discount selector.

    Selecting an already-selected id removes it again.
    """

    discount_ids: Tuple[str, ...] = ()
    custom_amount_text: str = ""

    def toggle(self, discount_id: str) -> "DiscountSelection":
        if discount_id in self.discount_ids:
            ids = tuple(d for d in self.discount_ids if d != discount_id)
        else:
            ids = self.discount_ids + (discount_id,)
        return DiscountSelection(discount_ids=ids, custom_amount_text=self.custom_amount_text)

    def with_custom_amount(self, text: str) -> "DiscountSelection":
        sanitized = sanitize_amount_input(text, previous=self.custom_amount_text)
        return DiscountSelection(discount_ids=self.discount_ids, custom_amount_text=sanitized)

    def clear(self) -> "DiscountSelection":
        return DiscountSelection()

    @property
    def custom_amount(self) -> Decimal:
        return parse_money(self.custom_amount_text)

    def is_selected(self, discount_id: str) -> bool:
        return discount_id in self.discount_ids

    def differs_from(self, discount_ids: Iterable[str], custom_amount: Any = None) -> bool:
        """True when this selection would change what is applied to the bill."""
        if set(self.discount_ids) != set(discount_ids):
            return True
        return self.custom_amount != parse_money(custom_amount)


def validate_selection(selection: DiscountSelection) -> Optional[Decimal]:
    """Check an apply action and return the custom amount to send, if any."""
    custom = selection.custom_amount
    if not selection.discount_ids and custom <= ZERO:
        raise NoSelectionError("Select at least one discount or enter a custom amount")
    if selection.custom_amount_text and custom <= ZERO:
        raise InvalidAmountError(f"Invalid custom discount amount: {selection.custom_amount_text!r}")
    return custom if custom > ZERO else None


def select_from_catalog(catalog: DiscountCatalog, discount_ids: Iterable[str]) -> List[Discount]:
    """Look up selected ids in a catalog, keeping selection order.

    Unknown ids are skipped with a warning.
    """
    if isinstance(catalog, Mapping):
        index: Dict[str, Discount] = dict(catalog)
    else:
        index = {discount.id: discount for discount in catalog}
    selected = []
    for discount_id in discount_ids:
        discount = index.get(discount_id)
        if discount is None:
            logger.warning("Discount %s is not in the catalog; ignoring it", discount_id)
            continue
        selected.append(discount)
    return selected


def calculate_for_selection(
    bill_amount: Any, catalog: DiscountCatalog, selection: DiscountSelection
) -> DiscountResult:
    """Instant client-side preview for the discount selector."""
    return calculate_discounts(
        bill_amount,
        select_from_catalog(catalog, selection.discount_ids),
        selection.custom_amount,
    )
