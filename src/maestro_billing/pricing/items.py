"""Line and order pricing: extras, item subtotals and order totals."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

from ..utils.logging import get_logger
from .models import Extra, ExtraSelection, OrderLine
from .money import ZERO, parse_money

logger = get_logger(__name__)

ExtrasCatalog = Union[Mapping[str, Extra], Iterable[Extra], None]


def index_extras(catalog: ExtrasCatalog) -> Dict[str, Extra]:
    """Normalize an extras catalog to an ``{id: Extra}`` mapping."""
    if catalog is None:
        return {}
    if isinstance(catalog, Mapping):
        return dict(catalog)
    return {extra.id: extra for extra in catalog}


def resolve_extra_price(selection: ExtraSelection, catalog: Mapping[str, Extra]) -> Decimal:
    """Unit price of one selected extra.

    The catalog price wins; otherwise the selection's own fallback price is
    used; otherwise the extra is free.
    """
    extra = catalog.get(selection.extra_id)
    if extra is not None:
        return extra.unit_price
    if selection.price is not None:
        return parse_money(selection.price)
    logger.debug("Extra %s not priced: absent from catalog and no fallback", selection.extra_id)
    return ZERO


def extras_unit_total(selections: Sequence[ExtraSelection], catalog: ExtrasCatalog = None) -> Decimal:
    """Extras contribution to the price of a single unit of the parent item."""
    index = index_extras(catalog)
    return sum(
        (resolve_extra_price(selection, index) * selection.quantity for selection in selections),
        ZERO,
    )


def item_subtotal(
    unit_price: Any,
    quantity: Union[int, Decimal],
    selections: Sequence[ExtraSelection] = (),
    catalog: ExtrasCatalog = None,
) -> Decimal:
    """``(unit_price + extras per unit) * quantity``.

    Quantity is multiplied as given; range clamping belongs to the caller.
    """
    return (parse_money(unit_price) + extras_unit_total(selections, catalog)) * quantity


def resolve_selections(
    selections: Iterable[ExtraSelection], catalog: ExtrasCatalog = None
) -> tuple:
    """Freeze selections against a catalog snapshot.

    Each resolved selection carries the catalog price (or keeps its own
    fallback) so it can still be priced if the extra later leaves the catalog.
    """
    index = index_extras(catalog)
    resolved = []
    for selection in selections:
        extra = index.get(selection.extra_id)
        if extra is None:
            resolved.append(selection)
            continue
        resolved.append(
            ExtraSelection(
                extra_id=selection.extra_id,
                quantity=selection.quantity,
                price=extra.unit_price,
                title=extra.title or selection.title,
            )
        )
    return tuple(resolved)


def price_line(line: OrderLine, catalog: ExtrasCatalog = None) -> OrderLine:
    """Return ``line`` with its subtotal recomputed."""
    subtotal = item_subtotal(line.unit_price, line.quantity, line.extras, catalog)
    if subtotal == line.subtotal:
        return line
    return replace(line, subtotal=subtotal)


def order_total(lines: Optional[Iterable[OrderLine]]) -> Decimal:
    """Sum of line subtotals; an empty or missing order totals zero."""
    if not lines:
        return ZERO
    return sum((line.subtotal for line in lines), ZERO)
