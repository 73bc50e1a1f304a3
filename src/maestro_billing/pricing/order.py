"""In-progress order state as a pure reducer.

``reduce_order(state, action)`` returns a new ``OrderState``; nothing here
holds hidden state. The host decides when to dispatch actions. Line
subtotals are recomputed by the item pricer whenever quantity or extras
change, or when the extras catalog is replaced.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Tuple, Union

from ..utils.logging import get_logger
from .items import index_extras, item_subtotal, order_total as sum_lines, price_line, resolve_selections
from .models import Extra, ExtraSelection, MenuItem, OrderLine

logger = get_logger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 99
MAX_NOTES_LENGTH = 500


def clamp_quantity(quantity: Union[int, float, Decimal]) -> int:
    """Round to a whole number and clamp to ``[MIN_QUANTITY, MAX_QUANTITY]``."""
    rounded = int(Decimal(str(quantity)).to_integral_value(rounding=ROUND_HALF_UP))
    return max(MIN_QUANTITY, min(MAX_QUANTITY, rounded))


def truncate_notes(notes: Optional[str]) -> str:
    return (notes or "")[:MAX_NOTES_LENGTH]


def new_line_id() -> str:
    return f"local_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class OrderState:
    table_id: Optional[str] = None
    lines: Tuple[OrderLine, ...] = ()
    notes: str = ""
    extras_catalog: Tuple[Extra, ...] = ()
    is_active: bool = False
    is_modified: bool = False

    @property
    def catalog_index(self) -> Dict[str, Extra]:
        return index_extras(self.extras_catalog)


# -- actions ---------------------------------------------------------------

@dataclass(frozen=True)
class InitializeOrder:
    table_id: str


@dataclass(frozen=True)
class ClearOrder:
    pass


@dataclass(frozen=True)
class SetOrderNotes:
    notes: str


@dataclass(frozen=True)
class AddItem:
    menu_item: MenuItem
    quantity: int = 1
    notes: str = ""
    extras: Tuple[ExtraSelection, ...] = ()
    line_id: Optional[str] = None


@dataclass(frozen=True)
class RemoveItem:
    line_id: str


@dataclass(frozen=True)
class UpdateItemQuantity:
    line_id: str
    quantity: int


@dataclass(frozen=True)
class UpdateItemNotes:
    line_id: str
    notes: str


@dataclass(frozen=True)
class UpdateItemExtras:
    line_id: str
    extras: Tuple[ExtraSelection, ...]


@dataclass(frozen=True)
class DuplicateItem:
    line_id: str
    new_line_id: Optional[str] = None


@dataclass(frozen=True)
class SetExtrasCatalog:
    extras: Tuple[Extra, ...]


OrderAction = Union[
    InitializeOrder, ClearOrder, SetOrderNotes, AddItem, RemoveItem,
    UpdateItemQuantity, UpdateItemNotes, UpdateItemExtras, DuplicateItem,
    SetExtrasCatalog,
]


# -- reducer ---------------------------------------------------------------

def _map_line(state: OrderState, line_id: str, update) -> OrderState:
    if not any(line.line_id == line_id for line in state.lines):
        logger.debug("Order line %s not found; action ignored", line_id)
        return state
    lines = tuple(update(line) if line.line_id == line_id else line for line in state.lines)
    return replace(state, lines=lines, is_modified=True)


def reduce_order(state: OrderState, action: OrderAction) -> OrderState:
    """Apply ``action`` to ``state`` and return the new state."""
    if isinstance(action, InitializeOrder):
        return OrderState(table_id=action.table_id, extras_catalog=state.extras_catalog, is_active=True)

    if isinstance(action, ClearOrder):
        return OrderState(extras_catalog=state.extras_catalog)

    if isinstance(action, SetExtrasCatalog):
        catalog = tuple(action.extras)
        lines = tuple(price_line(line, catalog) for line in state.lines)
        return replace(state, extras_catalog=catalog, lines=lines)

    if not state.is_active:
        logger.debug("No active order; %s ignored", type(action).__name__)
        return state

    if isinstance(action, SetOrderNotes):
        return replace(state, notes=truncate_notes(action.notes), is_modified=True)

    if isinstance(action, AddItem):
        catalog = state.catalog_index
        quantity = clamp_quantity(action.quantity)
        extras = resolve_selections(action.extras, catalog)
        line = OrderLine(
            line_id=action.line_id or new_line_id(),
            menu_item_id=action.menu_item.id,
            quantity=quantity,
            unit_price=action.menu_item.price,
            subtotal=item_subtotal(action.menu_item.price, quantity, extras, catalog),
            extras=extras,
            notes=truncate_notes(action.notes),
            title=action.menu_item.title,
        )
        return replace(state, lines=state.lines + (line,), is_modified=True)

    if isinstance(action, RemoveItem):
        lines = tuple(line for line in state.lines if line.line_id != action.line_id)
        if len(lines) == len(state.lines):
            return state
        return replace(state, lines=lines, is_modified=True)

    if isinstance(action, UpdateItemQuantity):
        catalog = state.catalog_index
        quantity = clamp_quantity(action.quantity)
        return _map_line(
            state, action.line_id,
            lambda line: price_line(replace(line, quantity=quantity), catalog),
        )

    if isinstance(action, UpdateItemNotes):
        notes = truncate_notes(action.notes)
        return _map_line(state, action.line_id, lambda line: replace(line, notes=notes))

    if isinstance(action, UpdateItemExtras):
        catalog = state.catalog_index
        extras = resolve_selections(action.extras, catalog)
        return _map_line(
            state, action.line_id,
            lambda line: price_line(replace(line, extras=extras), catalog),
        )

    if isinstance(action, DuplicateItem):
        original = next((line for line in state.lines if line.line_id == action.line_id), None)
        if original is None:
            return state
        copy = replace(original, line_id=action.new_line_id or new_line_id())
        return replace(state, lines=state.lines + (copy,), is_modified=True)

    raise TypeError(f"Unknown order action: {action!r}")


# -- selectors -------------------------------------------------------------

def order_total(state: OrderState) -> Decimal:
    return sum_lines(state.lines)


def item_count(state: OrderState) -> int:
    return len(state.lines)


def total_quantity(state: OrderState) -> int:
    return sum(line.quantity for line in state.lines)


def lines_for_menu_item(state: OrderState, menu_item_id: str) -> Tuple[OrderLine, ...]:
    return tuple(line for line in state.lines if line.menu_item_id == menu_item_id)


def quantity_for_menu_item(state: OrderState, menu_item_id: str) -> int:
    return sum(line.quantity for line in lines_for_menu_item(state, menu_item_id))


def find_line(state: OrderState, line_id: str) -> Optional[OrderLine]:
    return next((line for line in state.lines if line.line_id == line_id), None)


def has_items(state: OrderState) -> bool:
    return state.is_active and bool(state.lines)
