"""
Command-line interface for the Maestro billing engine.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import __version__
from .backend.client import BillingApiClient
from .backend.service import BillingService
from .pricing.bill import build_bill
from .pricing.discounts import calculate_discounts, select_from_catalog
from .pricing.errors import BillingError
from .pricing.ledger import ledger_state, record_payment, remaining_balance
from .pricing.models import (
    Bill,
    Discount,
    Extra,
    ExtraSelection,
    MenuItem,
    Payment,
    PaymentMethod,
    ServiceFeeConfig,
)
from .pricing.money import format_price, parse_money
from .pricing.order import AddItem, InitializeOrder, OrderState, SetExtrasCatalog, order_total, reduce_order
from .utils.config import Config
from .utils.logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Maestro Billing - order pricing and bill reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  maestro-billing --version
  maestro-billing price-order --order-file order.json
  maestro-billing pay --bill-file bill.json --amount 10.00 --method Cash
  maestro-billing submit-payment --bill-id b1 --amount 17.50 --method BankCard --transaction-id T-1
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Maestro Billing {__version__}",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--log-file",
        help="Log file path",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
    )

    price_parser = subparsers.add_parser(
        "price-order",
        help="Price an order file: lines, discounts, service fee and total",
    )
    price_parser.add_argument(
        "--order-file",
        required=True,
        help="JSON file with items, extras, discounts and service fee",
    )

    methods = [m.value for m in PaymentMethod]

    pay_parser = subparsers.add_parser(
        "pay",
        help="Preview recording a payment against a bill file (no network)",
    )
    pay_parser.add_argument("--bill-file", required=True, help="JSON bill as returned by the backend")
    _add_payment_arguments(pay_parser, methods)

    submit_parser = subparsers.add_parser(
        "submit-payment",
        help="Submit a payment to the backend (requires API_BASE_URL)",
    )
    submit_parser.add_argument("--bill-id", required=True, help="Bill identifier")
    _add_payment_arguments(submit_parser, methods)

    return parser


def _add_payment_arguments(parser: argparse.ArgumentParser, methods: List[str]) -> None:
    parser.add_argument("--amount", required=True, help="Payment amount, e.g. 12.50")
    parser.add_argument("--method", choices=methods, default=PaymentMethod.CASH.value,
                        help="Payment method (default: Cash)")
    parser.add_argument("--transaction-id", help="Card transaction id (required for BankCard)")
    parser.add_argument("--notes", help="Free-text payment notes")


def _load_json(path: str) -> Dict[str, Any]:
    with Path(path).open(encoding="utf-8") as fh:
        return json.load(fh)


def _print_box(rows: List[Tuple[str, str]]) -> None:
    label_width = max(len(lbl) for lbl, _ in rows)
    inner_width = max(len(f" {lbl.ljust(label_width)} : {val}") for lbl, val in rows) + 1
    print("┌" + "─" * inner_width + "┐")
    for lbl, val in rows:
        line = f" {lbl.ljust(label_width)} : {val}"
        print(f"│{line.ljust(inner_width)}│")
    print("└" + "─" * inner_width + "┘")


def _payment_from_args(parsed_args: argparse.Namespace) -> Payment:
    return Payment(
        amount=parse_money(parsed_args.amount),
        method=PaymentMethod(parsed_args.method),
        transaction_id=parsed_args.transaction_id,
        notes=parsed_args.notes,
    )


def price_order(order_file: str, symbol: str = "$") -> Bill:
    """Price an order file and print the bill breakdown."""
    data = _load_json(order_file)

    state = reduce_order(OrderState(), InitializeOrder(table_id=str(data.get("tableId", ""))))
    state = reduce_order(state, SetExtrasCatalog(
        extras=tuple(Extra.from_api(e) for e in data.get("extras") or [])
    ))
    for item in data.get("items") or []:
        menu_item = MenuItem(
            id=str(item.get("menuItemId", "")),
            price=parse_money(item.get("price")),
            title=str(item.get("title", "")),
        )
        state = reduce_order(state, AddItem(
            menu_item=menu_item,
            quantity=int(item.get("quantity", 1)),
            notes=item.get("notes", ""),
            extras=tuple(ExtraSelection.from_api(x) for x in item.get("extras") or []),
        ))

    subtotal = order_total(state)
    catalog = [Discount.from_api(d) for d in data.get("discounts") or []]
    selected = select_from_catalog(catalog, data.get("discountIds") or [])
    discount_result = calculate_discounts(subtotal, selected, data.get("customDiscountAmount"))
    bill = build_bill(
        subtotal,
        discount_result=discount_result,
        service_fee_config=ServiceFeeConfig.from_api(data.get("serviceFee")),
        order_id=data.get("orderId"),
    )

    print("\nORDER LINES:")
    print("=" * 60)
    for line in state.lines:
        label = line.title or line.menu_item_id
        print(f"   {line.quantity:>2} x {label:<30} {format_price(line.subtotal, symbol):>12}")
        for extra in line.extras:
            print(f"        + {extra.quantity} x {extra.title or extra.extra_id}")

    if discount_result.applied:
        print("\nDISCOUNTS:")
        print("=" * 60)
        for applied in discount_result.applied:
            print(f"   {applied.title or applied.discount_id:<36} -{format_price(applied.amount, symbol)}")
    if discount_result.custom_amount > 0:
        print(f"   {'Custom discount':<36} -{format_price(discount_result.custom_amount, symbol)}")

    print()
    _print_box([
        ("Subtotal", format_price(bill.subtotal, symbol)),
        ("Discount", f"-{format_price(bill.discount_amount, symbol)}"),
        ("After Discount", format_price(discount_result.final_amount, symbol)),
        ("Service Fee", format_price(bill.service_fee_amount, symbol)),
        ("Total", format_price(bill.total_amount, symbol)),
    ])
    return bill


def _print_ledger(bill: Bill, symbol: str) -> None:
    _print_box([
        ("Bill", bill.id or "-"),
        ("Total", format_price(bill.total_amount, symbol)),
        ("Paid", format_price(bill.paid_amount, symbol)),
        ("Remaining", format_price(remaining_balance(bill), symbol)),
        ("State", ledger_state(bill).value),
    ])


def preview_payment(bill_file: str, payment: Payment, symbol: str = "$") -> Bill:
    """Record a payment against a bill file locally and print the ledger."""
    bill = Bill.from_api(_load_json(bill_file))
    updated = record_payment(bill, payment)
    _print_ledger(updated, symbol)
    return updated


def submit_payment(bill_id: str, payment: Payment, config: Config) -> Bill:
    """Submit a payment to the backend and print the authoritative ledger."""
    with BillingApiClient.from_config(config) as client:
        service = BillingService(client)
        bill = service.load_bill(bill_id)
        updated = service.submit_payment(bill, payment)
    _print_ledger(updated, config.get("currency_symbol", "$"))
    return updated


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    log_level = "DEBUG" if parsed_args.verbose else "INFO"
    logger = setup_logging(level=log_level, log_file=parsed_args.log_file)
    config = Config(".env")
    symbol = config.get("currency_symbol", "$")

    try:
        if parsed_args.command == "price-order":
            price_order(parsed_args.order_file, symbol=symbol)

        elif parsed_args.command == "pay":
            preview_payment(parsed_args.bill_file, _payment_from_args(parsed_args), symbol=symbol)

        elif parsed_args.command == "submit-payment":
            submit_payment(parsed_args.bill_id, _payment_from_args(parsed_args), config)

        elif not parsed_args.command:
            parser.print_help()
            return 1

    except BillingError as e:
        print(f"Error [{e.code}]: {e.message}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
