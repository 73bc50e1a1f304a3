"""Order pricing and bill reconciliation engine."""

from .bill import apply_discounts, bill_total, build_bill, cancel_bill, post_discount_subtotal, recalculate
from .discounts import (
    DiscountResult,
    DiscountSelection,
    calculate_discounts,
    calculate_for_selection,
    resolve_discount,
    select_from_catalog,
    validate_selection,
)
from .errors import (
    AmountExceedsRemainingError,
    BillClosedError,
    BillingError,
    BillingValidationError,
    InvalidAmountError,
    MissingRequiredFieldError,
    NoSelectionError,
    RemoteSubmissionError,
)
from .items import extras_unit_total, item_subtotal, order_total
from .ledger import PaymentLedger, ledger_state, record_payment, remaining_balance, validate_payment
from .models import (
    AppliedDiscount,
    Bill,
    BillStatus,
    Discount,
    DiscountValueType,
    Extra,
    ExtraSelection,
    LedgerState,
    MenuItem,
    OrderLine,
    Payment,
    PaymentMethod,
    ServiceFeeConfig,
    ServiceFeeType,
)
from .money import format_money, format_price, parse_money, quantize_money
from .service_fee import service_fee

__all__ = [
    "AmountExceedsRemainingError",
    "AppliedDiscount",
    "Bill",
    "BillClosedError",
    "BillStatus",
    "BillingError",
    "BillingValidationError",
    "Discount",
    "DiscountResult",
    "DiscountSelection",
    "DiscountValueType",
    "Extra",
    "ExtraSelection",
    "InvalidAmountError",
    "LedgerState",
    "MenuItem",
    "MissingRequiredFieldError",
    "NoSelectionError",
    "OrderLine",
    "Payment",
    "PaymentLedger",
    "PaymentMethod",
    "RemoteSubmissionError",
    "ServiceFeeConfig",
    "ServiceFeeType",
    "apply_discounts",
    "bill_total",
    "build_bill",
    "calculate_discounts",
    "calculate_for_selection",
    "cancel_bill",
    "extras_unit_total",
    "format_money",
    "format_price",
    "item_subtotal",
    "ledger_state",
    "order_total",
    "parse_money",
    "post_discount_subtotal",
    "quantize_money",
    "recalculate",
    "record_payment",
    "remaining_balance",
    "resolve_discount",
    "select_from_catalog",
    "service_fee",
    "validate_payment",
    "validate_selection",
]
