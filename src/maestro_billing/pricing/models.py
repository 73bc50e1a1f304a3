"""Domain records consumed and produced by the pricing engine.

Backend payloads use camelCase keys and carry money as text; the
``from_api`` constructors translate them into these immutable records.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .money import ZERO, format_money, parse_money


class PaymentMethod(str, Enum):
    CASH = "Cash"
    BANK_CARD = "BankCard"
    GAPJYK_PAY = "GapjykPay"
    CUSTOMER_ACCOUNT = "CustomerAccount"


class DiscountValueType(str, Enum):
    PERCENTAGE = "Percentage"
    FIXED = "Fixed"


class ServiceFeeType(str, Enum):
    PERCENTAGE = "Percentage"
    FIXED = "Fixed"


class BillStatus(str, Enum):
    DRAFT = "draft"
    FINALIZED = "finalized"
    PAID = "paid"
    CANCELLED = "cancelled"


class LedgerState(str, Enum):
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "PartiallyPaid"
    FULLY_PAID = "FullyPaid"


def translated_text(value: Any, locale: str = "en") -> str:
    """Pick a display string from a backend translation object."""
    if value is None:
        return ""
    if isinstance(value, dict):
        if value.get(locale):
            return str(value[locale])
        for text in value.values():
            if text:
                return str(text)
        return ""
    return str(value)


@dataclass(frozen=True)
class Extra:
    """Catalog entry for a menu item modifier."""

    id: str
    unit_price: Decimal
    title: str = ""
    is_active: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Extra":
        return cls(
            id=str(data.get("id", data.get("_id", ""))),
            unit_price=parse_money(data.get("actualPrice")),
            title=translated_text(data.get("title")),
            is_active=bool(data.get("isActive", True)),
        )


@dataclass(frozen=True)
class MenuItem:
    id: str
    price: Decimal
    title: str = ""
    extras: Tuple[Extra, ...] = ()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "MenuItem":
        return cls(
            id=str(data.get("id", data.get("_id", ""))),
            price=parse_money(data.get("price")),
            title=translated_text(data.get("title")),
            extras=tuple(Extra.from_api(extra) for extra in data.get("extras") or []),
        )


@dataclass(frozen=True)
class ExtraSelection:
    """A chosen extra and how many of it go on each unit of the parent item.

    ``price`` is an optional fallback unit price used when the extra cannot
    be found in the catalog being priced against.
    """

    extra_id: str
    quantity: int = 1
    price: Optional[Decimal] = None
    title: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ExtraSelection":
        raw_price = data.get("price", data.get("pricePerUnit"))
        return cls(
            extra_id=str(data.get("extraId", "")),
            quantity=int(data.get("quantity", 1) or 1),
            price=parse_money(raw_price) if raw_price not in (None, "") else None,
            title=translated_text(data.get("title", data.get("extraTitle"))),
        )


@dataclass(frozen=True)
class OrderLine:
    """One priced line of an in-progress order.

    ``subtotal`` is derived by the item pricer; use the order reducer to
    change quantity or extras so it is recomputed.
    """

    line_id: str
    menu_item_id: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    extras: Tuple[ExtraSelection, ...] = ()
    notes: str = ""
    title: str = ""


@dataclass(frozen=True)
class Discount:
    id: str
    value_type: DiscountValueType
    value: Decimal
    title: str = ""
    is_active: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Discount":
        return cls(
            id=str(data.get("id", data.get("_id", ""))),
            value_type=DiscountValueType(data.get("discountValueType", DiscountValueType.FIXED.value)),
            value=parse_money(data.get("discountValue")),
            title=translated_text(data.get("title")),
            is_active=bool(data.get("isActive", True)),
        )


@dataclass(frozen=True)
class AppliedDiscount:
    """The resolved money value of one discount against a specific bill amount."""

    discount_id: str
    amount: Decimal
    title: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AppliedDiscount":
        return cls(
            discount_id=str(data.get("discountId", "")),
            amount=parse_money(data.get("discountAmount", data.get("amount"))),
            title=translated_text(data.get("discountTitle")),
        )


@dataclass(frozen=True)
class ServiceFeeConfig:
    fee_type: ServiceFeeType
    percent: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    title: str = ""
    id: Optional[str] = None

    @classmethod
    def percentage(cls, percent: Any, title: str = "") -> "ServiceFeeConfig":
        return cls(fee_type=ServiceFeeType.PERCENTAGE, percent=parse_money(percent), title=title)

    @classmethod
    def fixed(cls, amount: Any, title: str = "") -> "ServiceFeeConfig":
        return cls(fee_type=ServiceFeeType.FIXED, amount=parse_money(amount), title=title)

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["ServiceFeeConfig"]:
        """Build from a ``ServiceFee`` record or a bill's serviceFee* fields."""
        if not data:
            return None
        fee_type = data.get("type", data.get("serviceFeeType"))
        if not fee_type:
            return None
        percent = data.get("percent", data.get("serviceFeePercent"))
        amount = data.get("amount", data.get("serviceFeeAmount"))
        return cls(
            fee_type=ServiceFeeType(fee_type),
            percent=parse_money(percent) if percent not in (None, "") else None,
            amount=parse_money(amount) if amount not in (None, "") else None,
            title=translated_text(data.get("title", data.get("serviceFeeTitle"))),
            id=data.get("id", data.get("serviceFeeId", data.get("_id"))),
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    """ISO-8601 text or epoch milliseconds; anything else means now."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return _utcnow()


@dataclass(frozen=True)
class Payment:
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Payment":
        return cls(
            amount=parse_money(data.get("amount")),
            method=PaymentMethod(data.get("paymentMethod", data.get("method", PaymentMethod.CASH.value))),
            transaction_id=data.get("transactionId") or None,
            notes=data.get("notes", data.get("reason")) or None,
            created_at=_parse_timestamp(data.get("createdAt")),
            id=data.get("id"),
        )

    def to_request(self, bill_id: str) -> Dict[str, Any]:
        """Body for ``POST /payment``."""
        body: Dict[str, Any] = {
            "billId": bill_id,
            "amount": float(parse_money(self.amount)),
            "method": self.method.value,
        }
        if self.transaction_id and self.transaction_id.strip():
            body["transactionId"] = self.transaction_id.strip()
        if self.notes:
            body["notes"] = self.notes
        return body


@dataclass(frozen=True)
class Bill:
    """Payable record for a finalized order.

    ``total_amount`` always equals ``max(0, subtotal - discount_amount) +
    service_fee_amount``; the bill module is the only place that sets it.
    ``discount_amount`` holds the unclamped sum of applied discounts.
    """

    subtotal: Decimal
    discount_amount: Decimal = ZERO
    service_fee_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    discounts: Tuple[AppliedDiscount, ...] = ()
    payments: Tuple[Payment, ...] = ()
    status: BillStatus = BillStatus.FINALIZED
    service_fee: Optional[ServiceFeeConfig] = None
    custom_discount_amount: Decimal = ZERO
    id: Optional[str] = None
    order_id: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status is BillStatus.CANCELLED

    def evolve(self, **changes: Any) -> "Bill":
        return replace(self, **changes)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Bill":
        status = data.get("status")
        return cls(
            id=data.get("id"),
            order_id=data.get("orderId"),
            subtotal=parse_money(data.get("subtotal")),
            discount_amount=parse_money(data.get("discountAmount")),
            service_fee_amount=parse_money(data.get("serviceFeeAmount")),
            total_amount=parse_money(data.get("totalAmount")),
            paid_amount=parse_money(data.get("paidAmount")),
            discounts=tuple(AppliedDiscount.from_api(d) for d in data.get("discounts") or []),
            payments=tuple(Payment.from_api(p) for p in data.get("payments") or []),
            status=BillStatus(status) if status else BillStatus.FINALIZED,
            service_fee=ServiceFeeConfig.from_api(data),
        )

    def to_summary(self) -> Dict[str, str]:
        """Display strings for the bill's money fields."""
        return {
            "subtotal": format_money(self.subtotal),
            "discountAmount": format_money(self.discount_amount),
            "serviceFeeAmount": format_money(self.service_fee_amount),
            "totalAmount": format_money(self.total_amount),
            "paidAmount": format_money(self.paid_amount),
        }
