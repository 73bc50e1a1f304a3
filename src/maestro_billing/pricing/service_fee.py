"""Service fee on the post-discount subtotal."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from .models import ServiceFeeConfig, ServiceFeeType
from .money import ZERO, parse_money, quantize_money

HUNDRED = Decimal("100")


def service_fee(post_discount_subtotal: Any, config: Optional[ServiceFeeConfig]) -> Decimal:
    """Fixed fee, or a percentage of ``post_discount_subtotal``.

    No config means no fee. The result is never negative.
    """
    if config is None:
        return ZERO
    if config.fee_type is ServiceFeeType.PERCENTAGE:
        percent = parse_money(config.percent)
        fee = quantize_money(parse_money(post_discount_subtotal) * percent / HUNDRED)
    else:
        fee = parse_money(config.amount)
    return max(ZERO, fee)
