"""Tests for service fees and bill totals."""

from decimal import Decimal

import pytest

from maestro_billing.pricing.bill import (
    apply_discounts,
    bill_total,
    build_bill,
    cancel_bill,
    post_discount_subtotal,
)
from maestro_billing.pricing.discounts import DiscountSelection, calculate_discounts
from maestro_billing.pricing.errors import BillClosedError, NoSelectionError
from maestro_billing.pricing.ledger import ledger_state, record_payment
from maestro_billing.pricing.models import BillStatus, LedgerState, Payment, ServiceFeeConfig, ServiceFeeType
from maestro_billing.pricing.service_fee import service_fee


class TestServiceFee:
    """Test cases for the service fee calculator."""

    def test_no_config_is_zero(self):
        assert service_fee("27.50", None) == Decimal("0")

    def test_percentage(self, ten_percent_fee):
        assert service_fee("27.50", ten_percent_fee) == Decimal("2.75")

    def test_fixed(self):
        assert service_fee("27.50", ServiceFeeConfig.fixed("3")) == Decimal("3")

    def test_never_negative(self):
        assert service_fee("10", ServiceFeeConfig.fixed("-3")) == Decimal("0")

    def test_from_api_record(self):
        config = ServiceFeeConfig.from_api({"id": "sf1", "type": "Percentage", "percent": "12.5",
                                            "title": {"en": "Service", "ru": "", "tm": ""}})
        assert config.fee_type is ServiceFeeType.PERCENTAGE
        assert config.title == "Service"
        assert service_fee("40", config) == Decimal("5.00")

    def test_from_api_without_type(self):
        assert ServiceFeeConfig.from_api({"subtotal": "1"}) is None


class TestBillTotal:
    """Test cases for the total composition."""

    def test_formula(self):
        assert bill_total("25.00", "2.50", "2.25") == Decimal("24.75")

    def test_discount_larger_than_subtotal(self):
        assert post_discount_subtotal("25.00", "30.00") == Decimal("0")
        assert bill_total("25.00", "30.00", "1.00") == Decimal("1.00")

    def test_fee_charged_on_discounted_subtotal(self, ten_percent_fee, discount_catalog):
        """27.50 less 2.50 is 25.00; 10% fee on that is 2.50; total 27.50."""
        discount = calculate_discounts("27.50", [], custom_amount="2.50")
        bill = build_bill("27.50", discount, ten_percent_fee)
        assert bill.service_fee_amount == Decimal("2.50")
        assert bill.total_amount == Decimal("27.50")

    def test_fee_without_discount(self, ten_percent_fee):
        bill = build_bill("27.50", service_fee_config=ten_percent_fee)
        assert bill.service_fee_amount == Decimal("2.75")
        assert bill.total_amount == Decimal("30.25")
        assert bill.paid_amount == Decimal("0")
        assert bill.status is BillStatus.FINALIZED

    def test_build_bill_stores_unclamped_discount(self, discount_catalog):
        bill = build_bill("25.00", calculate_discounts("25.00", discount_catalog[2:]))
        assert bill.discount_amount == Decimal("30.00")
        assert bill.total_amount == Decimal("0")
        assert bill.discounts[0].discount_id == "d30"


class TestApplyDiscounts:
    """Test cases for applying a selection to a bill."""

    def test_apply_recomputes_fee_and_total(self, discount_catalog, ten_percent_fee):
        bill = build_bill("25.00", service_fee_config=ten_percent_fee)
        selection = DiscountSelection().toggle("d10").toggle("d2")
        updated = apply_discounts(bill, discount_catalog, selection)
        assert updated.discount_amount == Decimal("4.50")
        assert updated.service_fee_amount == Decimal("2.05")
        assert updated.total_amount == Decimal("22.55")
        assert bill.discount_amount == Decimal("0")

    def test_apply_requires_selection(self, discount_catalog, open_bill):
        with pytest.raises(NoSelectionError):
            apply_discounts(open_bill, discount_catalog, DiscountSelection())

    def test_cancelled_bill_refused(self, discount_catalog, open_bill):
        with pytest.raises(BillClosedError):
            apply_discounts(cancel_bill(open_bill), discount_catalog, DiscountSelection(("d2",)))

    def test_paid_bill_cannot_be_cancelled(self, open_bill):
        with pytest.raises(BillClosedError):
            cancel_bill(open_bill.evolve(status=BillStatus.PAID))

    def test_discount_below_paid_amount_refused(self, discount_catalog, open_bill):
        bill = record_payment(open_bill, Payment(Decimal("20.00")))
        with pytest.raises(BillClosedError):
            apply_discounts(bill, discount_catalog, DiscountSelection(("d30",)))

    def test_discount_on_partially_paid_bill(self, discount_catalog, open_bill):
        bill = record_payment(open_bill, Payment(Decimal("20.00")))
        updated = apply_discounts(bill, discount_catalog, DiscountSelection(("d2",)))
        assert updated.total_amount == Decimal("25.50")
        assert updated.status is BillStatus.FINALIZED
        assert ledger_state(updated) is LedgerState.PARTIALLY_PAID

    def test_discount_settling_bill_marks_it_paid(self, discount_catalog, open_bill):
        bill = record_payment(open_bill, Payment(Decimal("25.50")))
        updated = apply_discounts(bill, discount_catalog, DiscountSelection(("d2",)))
        assert updated.total_amount == updated.paid_amount
        assert updated.status is BillStatus.PAID
        assert ledger_state(updated) is LedgerState.FULLY_PAID
        with pytest.raises(BillClosedError):
            apply_discounts(updated, discount_catalog, DiscountSelection(("d10",)))
