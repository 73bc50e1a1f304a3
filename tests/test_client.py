"""Tests for the backend REST client."""

import json
from decimal import Decimal

import httpx
import pytest

from maestro_billing.backend.client import ApiClientError, BillingApiClient
from maestro_billing.pricing.models import DiscountValueType, Payment, PaymentMethod


def make_client(handler, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    return BillingApiClient(
        "http://backend.test/api",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestBillingApiClient:
    """Test cases for endpoint calls and response parsing."""

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            BillingApiClient("")

    def test_get_bill(self, bill_payload):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=bill_payload)

        bill = make_client(handler, session_id="sess-1").get_bill("bill-1")
        assert seen[0].url.path == "/api/bill/bill-1"
        assert seen[0].headers["maestro-session-id"] == "sess-1"
        assert bill.total_amount == Decimal("27.50")
        assert bill.service_fee.percent == Decimal("10")

    def test_create_payment_body(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return httpx.Response(201, json={
                "id": "p1", "billId": "bill-1", "amount": "10.00",
                "paymentMethod": "BankCard", "transactionId": "TX",
                "createdAt": "2024-05-01T12:00:00Z",
            })

        payment = Payment(Decimal("10.00"), PaymentMethod.BANK_CARD, transaction_id=" TX ", notes="tip")
        created = make_client(handler).create_payment("bill-1", payment)
        assert captured == {"billId": "bill-1", "amount": 10.0, "method": "BankCard",
                            "transactionId": "TX", "notes": "tip"}
        assert created.id == "p1"
        assert created.method is PaymentMethod.BANK_CARD

    def test_calculate_discounts(self):
        def handler(request):
            body = json.loads(request.content)
            assert body == {"billAmount": 25.0, "discountIds": ["d10"], "customerId": "c1"}
            return httpx.Response(200, json={
                "totalDiscount": "2.50",
                "discounts": [{"discountId": "d10", "amount": "2.50", "type": "Percentage"}],
            })

        result = make_client(handler).calculate_discounts("25.00", ["d10"], customer_id="c1")
        assert result["totalDiscount"] == Decimal("2.50")
        assert result["discounts"][0]["amount"] == Decimal("2.50")

    def test_calculate_bill_sends_positive_custom_amount_only(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"subtotal": "25", "discountAmount": "5",
                                             "serviceFeeAmount": "2", "totalAmount": "22"})

        client = make_client(handler)
        preview = client.calculate_bill("o1", ["d1"], custom_discount_amount="0")
        client.calculate_bill("o1", [], custom_discount_amount="3")
        assert "customDiscountAmount" not in bodies[0]
        assert bodies[1]["customDiscountAmount"] == 3.0
        assert preview["totalAmount"] == Decimal("22")

    def test_get_discounts(self):
        def handler(request):
            assert request.url.params["isActive"] == "true"
            return httpx.Response(200, json={"data": [
                {"id": "d1", "discountValueType": "Percentage", "discountValue": "15",
                 "title": {"en": "Happy hour"}},
            ], "total": 1})

        discounts = make_client(handler).get_discounts()
        assert discounts[0].value_type is DiscountValueType.PERCENTAGE
        assert discounts[0].title == "Happy hour"

    def test_get_extras_and_menu_item(self):
        def handler(request):
            if request.url.path.endswith("/extras"):
                return httpx.Response(200, json={"data": [{"id": "e1", "actualPrice": "1.5"}]})
            return httpx.Response(200, json={"id": "m1", "price": "9.90", "extras": []})

        client = make_client(handler)
        assert client.get_extras()[0].unit_price == Decimal("1.5")
        assert client.get_menu_item("m1").price == Decimal("9.90")


class TestErrorHandling:
    """Test cases for error mapping and retries."""

    def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(400, json={"message": "Amount exceeds remaining balance"})

        with pytest.raises(ApiClientError) as exc_info:
            make_client(handler).get_bill("b1")
        assert exc_info.value.code == "CLIENT_ERROR"
        assert exc_info.value.message == "Amount exceeds remaining balance"
        assert not exc_info.value.is_retryable
        assert len(calls) == 1

    @pytest.mark.parametrize("status, code", [(401, "UNAUTHORIZED"), (403, "FORBIDDEN")])
    def test_auth_errors(self, status, code):
        with pytest.raises(ApiClientError) as exc_info:
            make_client(lambda request: httpx.Response(status)).get_bill("b1")
        assert exc_info.value.code == code

    def test_server_error_retried_then_succeeds(self, bill_payload):
        responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, json=bill_payload)])
        bill = make_client(lambda request: next(responses), max_retries=3).get_bill("bill-1")
        assert bill.id == "bill-1"

    def test_retries_exhausted(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(500)

        with pytest.raises(ApiClientError) as exc_info:
            make_client(handler, max_retries=2).get_bill("b1")
        assert exc_info.value.code == "SERVER_ERROR"
        assert exc_info.value.is_retryable
        assert len(calls) == 3

    def test_timeout_mapped(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(ApiClientError) as exc_info:
            make_client(handler, max_retries=0).get_bill("b1")
        assert exc_info.value.code == "TIMEOUT"

    def test_payment_never_retried(self):
        calls = []

        def handler(request):
            calls.append(1)
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(ApiClientError) as exc_info:
            make_client(handler, max_retries=3).create_payment("b1", Payment(Decimal("1")))
        assert exc_info.value.code == "NETWORK_ERROR"
        assert len(calls) == 1

    def test_non_json_body_normalized(self):
        def handler(request):
            return httpx.Response(201, text="Created")

        with pytest.raises(ApiClientError) as exc_info:
            make_client(handler).create_payment("b1", Payment(Decimal("1")))
        assert exc_info.value.code == "INVALID_RESPONSE"
        assert exc_info.value.status == 201
        assert not exc_info.value.is_retryable

    def test_unexpected_payload_shape_normalized(self, bill_payload):
        bill_payload["status"] = "archived"

        def handler(request):
            return httpx.Response(200, json=bill_payload)

        with pytest.raises(ApiClientError) as exc_info:
            make_client(handler).get_bill("bill-1")
        assert exc_info.value.code == "INVALID_RESPONSE"

    def test_empty_payment_response_normalized(self):
        def handler(request):
            return httpx.Response(204)

        with pytest.raises(ApiClientError) as exc_info:
            make_client(handler).create_payment("b1", Payment(Decimal("1")))
        assert exc_info.value.code == "INVALID_RESPONSE"
