"""REST client for the Maestro backend billing endpoints."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import httpx

from ..pricing.models import Bill, Discount, Extra, MenuItem, Payment
from ..pricing.money import parse_money
from ..utils.config import Config
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
RETRY_DELAY = 1.0
RETRYABLE_STATUS_CODES = (408, 500, 502, 503, 504)

T = TypeVar("T")


class ApiClientError(Exception):
    """Normalized failure of a backend call."""

    def __init__(self, message: str, status: int = 0, code: str = "UNKNOWN_ERROR",
                 is_retryable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.is_retryable = is_retryable

    def __repr__(self) -> str:
        return f"ApiClientError({self.code}, status={self.status}, message={self.message!r})"


def _error_from_response(response: httpx.Response) -> ApiClientError:
    status = response.status_code
    try:
        payload = response.json()
        message = payload.get("message") if isinstance(payload, dict) else None
    except ValueError:
        message = None
    message = message or response.reason_phrase or "An error occurred"
    if isinstance(message, list):
        message = "; ".join(str(m) for m in message)

    if status == 401:
        code = "UNAUTHORIZED"
    elif status == 403:
        code = "FORBIDDEN"
    elif 400 <= status < 500:
        code = "CLIENT_ERROR"
    else:
        code = "SERVER_ERROR"
    return ApiClientError(str(message), status, code, status in RETRYABLE_STATUS_CODES)


def _data(payload: Any) -> List[Any]:
    """Items of a paginated ``{"data": [...]}`` list response."""
    items = (payload or {}).get("data") or []
    if not isinstance(items, list):
        raise TypeError(f"expected a list under 'data', got {type(items).__name__}")
    return items


def _bill_calculation(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: parse_money(payload.get(key)) for key in
            ("subtotal", "discountAmount", "serviceFeeAmount", "totalAmount")}


def _discount_calculation(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "totalDiscount": parse_money(payload.get("totalDiscount")),
        "discounts": [
            {"discountId": d.get("discountId"), "amount": parse_money(d.get("amount")),
             "type": d.get("type")}
            for d in payload.get("discounts") or []
        ],
    }


class BillingApiClient:
    """Thin synchronous wrapper over the bill, payment, discount and menu endpoints.

    Idempotent reads and calculations are retried on network errors,
    timeouts and retryable status codes with exponential backoff. Payment
    creation is never retried here; the caller decides after reconciling.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        session_id: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ValueError("API_BASE_URL is required")
        headers = {"Content-Type": "application/json"}
        if session_id:
            headers["maestro-session-id"] = session_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @classmethod
    def from_config(cls, config: Optional[Config] = None, **kwargs: Any) -> "BillingApiClient":
        config = config or Config(".env")
        return cls(
            base_url=config.get("api_base_url"),
            timeout=config.get("api_timeout", DEFAULT_TIMEOUT),
            max_retries=config.get("api_max_retries", MAX_RETRIES),
            retry_delay=config.get("api_retry_delay", RETRY_DELAY),
            session_id=config.get("api_session_id") or None,
            **kwargs,
        )

    def __enter__(self) -> "BillingApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # -- transport ---------------------------------------------------------

    def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ApiClientError(f"Request timed out: {e}", 0, "TIMEOUT", True) from e
        except httpx.TransportError as e:
            raise ApiClientError(f"Network error: {e}", 0, "NETWORK_ERROR", True) from e
        if response.is_error:
            raise _error_from_response(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiClientError(
                f"Response is not valid JSON: {e}", response.status_code, "INVALID_RESPONSE"
            ) from e

    def _request(self, method: str, url: str, retry: bool = True, **kwargs: Any) -> Any:
        attempt = 0
        while True:
            try:
                return self._send(method, url, **kwargs)
            except ApiClientError as e:
                if not retry or not e.is_retryable or attempt >= self.max_retries:
                    logger.error("%s %s failed: %s", method, url, e.message)
                    raise
                delay = self.retry_delay * (2 ** attempt)
                attempt += 1
                logger.warning("%s %s failed (%s); retry %d/%d in %.2fs",
                               method, url, e.code, attempt, self.max_retries, delay)
                time.sleep(delay)

    @staticmethod
    def _parse(parser: Callable[[Any], T], payload: Any, what: str) -> T:
        """Build domain records from a payload, normalizing shape errors."""
        try:
            return parser(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error("Unexpected %s payload: %s", what, e)
            raise ApiClientError(f"Unexpected {what} response: {e}", 0, "INVALID_RESPONSE") from e

    # -- bills -------------------------------------------------------------

    def get_bill(self, bill_id: str) -> Bill:
        return self._parse(Bill.from_api, self._request("GET", f"/bill/{bill_id}"), "bill")

    def get_bill_by_order(self, order_id: str) -> Optional[Bill]:
        payload = self._request("GET", "/bill", params={"orderId": order_id})
        bills = self._parse(_data, payload, "bill list")
        return self._parse(Bill.from_api, bills[0], "bill") if bills else None

    def calculate_bill(
        self,
        order_id: str,
        discount_ids: Iterable[str] = (),
        custom_discount_amount: Any = None,
    ) -> Dict[str, Any]:
        """Server-side bill preview: subtotal, discount, service fee and total."""
        body: Dict[str, Any] = {"orderId": order_id, "discountIds": list(discount_ids)}
        custom = parse_money(custom_discount_amount)
        if custom > 0:
            body["customDiscountAmount"] = float(custom)
        payload = self._request("POST", "/bill/calculate", json=body)
        return self._parse(_bill_calculation, payload, "bill calculation")

    def update_bill_discounts(
        self, bill_id: str, discount_ids: Iterable[str], custom_discount_amount: Any = None
    ) -> Bill:
        body: Dict[str, Any] = {"discountIds": list(discount_ids)}
        custom = parse_money(custom_discount_amount)
        if custom > 0:
            body["customDiscountAmount"] = float(custom)
        payload = self._request("PUT", f"/bill/{bill_id}/discounts", json=body)
        return self._parse(Bill.from_api, payload, "bill")

    # -- payments ----------------------------------------------------------

    def create_payment(self, bill_id: str, payment: Payment) -> Payment:
        payload = self._request("POST", "/payment", retry=False, json=payment.to_request(bill_id))
        return self._parse(Payment.from_api, payload, "payment")

    def get_payments(self, bill_id: str) -> List[Payment]:
        payload = self._request("GET", "/payment", params={"billId": bill_id})
        return self._parse(lambda p: [Payment.from_api(d) for d in _data(p)], payload, "payment list")

    # -- discounts ---------------------------------------------------------

    def get_discounts(self, active_only: bool = True) -> List[Discount]:
        params = {"isActive": "true"} if active_only else None
        payload = self._request("GET", "/discount", params=params)
        return self._parse(lambda p: [Discount.from_api(d) for d in _data(p)], payload, "discount list")

    def calculate_discounts(
        self, bill_amount: Any, discount_ids: Iterable[str], customer_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Authoritative discount total for a bill amount."""
        body: Dict[str, Any] = {
            "billAmount": float(parse_money(bill_amount)),
            "discountIds": list(discount_ids),
        }
        if customer_id:
            body["customerId"] = customer_id
        payload = self._request("POST", "/discount/calculate", json=body)
        return self._parse(_discount_calculation, payload, "discount calculation")

    # -- menu --------------------------------------------------------------

    def get_extras(self) -> List[Extra]:
        payload = self._request("GET", "/extras", params={"isActive": "true"})
        return self._parse(lambda p: [Extra.from_api(e) for e in _data(p)], payload, "extras list")

    def get_menu_item(self, menu_item_id: str) -> MenuItem:
        payload = self._request("GET", f"/menu-item/{menu_item_id}")
        return self._parse(MenuItem.from_api, payload, "menu item")
