"""HTTP adapter for the commerce backend (WooCommerce REST API v3).

This module implements the ``CommercePort`` over ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from a ContextVar set by
  the gateway middleware.
- Credentials: WooCommerce ``consumer_key``/``consumer_secret`` are sent as
  query parameters on every call and are never logged.
- Error translation: transport errors and non-success responses become
  ``BackendError``. Nothing is retried; failures surface to the caller at
  once.
"""

import logging
from typing import List, Optional

import httpx
from django.conf import settings

from gateway.middleware import request_headers

from .domain import (
    BackendLineItem,
    BackendOrder,
    CommercePort,
    OrderLine,
    PaymentMethod,
    ShippingInfo,
    ShippingMethod,
)
from .errors import BackendError

logger = logging.getLogger("orders")

API_PREFIX = "wp-json/wc/v3"


# ---------------- Helpers ---------------- #

def _contact_block(info: ShippingInfo) -> dict:
    """Map a ``ShippingInfo`` to a WooCommerce address block."""
    first_name, _, last_name = info.name.partition(" ")
    a = info.address
    return {
        "first_name": first_name,
        "last_name": last_name,
        "address_1": a.street_line1,
        "address_2": a.street_line2,
        "city": a.city,
        "state": a.state,
        "postcode": a.post_code,
        "country": a.country_code,
    }


def order_info_update(info: ShippingInfo) -> dict:
    """Body of the ``PUT orders/{id}`` call that stores shipping and billing."""
    billing = _contact_block(info)
    billing["email"] = info.email
    billing["phone"] = info.phone
    return {"shipping": _contact_block(info), "billing": billing}


def parse_order(data: dict) -> BackendOrder:
    """Build a ``BackendOrder`` from a WooCommerce order resource."""
    return BackendOrder(
        id=int(data["id"]),
        order_key=str(data.get("order_key", "")),
        currency=str(data.get("currency", "")),
        payment_method=str(data.get("payment_method", "")),
        line_items=[
            BackendLineItem(name=str(i["name"]), quantity=int(i["quantity"]), total=str(i["total"]))
            for i in data.get("line_items", [])
        ],
    )


# ---------------- Commerce Adapter ---------------- #

class HttpCommerceClient(CommercePort):
    """HTTP client for the WooCommerce REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        consumer_key: str | None = None,
        consumer_secret: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.WOOCOMMERCE_URL).rstrip("/")
        self.consumer_key = consumer_key or settings.WOOCOMMERCE_CONSUMER_KEY
        self.consumer_secret = consumer_secret or settings.WOOCOMMERCE_CONSUMER_SECRET
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def _url(self, api: str) -> str:
        return f"{self.base_url}/{API_PREFIX}/{api.lstrip('/')}"

    def _params(self) -> dict:
        return {"consumer_key": self.consumer_key, "consumer_secret": self.consumer_secret}

    def _send(self, method: str, api: str, body: Optional[dict] = None) -> httpx.Response:
        """Perform one request against the backend.

        Raises:
            BackendError: On transport errors (``upstream_status`` is None).
        """
        headers = request_headers({"Content-Type": "application/json"})
        logger.info("commerce call", extra={"method": method, "api": api})
        try:
            with httpx.Client(timeout=self.timeout) as client:
                if method == "POST":
                    return client.post(self._url(api), params=self._params(), json=body, headers=headers)
                if method == "PUT":
                    return client.put(self._url(api), params=self._params(), json=body, headers=headers)
                return client.get(self._url(api), params=self._params(), headers=headers)
        except httpx.RequestError as e:
            logger.warning("commerce unreachable", extra={"method": method, "api": api})
            raise BackendError(f"Commerce backend unreachable: {method} {api}") from e

    def create_order(
        self, items: List[OrderLine], customer_note: str, payment_method: PaymentMethod
    ) -> BackendOrder:
        """Create an unpaid order.

        Maps responses:
        - 200/201 → parsed ``BackendOrder``
        - anything else → ``BackendError`` carrying the upstream status

        Raises:
            BackendError: For transport errors, non-success statuses or a
                body that is not a WooCommerce order.
        """
        body = {
            "set_paid": False,
            "line_items": [{"product_id": i.product_id, "quantity": i.quantity} for i in items],
            "customer_note": customer_note,
            "payment_method": payment_method.value,
            "payment_method_title": payment_method.label,
        }
        resp = self._send("POST", "orders", body)
        if resp.status_code not in (200, 201):
            raise BackendError("Order creation failed", upstream_status=resp.status_code)
        try:
            return parse_order(resp.json())
        except (ValueError, KeyError, TypeError) as e:
            raise BackendError("Malformed order resource", upstream_status=resp.status_code) from e

    def update_order_info(self, order_id: int, info: ShippingInfo) -> bool:
        """Store shipping and billing data; True only on HTTP 200."""
        resp = self._send("PUT", f"orders/{order_id}", order_info_update(info))
        if resp.status_code != 200:
            logger.warning("order info update rejected", extra={"order_id": order_id, "status": resp.status_code})
        return resp.status_code == 200

    def set_order_paid(self, order_id: int) -> bool:
        """Flag the order as paid; True only on HTTP 200."""
        resp = self._send("PUT", f"orders/{order_id}", {"set_paid": True})
        if resp.status_code != 200:
            logger.warning("set paid rejected", extra={"order_id": order_id, "status": resp.status_code})
        return resp.status_code == 200

    def get_shipping_methods(self, zone_id: int) -> List[ShippingMethod]:
        """List shipping methods of a zone.

        Raises:
            BackendError: For transport errors, non-200 statuses or a body
                that is not a list of methods.
        """
        resp = self._send("GET", f"shipping/zones/{zone_id}/methods")
        if resp.status_code != 200:
            raise BackendError("Shipping methods lookup failed", upstream_status=resp.status_code)
        try:
            return [
                ShippingMethod(
                    method_id=str(m["method_id"]),
                    title=str(m.get("method_title") or m.get("title") or m["method_id"]),
                    enabled=bool(m.get("enabled", False)),
                )
                for m in resp.json()
            ]
        except (ValueError, KeyError, TypeError) as e:
            raise BackendError("Malformed shipping methods", upstream_status=resp.status_code) from e
