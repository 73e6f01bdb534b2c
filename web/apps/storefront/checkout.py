"""Checkout of a storefront session.

``CheckoutInitiator`` turns the session state into an order request,
submits it to the orders API and drives what follows in the Telegram
mini-app: a confirmation for cash-on-delivery orders, or the in-app
invoice for Telegram payments and the reaction to its final status.

The session state is only read. A failed checkout leaves the cart as it
was, so the user can simply try again.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Optional, Protocol

import httpx
from django.conf import settings

from apps.orders.domain import PaymentMethod, ShippingInfo, validate_shipping_info
from apps.orders.errors import BackendError, GatewayCapabilityError, StorefrontError, ValidationError
from gateway.middleware import request_headers

from .state import SessionState

logger = logging.getLogger("storefront")

INVOICE_MIN_VERSION = "6.1"
PROCESSING_ERROR_MESSAGE = "An error occurred while processing your order!"
PAYMENT_FAILED_MESSAGE = "Payment failed. Please try again or choose another payment method."


class InvoiceStatus(str, Enum):
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    PENDING = "pending"


class Haptic(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"


class Outcome(str, Enum):
    COD_CONFIRMED = "cod-confirmed"
    INVOICE_OPENED = "invoice-opened"
    UPGRADE_REQUIRED = "upgrade-required"
    PROCESSING_ERROR = "processing-error"


@dataclass(frozen=True)
class CheckoutResult:
    outcome: Outcome
    order_id: Optional[int] = None
    error: Optional[StorefrontError] = None


class WebAppPort(Protocol):
    """The parts of the Telegram WebApp runtime checkout relies on."""

    def is_version_at_least(self, version: str) -> bool:
        raise NotImplementedError()

    def show_alert(self, message: str) -> None:
        raise NotImplementedError()

    def show_progress(self) -> None:
        raise NotImplementedError()

    def hide_progress(self) -> None:
        raise NotImplementedError()

    def open_invoice(self, url: str, callback: Callable[[str], None]) -> None:
        """Open the invoice; ``callback`` later receives its final status."""
        raise NotImplementedError()

    def notify(self, kind: Haptic) -> None:
        """Haptic notification feedback."""
        raise NotImplementedError()

    def close(self) -> None:
        raise NotImplementedError()


class OrdersApiPort(Protocol):
    def create_order(self, body: dict) -> dict:
        """Submit an order request and return the decoded response body."""
        raise NotImplementedError()


class HttpOrdersClient(OrdersApiPort):
    """HTTP client for ``POST /api/orders/``."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.STOREFRONT_API_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def create_order(self, body: dict) -> dict:
        """Post the order.

        Raises:
            httpx.RequestError: For network/transport errors.
            BackendError: For any non-201 response.
            ValueError: When the response body is not JSON.
        """
        with httpx.Client(timeout=self.timeout) as client:
            resp = client.post(f"{self.base_url}/api/orders/", json=body, headers=request_headers())
        if resp.status_code != 201:
            raise BackendError("Order request refused", upstream_status=resp.status_code)
        return resp.json()


def shipping_summary(info: ShippingInfo) -> str:
    a = info.address
    street = ", ".join(p for p in (a.street_line1, a.street_line2) if p and p != "N/A")
    place = ", ".join(p for p in (a.city, a.post_code, a.country_code) if p)
    return f"Delivery to: {info.name}, {info.phone}\n{street}\n{place}"


class CheckoutInitiator:
    """Checkout of one mini-app session.

    Args:
        api: Orders API client.
        web_app: Telegram WebApp runtime.
        user_id: Telegram user id, sent with the order.
        chat_id: Telegram chat id the app was opened from, if any.
    """

    def __init__(self, api: OrdersApiPort, web_app: WebAppPort, user_id: Optional[int] = None, chat_id: Optional[int] = None):
        self.api = api
        self.web_app = web_app
        self.user_id = user_id
        self.chat_id = chat_id

    def validate(self, state: SessionState) -> None:
        """Local checks; raise before anything leaves the device.

        Raises:
            ValidationError: Empty cart, or the first missing shipping field
                of a cash-on-delivery order.
        """
        if not state.cart:
            raise ValidationError("cart", "Your cart is empty")
        if state.payment_method is PaymentMethod.COD:
            validate_shipping_info(state.shipping_info)

    def build_request(self, state: SessionState) -> dict:
        """Order request body as expected by ``POST /api/orders/``."""
        body = {
            "items": [{"id": item.product.id, "count": item.quantity} for item in state.cart.values()],
            "paymentMethod": state.payment_method.value,
            "comment": state.comment,
            "shippingZone": state.shipping_zone,
            "userId": self.user_id,
            "chatId": self.chat_id,
        }
        if state.payment_method is PaymentMethod.COD:
            info = state.shipping_info
            a = info.address
            body["shippingInfo"] = {
                "name": info.name,
                "email": info.email,
                "phone": info.phone,
                "address": {
                    "street_line1": a.street_line1,
                    "street_line2": a.street_line2,
                    "city": a.city,
                    "state": a.state,
                    "country_code": a.country_code,
                    "post_code": a.post_code,
                },
            }
        return body

    def checkout(self, state: SessionState) -> CheckoutResult:
        """Place the order of ``state``.

        Raises:
            ValidationError: See ``validate``; no request is made.
        """
        self.validate(state)
        self.web_app.show_progress()

        try:
            result = self.api.create_order(self.build_request(state))
            order_id = int(result["order_id"])
            method = PaymentMethod(result["payment_method"])
        except (httpx.HTTPError, BackendError, KeyError, TypeError, ValueError):
            logger.exception("checkout failed")
            self.web_app.show_alert(PROCESSING_ERROR_MESSAGE)
            self.web_app.hide_progress()
            return CheckoutResult(Outcome.PROCESSING_ERROR)

        if method is PaymentMethod.COD:
            self.web_app.hide_progress()
            self.web_app.show_alert(
                f"Order #{order_id} has been placed successfully! You will pay on delivery.\n"
                + shipping_summary(state.shipping_info)
            )
            self.web_app.close()
            return CheckoutResult(Outcome.COD_CONFIRMED, order_id=order_id)

        if not self.web_app.is_version_at_least(INVOICE_MIN_VERSION):
            error = GatewayCapabilityError(INVOICE_MIN_VERSION)
            self.web_app.show_alert(str(error))
            self.web_app.hide_progress()
            return CheckoutResult(Outcome.UPGRADE_REQUIRED, order_id=order_id, error=error)

        link = result.get("invoice_link")
        if not link:
            logger.error("telegram order without invoice link", extra={"order_id": order_id})
            self.web_app.show_alert(PROCESSING_ERROR_MESSAGE)
            self.web_app.hide_progress()
            return CheckoutResult(Outcome.PROCESSING_ERROR, order_id=order_id)

        self.web_app.open_invoice(link, partial(self.on_invoice_status, order_id))
        return CheckoutResult(Outcome.INVOICE_OPENED, order_id=order_id)

    def on_invoice_status(self, order_id: int, status: str) -> None:
        """React to the final status of an opened invoice."""
        self.web_app.hide_progress()
        logger.info("invoice status", extra={"order_id": order_id, "status": status})
        try:
            status = InvoiceStatus(status)
        except ValueError:
            logger.warning("unknown invoice status", extra={"order_id": order_id, "status": status})
            status = InvoiceStatus.PENDING

        if status is InvoiceStatus.PAID:
            self.web_app.show_alert(f"Order #{order_id} has been paid. Thank you!")
            self.web_app.close()
        elif status is InvoiceStatus.FAILED:
            self.web_app.show_alert(PAYMENT_FAILED_MESSAGE)
            self.web_app.notify(Haptic.ERROR)
        else:
            # cancelled or pending: the same invoice can still be paid
            self.web_app.notify(Haptic.WARNING)
