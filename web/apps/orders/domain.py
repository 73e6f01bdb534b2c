"""Domain models, ports and service for storefront orders.

This module contains the dataclasses exchanged between the storefront
client, the orchestrator and the commerce backend, the shipping-field
validation shared by every party that accepts an address, the invoice
payload that correlates Telegram webhooks with backend orders, protocol
definitions (ports) for the commerce backend and the invoice issuer,
and the domain service that places an order.
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import InvalidOperation
from enum import Enum
from typing import List, Optional, Protocol

from .currencies import currency_exponent, to_minor_units
from .errors import BackendError, InvalidPayloadError, ValidationError

logger = logging.getLogger("orders")


# ---- Enums ----
class PaymentMethod(str, Enum):
    """How the customer settles the order.

    The values are the wire names used by the storefront client.
    """

    COD = "cod"
    TELEGRAM = "telegram"

    @property
    def label(self) -> str:
        """Human readable title stored on the backend order."""
        return "Cash on Delivery" if self is PaymentMethod.COD else "Telegram Payment"


class OrderStatus(str, Enum):
    """Status reported back to the client once an order has been placed.

    The backend owns the real lifecycle; from the client's point of view
    a freshly placed order is always pending (awaiting delivery for COD,
    awaiting the invoice payment for Telegram).
    """

    PENDING = "pending"


# ---- Shipping ----
@dataclass(frozen=True)
class ShippingAddress:
    street_line1: str = ""
    street_line2: str = ""
    city: str = ""
    state: str = ""
    country_code: str = ""
    post_code: str = ""


@dataclass(frozen=True)
class ShippingInfo:
    """Contact and delivery data for an order.

    Attributes:
        name: Recipient name (or Telegram handle).
        email: Optional contact email.
        phone: Contact phone, required for delivery.
        address: Delivery address.
    """

    name: str = ""
    email: str = ""
    phone: str = ""
    address: ShippingAddress = field(default_factory=ShippingAddress)


# Checked in this order; the first missing one is reported.
REQUIRED_SHIPPING_FIELDS = (
    "name",
    "phone",
    "address.street_line1",
    "address.city",
    "address.post_code",
    "address.country_code",
)


def first_missing_shipping_field(info: ShippingInfo) -> Optional[str]:
    """Return the dotted name of the first empty required field, or None."""
    for path in REQUIRED_SHIPPING_FIELDS:
        value = info
        for part in path.split("."):
            value = getattr(value, part)
        if not (value or "").strip():
            return path
    return None


def validate_shipping_info(info: ShippingInfo) -> ShippingInfo:
    """Check the fields a delivery cannot do without.

    The same rule is applied by the storefront before checkout, by the
    orchestrator for cash-on-delivery orders and by the pre-checkout
    webhook for data collected by Telegram.

    Raises:
        ValidationError: Naming the first missing field.
    """
    missing = first_missing_shipping_field(info)
    if missing:
        raise ValidationError(missing)
    return info


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class OrderLine:
    """A requested line: backend product id and quantity."""

    product_id: int
    quantity: int


@dataclass
class OrderRequest:
    """Order as requested by the storefront client.

    Attributes:
        items: Requested lines.
        payment_method: Cash on delivery or Telegram payment.
        shipping_zone: Backend shipping zone used for shipping options.
        comment: Free text note for the shop.
        shipping_info: Delivery data; only sent for cash-on-delivery.
        user_id: Telegram user id of the customer, if known.
        chat_id: Telegram chat the mini-app was opened from, if any.
    """

    items: List[OrderLine]
    payment_method: PaymentMethod
    shipping_zone: int
    comment: str = ""
    shipping_info: Optional[ShippingInfo] = None
    user_id: Optional[int] = None
    chat_id: Optional[int] = None


@dataclass(frozen=True)
class BackendLineItem:
    name: str
    quantity: int
    total: str  # decimal string, e.g. "4.00"


@dataclass(frozen=True)
class BackendOrder:
    """The subset of a commerce-backend order the orchestrator relies on."""

    id: int
    order_key: str
    currency: str
    payment_method: str
    line_items: List[BackendLineItem]


@dataclass(frozen=True)
class ShippingMethod:
    """A shipping method configured for a backend shipping zone."""

    method_id: str
    title: str
    enabled: bool


@dataclass(frozen=True)
class LabeledPrice:
    """A price line in the gateway's minor units."""

    label: str
    amount: int


@dataclass(frozen=True)
class InvoicePayload:
    """Correlation token carried through Telegram's invoice ``payload``.

    It is the only link between Telegram's webhook events and the
    backend order, so parsing is strict: anything that is not exactly
    ``{"orderId": int, "shippingZone": int}`` is rejected.
    """

    order_id: int
    shipping_zone: int

    def dumps(self) -> str:
        return json.dumps(
            {"orderId": self.order_id, "shippingZone": self.shipping_zone},
            separators=(",", ":"),
        )

    @classmethod
    def loads(cls, raw: Optional[str]) -> "InvoicePayload":
        """Parse a payload string.

        Raises:
            InvalidPayloadError: For malformed or foreign payloads.
        """
        try:
            data = json.loads(raw or "")
        except (TypeError, ValueError):
            raise InvalidPayloadError(raw or "", "not JSON") from None
        if not isinstance(data, dict):
            raise InvalidPayloadError(raw, "not an object")
        values = []
        for key in ("orderId", "shippingZone"):
            value = data.get(key)
            # bool is an int subclass; true/false is not an id
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidPayloadError(raw, f"missing or non-integer {key}")
            values.append(value)
        return cls(order_id=values[0], shipping_zone=values[1])


@dataclass(frozen=True)
class InvoiceRequest:
    """Everything the gateway needs to issue an invoice link."""

    title: str
    description: str
    currency: str
    prices: List[LabeledPrice]
    payload: str
    need_name: bool = True
    need_email: bool = True
    need_phone_number: bool = True
    need_shipping_address: bool = True
    is_flexible: bool = False


@dataclass(frozen=True)
class PlacedOrder:
    """Outcome of ``OrderService.place_order``."""

    order_id: int
    payment_method: PaymentMethod
    status: OrderStatus = OrderStatus.PENDING
    invoice_link: Optional[str] = None


def gateway_prices(order: BackendOrder) -> List[LabeledPrice]:
    """Convert backend line totals to gateway price lines.

    Raises:
        UnsupportedCurrencyError: When the order currency has no exponent.
        BackendError: When a line total is not a decimal number.
    """
    exponent = currency_exponent(order.currency)
    prices = []
    for item in order.line_items:
        try:
            amount = to_minor_units(item.total, exponent)
        except InvalidOperation:
            raise BackendError(f"Invalid line total {item.total!r}", order_id=order.id) from None
        prices.append(LabeledPrice(label=f"{item.name} (x{item.quantity})", amount=amount))
    return prices


# ---- Ports (DIP) ----
class CommercePort(Protocol):
    """Port describing the commerce backend operations used by the domain."""

    def create_order(
        self, items: List[OrderLine], customer_note: str, payment_method: PaymentMethod
    ) -> BackendOrder:
        """Create an unpaid order.

        Raises:
            BackendError: On any non-success response.
        """
        raise NotImplementedError()

    def update_order_info(self, order_id: int, info: ShippingInfo) -> bool:
        """Push shipping and billing data. Returns True on success."""
        raise NotImplementedError()

    def set_order_paid(self, order_id: int) -> bool:
        """Flag the order as paid. Returns True on success."""
        raise NotImplementedError()

    def get_shipping_methods(self, zone_id: int) -> List[ShippingMethod]:
        """List the shipping methods of a zone, enabled or not."""
        raise NotImplementedError()


class InvoicePort(Protocol):
    """Port describing invoice-link creation on the payment gateway."""

    def create_invoice_link(self, invoice: InvoiceRequest) -> str:
        """Return a link the client can open to pay the invoice.

        Raises:
            GatewayError: When the gateway refuses or cannot be reached.
        """
        raise NotImplementedError()


# ---- Domain service ----
class OrderService:
    """Domain service responsible for placing storefront orders.

    It creates the order in the commerce backend, pushes shipping data
    for cash-on-delivery orders and asks the payment gateway for an
    invoice link for Telegram orders. Calls are not idempotent: each
    ``place_order`` creates a new backend order, and a backend order is
    never rolled back when a later step fails.
    """

    def __init__(self, commerce: CommercePort, invoices: InvoicePort, flexible_invoices: bool = False):
        """Initialize the service with required dependencies.

        Args:
            commerce: CommercePort used to create and update orders.
            invoices: InvoicePort used to issue Telegram invoice links.
            flexible_invoices: Whether invoices let Telegram ask for
                shipping options (sends shipping queries).
        """
        self.commerce = commerce
        self.invoices = invoices
        self.flexible_invoices = flexible_invoices

    def place_order(self, request: OrderRequest) -> PlacedOrder:
        """Place an order and return what the client needs to continue.

        Args:
            request: Validated order request.

        Returns:
            PlacedOrder with status pending; ``invoice_link`` is set for
            Telegram payments.

        Raises:
            ValidationError: Empty order or incomplete COD shipping data.
            BackendError: The backend refused the order or the shipping
                update (the order may exist at that point).
            UnsupportedCurrencyError: The order currency is unknown.
            GatewayError: The invoice link could not be created.
        """
        if not request.items:
            raise ValidationError("items", "EMPTY_ORDER")

        push_shipping = request.payment_method is PaymentMethod.COD and request.shipping_info is not None
        # Validate before creating anything so a bad form leaves no orphan order
        if push_shipping:
            validate_shipping_info(request.shipping_info)

        # 1) Create order
        order = self.commerce.create_order(request.items, request.comment, request.payment_method)
        logger.info(
            "order created",
            extra={"order_id": order.id, "payment_method": request.payment_method.value, "user_id": request.user_id},
        )

        # 2) Cash on delivery: shipping data goes straight to the backend
        if push_shipping:
            if not self.commerce.update_order_info(order.id, request.shipping_info):
                logger.error("shipping update failed, order left unpaid", extra={"order_id": order.id})
                raise BackendError("Failed to update shipping information", order_id=order.id)

        if request.payment_method is PaymentMethod.COD:
            return PlacedOrder(order_id=order.id, payment_method=request.payment_method)

        # 3) Telegram payment: shipping data is collected by the invoice flow
        invoice = InvoiceRequest(
            title=f"Order Invoice {order.id}",
            description=f"Payment invoice for {order.order_key}",
            currency=order.currency.upper(),
            prices=gateway_prices(order),
            payload=InvoicePayload(order_id=order.id, shipping_zone=request.shipping_zone).dumps(),
            is_flexible=self.flexible_invoices,
        )
        link = self.invoices.create_invoice_link(invoice)
        logger.info("invoice link issued", extra={"order_id": order.id, "currency": invoice.currency})
        return PlacedOrder(order_id=order.id, payment_method=request.payment_method, invoice_link=link)
