"""In-process stub adapters for the orders domain ports.

These stubs implement ``CommercePort`` and ``InvoicePort`` without any
network calls. They are intended for unit tests and local development
where deterministic behavior is useful and neither WooCommerce nor
Telegram is reachable.
"""

import itertools
import uuid
from decimal import Decimal
from typing import Dict, List, Optional

from .domain import (
    BackendLineItem,
    BackendOrder,
    CommercePort,
    InvoicePort,
    InvoiceRequest,
    OrderLine,
    PaymentMethod,
    ShippingInfo,
    ShippingMethod,
)
from .errors import BackendError


# product id -> (name, unit price)
DEFAULT_PRODUCTS: Dict[int, tuple[str, str]] = {
    1: ("Tea", "2.00"),
    2: ("Coffee", "3.50"),
    3: ("Pho", "9.90"),
}

DEFAULT_ZONES: Dict[int, List[ShippingMethod]] = {
    1: [
        ShippingMethod(method_id="flat_rate", title="Courier", enabled=True),
        ShippingMethod(method_id="local_pickup", title="Pick up at the restaurant", enabled=False),
    ],
}


class CommerceStub(CommercePort):
    """Stub implementation of ``CommercePort``.

    Keeps orders in memory. Unknown product ids are refused like the real
    backend does, and updates of unknown orders report failure.

    Attributes:
        orders: Created orders by id.
        order_info: Last shipping data pushed per order id.
        paid: Ids of orders flagged as paid.
    """

    def __init__(
        self,
        products: Optional[Dict[int, tuple[str, str]]] = None,
        zones: Optional[Dict[int, List[ShippingMethod]]] = None,
        currency: str = "USD",
    ):
        self.products = dict(products or DEFAULT_PRODUCTS)
        self.zones = dict(zones or DEFAULT_ZONES)
        self.currency = currency
        self.orders: Dict[int, BackendOrder] = {}
        self.order_info: Dict[int, ShippingInfo] = {}
        self.paid: set[int] = set()
        self._ids = itertools.count(1001)

    def create_order(
        self, items: List[OrderLine], customer_note: str, payment_method: PaymentMethod
    ) -> BackendOrder:
        lines = []
        for it in items:
            if it.product_id not in self.products:
                raise BackendError(f"Invalid product id {it.product_id}", upstream_status=400)
            name, price = self.products[it.product_id]
            total = (Decimal(price) * it.quantity).quantize(Decimal("0.01"))
            lines.append(BackendLineItem(name=name, quantity=it.quantity, total=str(total)))
        order = BackendOrder(
            id=next(self._ids),
            order_key=f"wc_order_{uuid.uuid4().hex[:13]}",
            currency=self.currency,
            payment_method=payment_method.value,
            line_items=lines,
        )
        self.orders[order.id] = order
        return order

    def update_order_info(self, order_id: int, info: ShippingInfo) -> bool:
        if order_id not in self.orders:
            return False
        self.order_info[order_id] = info
        return True

    def set_order_paid(self, order_id: int) -> bool:
        if order_id not in self.orders:
            return False
        self.paid.add(order_id)
        return True

    def get_shipping_methods(self, zone_id: int) -> List[ShippingMethod]:
        return list(self.zones.get(zone_id, []))


class InvoiceStub(InvoicePort):
    """Stub implementation of ``InvoicePort``.

    Returns a fake ``t.me`` invoice link and remembers every request.
    """

    def __init__(self):
        self.requests: List[InvoiceRequest] = []

    def create_invoice_link(self, invoice: InvoiceRequest) -> str:
        self.requests.append(invoice)
        return f"https://t.me/$stub-invoice-{len(self.requests)}"
