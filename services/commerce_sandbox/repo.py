"""SQLAlchemy repository backing the commerce sandbox.

The sandbox stores just enough of a WooCommerce shop for the storefront
orchestrator to run end to end: a product catalog, shipping zones with
their methods, and orders with line items, shipping and billing blocks.

The connection is configured through the ``DATABASE_URL`` environment
variable and defaults to a local SQLite file, so the sandbox needs no
database server. The catalog is seeded on first start.
"""

import os
import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, create_engine, func, select
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column, relationship

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./commerce_sandbox.db")
STORE_CURRENCY = os.getenv("SANDBOX_CURRENCY", "USD")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)

SEED_PRODUCTS = [
    (1, "Tea", "2.00"),
    (2, "Coffee", "3.50"),
    (3, "Pho", "9.90"),
    (4, "Banh Mi", "4.25"),
]
SEED_ZONES = [
    (1, "Domestic", [("flat_rate", "Courier", True), ("local_pickup", "Pickup", False)]),
    (2, "Remote", []),
]


class Base(DeclarativeBase):
    pass


class Product(Base):
    """A sellable product.

    Attributes:
        id: WooCommerce product id.
        name: Display name copied onto order lines.
        price: Unit price as a decimal string in store currency.
    """

    __tablename__ = "products"
    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(200), nullable=False)
    price = mapped_column(String(32), nullable=False)


class ShippingZone(Base):
    __tablename__ = "shipping_zones"
    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(100), nullable=False)
    methods = relationship("ShippingMethod", order_by="ShippingMethod.id", cascade="all, delete-orphan")


class ShippingMethod(Base):
    __tablename__ = "shipping_methods"
    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    zone_id = mapped_column(ForeignKey("shipping_zones.id"), nullable=False, index=True)
    method_id = mapped_column(String(64), nullable=False)
    title = mapped_column(String(100), nullable=False)
    enabled = mapped_column(Boolean, nullable=False, default=True)


class Order(Base):
    """An order as WooCommerce would hold it.

    ``shipping`` and ``billing`` are stored as JSON blocks with the
    WooCommerce keys (``first_name``, ``address_1``, ``postcode``...).
    ``status`` moves from ``pending`` to ``processing`` once the order is
    flagged as paid.
    """

    __tablename__ = "orders"
    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_key = mapped_column(String(40), nullable=False, unique=True)
    status = mapped_column(String(20), nullable=False, default="pending")
    currency = mapped_column(String(3), nullable=False)
    payment_method = mapped_column(String(40), nullable=False, default="")
    payment_method_title = mapped_column(String(100), nullable=False, default="")
    customer_note = mapped_column(Text, nullable=False, default="")
    set_paid = mapped_column(Boolean, nullable=False, default=False)
    shipping = mapped_column(JSON, nullable=False, default=dict)
    billing = mapped_column(JSON, nullable=False, default=dict)
    lines = relationship("OrderLine", order_by="OrderLine.id", cascade="all, delete-orphan")


class OrderLine(Base):
    __tablename__ = "order_lines"
    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    product_id = mapped_column(Integer, nullable=False)
    name = mapped_column(String(200), nullable=False)
    quantity = mapped_column(Integer, nullable=False)
    total = mapped_column(String(32), nullable=False)


class UnknownProductError(LookupError):
    """Raised when an order references a product the shop does not sell."""

    def __init__(self, product_id: int):
        super().__init__(product_id)
        self.product_id = product_id


@contextmanager
def get_session():
    """Yield a SQLAlchemy session closed on exit."""
    with Session(engine) as s:
        yield s


def init_db() -> None:
    """Create the schema and seed the catalog and shipping zones once."""
    Base.metadata.create_all(engine)
    with get_session() as s:
        if s.scalar(select(func.count()).select_from(Product)):
            return
        s.add_all(Product(id=pid, name=name, price=price) for pid, name, price in SEED_PRODUCTS)
        for zid, zname, methods in SEED_ZONES:
            zone = ShippingZone(id=zid, name=zname)
            zone.methods = [ShippingMethod(method_id=m, title=t, enabled=e) for m, t, e in methods]
            s.add(zone)
        s.commit()


def _line_total(price: str, quantity: int) -> str:
    return str((Decimal(price) * quantity).quantize(Decimal("0.01")))


def order_resource(order: Order) -> dict:
    """Render an order the way the WooCommerce v3 API returns it."""
    total = sum((Decimal(line.total) for line in order.lines), Decimal("0.00"))
    return {
        "id": order.id,
        "order_key": order.order_key,
        "status": order.status,
        "currency": order.currency,
        "total": str(total),
        "set_paid": order.set_paid,
        "payment_method": order.payment_method,
        "payment_method_title": order.payment_method_title,
        "customer_note": order.customer_note,
        "shipping": dict(order.shipping or {}),
        "billing": dict(order.billing or {}),
        "line_items": [
            {
                "id": line.id,
                "product_id": line.product_id,
                "name": line.name,
                "quantity": line.quantity,
                "total": line.total,
            }
            for line in order.lines
        ],
    }


class CommerceRepo:
    """Repository for orders and shipping configuration."""

    def create_order(
        self,
        items: list[tuple[int, int]],
        customer_note: str = "",
        payment_method: str = "",
        payment_method_title: str = "",
        set_paid: bool = False,
    ) -> dict:
        """Create an order priced from the catalog.

        Args:
            items: ``(product_id, quantity)`` pairs.

        Returns:
            dict: The created order resource.

        Raises:
            UnknownProductError: When a product id is not in the catalog.
        """
        with get_session() as s:
            order = Order(
                order_key=f"wc_order_{uuid.uuid4().hex[:13]}",
                status="processing" if set_paid else "pending",
                currency=STORE_CURRENCY,
                payment_method=payment_method,
                payment_method_title=payment_method_title,
                customer_note=customer_note,
                set_paid=set_paid,
                shipping={},
                billing={},
            )
            for product_id, quantity in items:
                product = s.get(Product, product_id)
                if product is None:
                    raise UnknownProductError(product_id)
                order.lines.append(
                    OrderLine(
                        product_id=product.id,
                        name=product.name,
                        quantity=quantity,
                        total=_line_total(product.price, quantity),
                    )
                )
            s.add(order)
            s.commit()
            s.refresh(order)
            return order_resource(order)

    def get_order(self, order_id: int) -> Optional[dict]:
        with get_session() as s:
            order = s.get(Order, order_id)
            return order_resource(order) if order else None

    def update_order(
        self,
        order_id: int,
        set_paid: Optional[bool] = None,
        shipping: Optional[dict] = None,
        billing: Optional[dict] = None,
    ) -> Optional[dict]:
        """Apply a partial update; returns None for an unknown order.

        Blocks are merged key by key, as WooCommerce does, so a later update
        only overwrites the fields it carries.
        """
        with get_session() as s:
            order = s.get(Order, order_id)
            if order is None:
                return None
            if shipping is not None:
                order.shipping = {**(order.shipping or {}), **shipping}
            if billing is not None:
                order.billing = {**(order.billing or {}), **billing}
            if set_paid:
                order.set_paid = True
                order.status = "processing"
            s.commit()
            s.refresh(order)
            return order_resource(order)

    def shipping_methods(self, zone_id: int) -> Optional[list[dict]]:
        """Methods of a zone, or None when the zone does not exist."""
        with get_session() as s:
            zone = s.get(ShippingZone, zone_id)
            if zone is None:
                return None
            return [
                {
                    "id": m.id,
                    "instance_id": m.id,
                    "method_id": m.method_id,
                    "method_title": m.title,
                    "title": m.title,
                    "enabled": m.enabled,
                }
                for m in zone.methods
            ]
