"""Pydantic schemas for orders.

This module exposes the request/response schemas of the order creation
endpoint. Field names follow the storefront client's JSON (camelCase
aliases at the top level, snake_case inside ``shippingInfo``).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain import (
    OrderLine,
    OrderRequest,
    OrderStatus,
    PaymentMethod,
    PlacedOrder,
    ShippingAddress,
    ShippingInfo,
)


def _text(v: Optional[str]) -> str:
    return (v or "").strip()


class OrderItemIn(BaseModel):
    """Input schema for a single order line.

    Attributes:
        id: Backend product id.
        count: Positive number of units.
    """

    id: int = Field(gt=0)
    count: int = Field(gt=0)


class AddressIn(BaseModel):
    """Delivery address as typed in the storefront form.

    Every field is optional at this level: which ones are required
    depends on the payment method and is checked by the domain.
    """

    street_line1: Optional[str] = None
    street_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country_code: Optional[str] = None
    post_code: Optional[str] = None

    def to_domain(self) -> ShippingAddress:
        return ShippingAddress(
            street_line1=_text(self.street_line1),
            street_line2=_text(self.street_line2),
            city=_text(self.city),
            state=_text(self.state),
            country_code=_text(self.country_code).upper(),
            post_code=_text(self.post_code),
        )


class ShippingInfoIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: AddressIn = Field(default_factory=AddressIn)

    def to_domain(self) -> ShippingInfo:
        return ShippingInfo(
            name=_text(self.name),
            email=_text(self.email),
            phone=_text(self.phone),
            address=self.address.to_domain(),
        )


class CreateOrderDTO(BaseModel):
    """Schema for creating an order.

    Attributes:
        items: Non-empty list of ``OrderItemIn``.
        payment_method: ``cod`` or ``telegram`` (``paymentMethod``).
        comment: Optional customer note.
        shipping_zone: Backend shipping zone id (``shippingZone``).
        shipping_info: Delivery data (``shippingInfo``), cash-on-delivery only.
        user_id: Telegram user id (``userId``).
        chat_id: Telegram chat id (``chatId``).
    """

    model_config = ConfigDict(populate_by_name=True)

    items: list[OrderItemIn] = Field(min_length=1)
    payment_method: PaymentMethod = Field(default=PaymentMethod.COD, alias="paymentMethod")
    comment: Optional[str] = None
    shipping_zone: int = Field(alias="shippingZone")
    shipping_info: Optional[ShippingInfoIn] = Field(default=None, alias="shippingInfo")
    user_id: Optional[int] = Field(default=None, alias="userId")
    chat_id: Optional[int] = Field(default=None, alias="chatId")

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_payment_method(cls, v):
        """Accept the method case-insensitively; a missing value means COD."""
        if v is None:
            return PaymentMethod.COD
        return v.lower() if isinstance(v, str) else v

    def to_domain(self) -> OrderRequest:
        return OrderRequest(
            items=[OrderLine(product_id=i.id, quantity=i.count) for i in self.items],
            payment_method=self.payment_method,
            shipping_zone=self.shipping_zone,
            comment=_text(self.comment),
            shipping_info=self.shipping_info.to_domain() if self.shipping_info else None,
            user_id=self.user_id,
            chat_id=self.chat_id,
        )


class OrderResponseDTO(BaseModel):
    """Response body of a placed order."""

    order_id: int
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod
    invoice_link: Optional[str] = None

    @classmethod
    def from_domain(cls, placed: PlacedOrder) -> "OrderResponseDTO":
        return cls(
            order_id=placed.order_id,
            status=placed.status,
            payment_method=placed.payment_method,
            invoice_link=placed.invoice_link,
        )
