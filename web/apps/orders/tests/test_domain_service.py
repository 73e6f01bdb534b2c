"""Unit tests for the order placement domain service.

These tests exercise ``OrderService`` with the in-process stubs from
``apps.orders.adapters``: no HTTP, deterministic ids (starting at 1001)
and full visibility on what was sent to the backend and the gateway.
"""
import json
from dataclasses import replace

import pytest

from apps.orders.adapters import CommerceStub, InvoiceStub
from apps.orders.domain import (
    BackendLineItem,
    LabeledPrice,
    OrderLine,
    OrderRequest,
    OrderService,
    OrderStatus,
    PaymentMethod,
    ShippingAddress,
    ShippingInfo,
)
from apps.orders.errors import BackendError, UnsupportedCurrencyError, ValidationError


def cod_info(**address):
    fields = dict(street_line1="12 Hang Bac", city="Hanoi", post_code="10000", country_code="VN")
    fields.update(address)
    return ShippingInfo(name="Ann Lee", email="ann@example.com", phone="555-0100", address=ShippingAddress(**fields))


def make_request(method, items=None, info=None, zone=1):
    return OrderRequest(
        items=items if items is not None else [OrderLine(product_id=1, quantity=2)],
        payment_method=method,
        shipping_zone=zone,
        comment="extra napkins",
        shipping_info=info,
    )


def test_cod_order_pushes_shipping_and_has_no_invoice():
    """COD: order created, shipping stored on it, no invoice requested."""
    commerce, invoices = CommerceStub(), InvoiceStub()
    placed = OrderService(commerce, invoices).place_order(make_request(PaymentMethod.COD, info=cod_info()))

    assert placed.order_id == 1001
    assert placed.status is OrderStatus.PENDING
    assert placed.payment_method is PaymentMethod.COD
    assert placed.invoice_link is None
    assert commerce.order_info[1001].address.city == "Hanoi"
    assert invoices.requests == []


def test_cod_incomplete_address_is_rejected_before_order_creation():
    """A blank street line fails validation and leaves no orphan order."""
    commerce = CommerceStub()
    with pytest.raises(ValidationError) as ei:
        OrderService(commerce, InvoiceStub()).place_order(
            make_request(PaymentMethod.COD, info=cod_info(street_line1="   "))
        )
    assert ei.value.field == "address.street_line1"
    assert commerce.orders == {}


def test_cod_shipping_update_failure_raises_backend_error(monkeypatch):
    """If the shipping update is refused the order stays (no rollback)."""
    commerce = CommerceStub()
    monkeypatch.setattr(commerce, "update_order_info", lambda order_id, info: False)
    with pytest.raises(BackendError) as ei:
        OrderService(commerce, InvoiceStub()).place_order(make_request(PaymentMethod.COD, info=cod_info()))
    assert ei.value.order_id == 1001
    assert list(commerce.orders) == [1001]


def test_telegram_order_requests_invoice_link():
    """Tea x2 at 2.00 USD becomes a single 400-cent price line."""
    commerce, invoices = CommerceStub(), InvoiceStub()
    placed = OrderService(commerce, invoices).place_order(make_request(PaymentMethod.TELEGRAM, zone=3))

    assert placed.invoice_link == "https://t.me/$stub-invoice-1"
    (invoice,) = invoices.requests
    assert invoice.title == "Order Invoice 1001"
    assert invoice.description == f"Payment invoice for {commerce.orders[1001].order_key}"
    assert invoice.currency == "USD"
    assert invoice.prices == [LabeledPrice(label="Tea (x2)", amount=400)]
    assert json.loads(invoice.payload) == {"orderId": 1001, "shippingZone": 3}
    assert invoice.need_name and invoice.need_email and invoice.need_phone_number and invoice.need_shipping_address
    assert invoice.is_flexible is False
    # shipping data is collected by Telegram, not pushed here
    assert commerce.order_info == {}


def test_flexible_invoices_flag_is_forwarded():
    invoices = InvoiceStub()
    OrderService(CommerceStub(), invoices, flexible_invoices=True).place_order(make_request(PaymentMethod.TELEGRAM))
    assert invoices.requests[0].is_flexible is True


def test_zero_exponent_currency_is_not_scaled():
    """JPY has no minor unit: 800 yen is sent as 800."""
    commerce = CommerceStub(products={1: ("Ramen", "800")}, currency="JPY")
    invoices = InvoiceStub()
    OrderService(commerce, invoices).place_order(
        make_request(PaymentMethod.TELEGRAM, items=[OrderLine(product_id=1, quantity=1)])
    )
    assert invoices.requests[0].prices == [LabeledPrice(label="Ramen (x1)", amount=800)]


def test_unsupported_currency_fails_without_invoice():
    commerce = CommerceStub(currency="XXX")
    invoices = InvoiceStub()
    with pytest.raises(UnsupportedCurrencyError):
        OrderService(commerce, invoices).place_order(make_request(PaymentMethod.TELEGRAM))
    assert invoices.requests == []


def test_empty_order_is_rejected():
    with pytest.raises(ValidationError) as ei:
        OrderService(CommerceStub(), InvoiceStub()).place_order(make_request(PaymentMethod.TELEGRAM, items=[]))
    assert ei.value.field == "items"


def test_unknown_product_is_a_backend_error():
    with pytest.raises(BackendError) as ei:
        OrderService(CommerceStub(), InvoiceStub()).place_order(
            make_request(PaymentMethod.TELEGRAM, items=[OrderLine(product_id=99, quantity=1)])
        )
    assert ei.value.upstream_status == 400


@pytest.mark.parametrize("total", ["NaN", "Infinity", "not-a-number"])
def test_non_numeric_line_total_is_a_backend_error(monkeypatch, total):
    """A line total that is not a finite number fails the order without an invoice."""
    commerce, invoices = CommerceStub(), InvoiceStub()
    create_order = commerce.create_order

    def broken_totals(items, customer_note, payment_method):
        order = create_order(items, customer_note, payment_method)
        return replace(order, line_items=[BackendLineItem(name="Tea", quantity=2, total=total)])

    monkeypatch.setattr(commerce, "create_order", broken_totals)
    with pytest.raises(BackendError) as ei:
        OrderService(commerce, invoices).place_order(make_request(PaymentMethod.TELEGRAM))
    assert ei.value.order_id == 1001
    assert invoices.requests == []
