"""Tests for the invoice payload and the currency helpers."""
from decimal import InvalidOperation

import pytest

from apps.orders.currencies import currency_exponent, to_minor_units
from apps.orders.domain import InvoicePayload
from apps.orders.errors import InvalidPayloadError, UnsupportedCurrencyError, ValidationError


def test_payload_is_compact_json():
    assert InvoicePayload(order_id=7, shipping_zone=2).dumps() == '{"orderId":7,"shippingZone":2}'


def test_payload_loads():
    assert InvoicePayload.loads('{"shippingZone": 1, "orderId": 1001}') == InvoicePayload(1001, 1)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "order-1001",
        "[1001, 1]",
        '{"orderId": 1001}',
        '{"orderId": "1001", "shippingZone": 1}',
        '{"orderId": true, "shippingZone": 1}',
        '{"orderId": 10.5, "shippingZone": 1}',
    ],
)
def test_foreign_or_malformed_payload_is_rejected(raw):
    """Anything but exactly two integer fields is refused, never guessed."""
    with pytest.raises(InvalidPayloadError) as ei:
        InvoicePayload.loads(raw)
    assert isinstance(ei.value, ValidationError)
    assert ei.value.code == "INVALID_INVOICE_PAYLOAD"


def test_currency_exponents():
    assert currency_exponent("usd") == 2
    assert currency_exponent("XTR") == 0
    with pytest.raises(UnsupportedCurrencyError):
        currency_exponent("ABC")


@pytest.mark.parametrize(
    "total,exponent,expected",
    [("4.00", 2, 400), ("9.99", 2, 999), ("0.005", 2, 1), ("1.234", 2, 123), ("800", 0, 800), ("12.5", 0, 13)],
)
def test_to_minor_units_rounds_half_up(total, exponent, expected):
    assert to_minor_units(total, exponent) == expected


@pytest.mark.parametrize("total", ["abc", "NaN", "Infinity", "-Infinity", "sNaN"])
def test_to_minor_units_refuses_non_finite_totals(total):
    with pytest.raises(InvalidOperation):
        to_minor_units(total, 2)
