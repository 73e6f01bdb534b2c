"""API tests for the create-order endpoint.

These tests exercise the orders HTTP API for the main scenarios:
cash-on-delivery and Telegram orders, shipping validation, DTO
validation, backend, currency and gateway failures. They rely on the
in-process stubs wired by the ``commerce`` and ``bot`` fixtures for
deterministic behavior.
"""
import json

from apps.orders.adapters import CommerceStub
from apps.orders import providers
from apps.orders.errors import GatewayError

CREATE_URL = "/api/orders/"

SHIPPING = {
    "name": "Ann Lee",
    "email": "ann@example.com",
    "phone": "555-0100",
    "address": {
        "street_line1": "12 Hang Bac",
        "street_line2": "N/A",
        "city": "Hanoi",
        "state": "",
        "country_code": "vn",
        "post_code": "10000",
    },
}


def order_body(**overrides):
    body = {"items": [{"id": 1, "count": 2}], "paymentMethod": "cod", "comment": "", "shippingZone": 1,
            "shippingInfo": SHIPPING, "userId": 7, "chatId": 7}
    body.update(overrides)
    return body


def post(client, body):
    return client.post(CREATE_URL, data=body, content_type="application/json")


def test_ping(client):
    assert client.get("/api/orders/ping/").json() == {"ok": True}


def test_create_cod_order(client, commerce, bot):
    """Returns 201 pending without invoice link; shipping stored on the order."""
    r = post(client, order_body())
    assert r.status_code == 201
    assert r.json() == {"order_id": 1001, "status": "pending", "payment_method": "cod"}
    stored = commerce.order_info[1001]
    assert stored.name == "Ann Lee"
    assert stored.address.country_code == "VN"
    assert bot.calls_to("createInvoiceLink") == []


def test_create_telegram_order(client, commerce, bot):
    """Returns 201 with the invoice link issued by the bot."""
    r = post(client, order_body(paymentMethod="TELEGRAM", shippingInfo=None, shippingZone=2))
    assert r.status_code == 201
    body = r.json()
    assert body["payment_method"] == "telegram"
    assert body["invoice_link"] == "https://t.me/$stub-invoice-1"
    (call,) = bot.calls_to("createInvoiceLink")
    assert json.loads(call["invoice"].payload) == {"orderId": body["order_id"], "shippingZone": 2}
    assert bot.is_open is False  # closed once the request is over


def test_cod_missing_city_is_400_and_creates_nothing(client, commerce, bot):
    info = {**SHIPPING, "address": {**SHIPPING["address"], "city": ""}}
    r = post(client, order_body(shippingInfo=info))
    assert r.status_code == 400
    assert r.json()["detail"] == "MISSING_REQUIRED_FIELD"
    assert r.json()["field"] == "address.city"
    assert commerce.orders == {}


def test_dto_validation_errors(client, commerce, bot):
    """Empty items, non-positive counts and a missing zone are 400s."""
    assert post(client, order_body(items=[])).status_code == 400
    assert post(client, order_body(items=[{"id": 1, "count": 0}])).status_code == 400
    body = order_body()
    del body["shippingZone"]
    assert post(client, body).status_code == 400
    assert post(client, order_body(paymentMethod="bitcoin")).status_code == 400
    assert commerce.orders == {}


def test_unknown_product_is_500(client, commerce, bot):
    r = post(client, order_body(items=[{"id": 404, "count": 1}]))
    assert r.status_code == 500
    assert r.json()["detail"] == "BACKEND_ERROR"


def test_unsupported_currency_is_500(client, monkeypatch, bot):
    monkeypatch.setattr(providers, "_commerce_stub", CommerceStub(currency="XXX"))
    r = post(client, order_body(paymentMethod="telegram", shippingInfo=None))
    assert r.status_code == 500
    assert r.json()["detail"] == "UNSUPPORTED_CURRENCY"


def test_gateway_failure_is_502(client, commerce, bot, monkeypatch):
    def refuse(invoice):
        raise GatewayError("createInvoiceLink", "Bad Request: currency not supported")
    monkeypatch.setattr(bot, "create_invoice_link", refuse)
    r = post(client, order_body(paymentMethod="telegram", shippingInfo=None))
    assert r.status_code == 502
    assert r.json()["detail"] == "GATEWAY_ERROR"


def test_request_id_roundtrip(client, commerce, bot):
    r = client.post(CREATE_URL, data=order_body(), content_type="application/json", HTTP_X_REQUEST_ID="rid-7")
    assert r["X-Request-ID"] == "rid-7"


def test_payload_too_large(client, settings, commerce, bot):
    settings.API_MAX_BYTES = 16
    r = post(client, order_body())
    assert r.status_code == 413
    assert r.json() == {"detail": "PAYLOAD_TOO_LARGE"}
