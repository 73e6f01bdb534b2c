"""Tests for ``CheckoutInitiator``.

The orders API and the Telegram WebApp runtime are replaced with
recording fakes, so each test can assert the exact sequence of UI
effects a checkout produced.
"""
import httpx
import pytest

from apps.orders.domain import PaymentMethod
from apps.orders.errors import BackendError, GatewayCapabilityError, ValidationError
from apps.storefront.checkout import (
    INVOICE_MIN_VERSION,
    PAYMENT_FAILED_MESSAGE,
    PROCESSING_ERROR_MESSAGE,
    CheckoutInitiator,
    Haptic,
    HttpOrdersClient,
    Outcome,
)
from apps.storefront.state import (
    Increment,
    Product,
    SetComment,
    SetPaymentMethod,
    SetShippingAddressField,
    initial_state,
    reduce,
)

TEA = Product(id=1, name="Tea", price="2.00")


class FakeWebApp:
    def __init__(self, version_ok=True):
        self.version_ok = version_ok
        self.events = []
        self.invoice_callback = None

    def is_version_at_least(self, version):
        self.events.append(("version", version))
        return self.version_ok

    def show_alert(self, message):
        self.events.append(("alert", message))

    def show_progress(self):
        self.events.append(("progress", True))

    def hide_progress(self):
        self.events.append(("progress", False))

    def open_invoice(self, url, callback):
        self.events.append(("invoice", url))
        self.invoice_callback = callback

    def notify(self, kind):
        self.events.append(("haptic", kind))

    def close(self):
        self.events.append(("close", None))

    def alerts(self):
        return [m for kind, m in self.events if kind == "alert"]


class FakeApi:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.bodies = []

    def create_order(self, body):
        self.bodies.append(body)
        if self.error:
            raise self.error
        return self.response


def cart_state(method=PaymentMethod.TELEGRAM, **address):
    state = reduce(initial_state("ann"), Increment(TEA))
    state = reduce(state, Increment(TEA))
    state = reduce(state, SetComment("no sugar"))
    state = reduce(state, SetPaymentMethod(method))
    for field, value in address.items():
        state = reduce(state, SetShippingAddressField(field, value))
    return state


def test_empty_cart_is_rejected_locally():
    api = FakeApi()
    with pytest.raises(ValidationError) as ei:
        CheckoutInitiator(api, FakeWebApp()).checkout(initial_state())
    assert ei.value.field == "cart"
    assert api.bodies == []


def test_cod_with_default_blank_street_fails_before_network():
    """The placeholder address has an empty street line: no request is sent."""
    api = FakeApi({"order_id": 1, "payment_method": "cod"})
    web_app = FakeWebApp()
    with pytest.raises(ValidationError) as ei:
        CheckoutInitiator(api, web_app).checkout(cart_state(PaymentMethod.COD))
    assert ei.value.field == "address.street_line1"
    assert api.bodies == []
    assert web_app.events == []


def test_request_body():
    api = FakeApi({"order_id": 1001, "payment_method": "cod"})
    state = cart_state(PaymentMethod.COD, street_line1="12 Hang Bac")
    CheckoutInitiator(api, FakeWebApp(), user_id=7, chat_id=70).checkout(state)
    (body,) = api.bodies
    assert body["items"] == [{"id": 1, "count": 2}]
    assert body["paymentMethod"] == "cod"
    assert body["comment"] == "no sugar"
    assert body["shippingZone"] == 1
    assert body["userId"] == 7 and body["chatId"] == 70
    assert body["shippingInfo"]["address"]["street_line1"] == "12 Hang Bac"
    assert body["shippingInfo"]["name"] == "@ann"


def test_telegram_body_has_no_shipping_info():
    api = FakeApi({"order_id": 1001, "payment_method": "telegram", "invoice_link": "https://t.me/$x"})
    CheckoutInitiator(api, FakeWebApp()).checkout(cart_state())
    assert "shippingInfo" not in api.bodies[0]


def test_cod_confirmation_closes_the_app():
    web_app = FakeWebApp()
    result = CheckoutInitiator(FakeApi({"order_id": 1001, "payment_method": "cod"}), web_app).checkout(
        cart_state(PaymentMethod.COD, street_line1="12 Hang Bac")
    )
    assert result.outcome is Outcome.COD_CONFIRMED and result.order_id == 1001
    (alert,) = web_app.alerts()
    assert alert.startswith("Order #1001 has been placed successfully! You will pay on delivery.")
    assert "12 Hang Bac" in alert
    assert web_app.events[-1] == ("close", None)


def test_old_client_gets_upgrade_message():
    web_app = FakeWebApp(version_ok=False)
    api = FakeApi({"order_id": 1001, "payment_method": "telegram", "invoice_link": "https://t.me/$x"})
    result = CheckoutInitiator(api, web_app).checkout(cart_state())
    assert result.outcome is Outcome.UPGRADE_REQUIRED
    assert isinstance(result.error, GatewayCapabilityError)
    assert ("version", INVOICE_MIN_VERSION) in web_app.events
    assert web_app.alerts() == [
        "Telegram payment requires app version 6.1 or higher. Please update your Telegram app!"
    ]
    assert not any(kind == "invoice" for kind, _ in web_app.events)


@pytest.mark.parametrize(
    "api",
    [
        FakeApi(error=httpx.ConnectError("offline")),
        FakeApi(error=BackendError("refused", upstream_status=500)),
        FakeApi({"unexpected": True}),
        FakeApi({"order_id": "abc", "payment_method": "cod"}),
        FakeApi({"order_id": 1, "payment_method": "telegram"}),
    ],
)
def test_processing_errors(api):
    """Transport, HTTP and parse failures all end with the same alert."""
    web_app = FakeWebApp()
    state = cart_state()
    result = CheckoutInitiator(api, web_app).checkout(state)
    assert result.outcome is Outcome.PROCESSING_ERROR
    assert web_app.alerts() == [PROCESSING_ERROR_MESSAGE]
    assert web_app.events[-1] == ("progress", False)
    assert state.cart_size == 2


def test_invoice_paid_closes_the_app():
    web_app = FakeWebApp()
    api = FakeApi({"order_id": 1001, "payment_method": "telegram", "invoice_link": "https://t.me/$x"})
    result = CheckoutInitiator(api, web_app).checkout(cart_state())
    assert result.outcome is Outcome.INVOICE_OPENED
    assert ("invoice", "https://t.me/$x") in web_app.events

    web_app.invoice_callback("paid")
    assert web_app.alerts()[-1] == "Order #1001 has been paid. Thank you!"
    assert web_app.events[-1] == ("close", None)


@pytest.mark.parametrize(
    "status,haptic,alert",
    [
        ("failed", Haptic.ERROR, PAYMENT_FAILED_MESSAGE),
        ("cancelled", Haptic.WARNING, None),
        ("pending", Haptic.WARNING, None),
        ("something-new", Haptic.WARNING, None),
    ],
)
def test_invoice_status_feedback(status, haptic, alert):
    web_app = FakeWebApp()
    CheckoutInitiator(FakeApi(), web_app).on_invoice_status(1001, status)
    assert ("haptic", haptic) in web_app.events
    assert web_app.alerts() == ([alert] if alert else [])
    assert ("close", None) not in web_app.events


class DummyResp:
    def __init__(self, status_code=201, json_data=None):
        self.status_code = status_code
        self._json = json_data
    def json(self): return self._json


def test_http_orders_client(monkeypatch):
    calls = []
    def fake_post(self, url, json=None, headers=None, **kw):
        calls.append((url, json))
        return DummyResp(201, {"order_id": 1, "payment_method": "cod", "status": "pending"})
    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    body = HttpOrdersClient(base_url="http://api.test/").create_order({"items": []})
    assert body["order_id"] == 1
    assert calls == [("http://api.test/api/orders/", {"items": []})]


def test_http_orders_client_non_201(monkeypatch):
    monkeypatch.setattr(httpx.Client, "post", lambda self, url, **kw: DummyResp(400, {"detail": "x"}), raising=True)
    with pytest.raises(BackendError) as ei:
        HttpOrdersClient(base_url="http://api.test").create_order({})
    assert ei.value.upstream_status == 400
