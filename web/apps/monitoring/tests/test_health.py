"""Tests for the health endpoint."""


def test_health_with_stubs(client):
    r = client.get("/health/")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["adapters"] == "stub"


def test_health_with_missing_credentials(client, settings):
    settings.USE_HTTP_ADAPTERS = True
    settings.WOOCOMMERCE_CONSUMER_KEY = ""
    r = client.get("/health/")
    assert r.status_code == 503
    assert r.json()["components"]["commerce"] == {"configured": False}


def test_health_configured(client, settings):
    settings.USE_HTTP_ADAPTERS = True
    settings.WOOCOMMERCE_URL = "https://shop.example.com"
    settings.WOOCOMMERCE_CONSUMER_KEY = "ck_live_0123"
    settings.WOOCOMMERCE_CONSUMER_SECRET = "cs_live_4567"
    settings.TELEGRAM_BOT_TOKEN = "123:abc"
    r = client.get("/health/")
    assert r.status_code == 200
    assert r.json() == {
        "ok": True,
        "adapters": "http",
        "components": {"commerce": {"configured": True}, "telegram": {"configured": True}},
    }
    assert "ck_live_0123" not in r.content.decode()
    assert "cs_live_4567" not in r.content.decode()
