# Makes 'config', 'gateway' and 'apps' (inside web/) importable before collection
import sys
import pytest
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent  # .../web
p = str(BASE_DIR)
if p not in sys.path:
    sys.path.insert(0, p)


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False
    settings.TELEGRAM_BOT_SECRET = "test-secret"
    settings.TELEGRAM_INVOICE_FLEXIBLE = False


@pytest.fixture(autouse=True)
def reset_throttles():
    from django.core.cache import cache
    cache.clear()


@pytest.fixture(autouse=True)
def reset_request_id():
    """Isolate REQUEST_ID_CTX between tests (the middleware never resets it)."""
    from gateway.middleware import REQUEST_ID_CTX

    token = REQUEST_ID_CTX.set("-")
    yield
    REQUEST_ID_CTX.reset(token)


@pytest.fixture
def commerce(monkeypatch):
    """A fresh in-memory commerce backend seen by every view of the test."""
    from apps.orders import providers
    from apps.orders.adapters import CommerceStub

    stub = CommerceStub()
    monkeypatch.setattr(providers, "_commerce_stub", stub)
    return stub


@pytest.fixture
def bot(monkeypatch):
    """A recording bot handed out by ``get_bot`` for the whole test."""
    from apps.payments import providers
    from apps.payments.adapters import BotStub

    stub = BotStub()
    monkeypatch.setattr(providers, "get_bot", lambda: stub)
    return stub
