"""Service provider helpers for the Telegram side.

``get_bot`` builds a new, unopened bot client: the real Bot API client
when ``settings.USE_HTTP_ADAPTERS`` is truthy, a recording stub
otherwise. Callers own its lifecycle (``with get_bot() as bot: ...``).
"""

from django.conf import settings

from apps.orders.providers import get_commerce

from .adapters import BotStub
from .domain import BotPort, PaymentHandshakeService
from .handlers import UpdateDispatcher
from .http_adapters import TelegramBotClient


def get_bot() -> BotPort:
    """Return a bot client for the current settings (not yet opened)."""
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return TelegramBotClient()
    return BotStub()


def get_handshake_service(bot: BotPort) -> PaymentHandshakeService:
    return PaymentHandshakeService(commerce=get_commerce(), bot=bot)


def get_update_dispatcher(bot: BotPort) -> UpdateDispatcher:
    """Return a dispatcher answering through ``bot``."""
    return UpdateDispatcher(
        handshake=get_handshake_service(bot),
        bot=bot,
        web_app_url=settings.PUBLIC_BASE_URL,
        store_name=settings.STORE_NAME,
    )
