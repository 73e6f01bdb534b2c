"""Telegram Bot API client.

``TelegramBotClient`` is the bot as a service object: it is constructed
explicitly, opened before use and closed afterwards (or used as a
context manager), and handed to whoever needs it. There is no
process-wide bot instance, which keeps test doubles trivial.

Every call is a single synchronous POST to
``<TELEGRAM_API_URL>/bot<token>/<method>``. Transport errors and answers
with ``ok: false`` raise ``GatewayError``; nothing is retried.
"""

import logging
from dataclasses import asdict
from typing import Any, List, Optional

import httpx
from django.conf import settings

from apps.orders.domain import InvoiceRequest
from apps.orders.errors import GatewayError
from gateway.middleware import request_headers

from .domain import BotPort, ShippingOption

logger = logging.getLogger("payments")


class TelegramBotClient(BotPort):
    """HTTP client for the Telegram Bot API with an explicit lifecycle."""

    def __init__(
        self,
        token: str | None = None,
        provider_token: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        photo_url: str | None = None,
    ):
        self.token = token or settings.TELEGRAM_BOT_TOKEN
        self.provider_token = provider_token if provider_token is not None else settings.TELEGRAM_PAYMENT_PROVIDER_TOKEN
        self.api_url = (api_url or settings.TELEGRAM_API_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS
        self.photo_url = photo_url or getattr(settings, "TELEGRAM_INVOICE_PHOTO_URL", "")
        self._client: Optional[httpx.Client] = None

    # ---- lifecycle ----

    def open(self) -> "TelegramBotClient":
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "TelegramBotClient":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    # ---- transport ----

    def _call(self, method: str, payload: dict) -> Any:
        """Invoke a Bot API method and return its ``result``.

        Raises:
            RuntimeError: If the client has not been opened.
            GatewayError: On transport errors, non-JSON bodies or ``ok: false``.
        """
        if self._client is None:
            raise RuntimeError("BOT_CLIENT_NOT_OPEN")
        url = f"{self.api_url}/bot{self.token}/{method}"
        try:
            resp = self._client.post(url, json=payload, headers=request_headers())
        except httpx.RequestError as e:
            logger.warning("telegram unreachable", extra={"tg_method": method})
            raise GatewayError(method) from e
        try:
            data = resp.json()
        except ValueError:
            raise GatewayError(method, f"HTTP {resp.status_code}") from None
        if not isinstance(data, dict):
            raise GatewayError(method, f"HTTP {resp.status_code}")
        if resp.status_code != 200 or not data.get("ok"):
            logger.warning(
                "telegram call refused",
                extra={"tg_method": method, "status": resp.status_code, "description": data.get("description")},
            )
            raise GatewayError(method, data.get("description") or f"HTTP {resp.status_code}")
        return data.get("result")

    # ---- payments ----

    def create_invoice_link(self, invoice: InvoiceRequest) -> str:
        """Create an invoice link (``createInvoiceLink``)."""
        payload = {
            "title": invoice.title,
            "description": invoice.description,
            "payload": invoice.payload,
            "provider_token": self.provider_token,
            "currency": invoice.currency,
            "prices": [asdict(p) for p in invoice.prices],
            "need_name": invoice.need_name,
            "need_email": invoice.need_email,
            "need_phone_number": invoice.need_phone_number,
            "need_shipping_address": invoice.need_shipping_address,
            "is_flexible": invoice.is_flexible,
        }
        if self.photo_url:
            payload["photo_url"] = self.photo_url
        return str(self._call("createInvoiceLink", payload))

    def answer_shipping_query(
        self,
        query_id: str,
        ok: bool,
        shipping_options: Optional[List[ShippingOption]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {"shipping_query_id": query_id, "ok": ok}
        if ok:
            payload["shipping_options"] = [asdict(o) for o in shipping_options or []]
        else:
            payload["error_message"] = error_message
        self._call("answerShippingQuery", payload)

    def answer_pre_checkout_query(self, query_id: str, ok: bool, error_message: Optional[str] = None) -> None:
        payload: dict[str, Any] = {"pre_checkout_query_id": query_id, "ok": ok}
        if not ok:
            payload["error_message"] = error_message
        self._call("answerPreCheckoutQuery", payload)

    # ---- messaging ----

    def send_message(self, chat_id: int, text: str, reply_markup: Optional[dict] = None) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        self._call("sendMessage", payload)

    def set_chat_menu_button(self, chat_id: int, text: str, url: str) -> None:
        self._call(
            "setChatMenuButton",
            {"chat_id": chat_id, "menu_button": {"type": "web_app", "text": text, "web_app": {"url": url}}},
        )

