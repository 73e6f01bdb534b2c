"""In-process stub for the ``BotPort``.

``BotStub`` records every Bot API call instead of sending it, so tests
and local development can inspect what the bot would have answered.
It follows the same open/close lifecycle as ``TelegramBotClient``.
"""

from typing import Any, List, Optional, Tuple

from apps.orders.adapters import InvoiceStub

from .domain import BotPort, ShippingOption


class BotStub(InvoiceStub, BotPort):
    """Stub implementation of ``BotPort``.

    Attributes:
        calls: ``(method, arguments)`` tuples in call order, using the Bot
            API method names.
    """

    def __init__(self):
        super().__init__()
        self.calls: List[Tuple[str, dict]] = []
        self.is_open = False

    def open(self) -> "BotStub":
        self.is_open = True
        return self

    def close(self) -> None:
        self.is_open = False

    def __enter__(self) -> "BotStub":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def calls_to(self, method: str) -> List[dict]:
        return [args for name, args in self.calls if name == method]

    def answer_shipping_query(
        self,
        query_id: str,
        ok: bool,
        shipping_options: Optional[List[ShippingOption]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        self.calls.append(
            ("answerShippingQuery", {"query_id": query_id, "ok": ok, "shipping_options": shipping_options, "error_message": error_message})
        )

    def answer_pre_checkout_query(self, query_id: str, ok: bool, error_message: Optional[str] = None) -> None:
        self.calls.append(("answerPreCheckoutQuery", {"query_id": query_id, "ok": ok, "error_message": error_message}))

    def send_message(self, chat_id: int, text: str, reply_markup: Optional[dict] = None) -> None:
        self.calls.append(("sendMessage", {"chat_id": chat_id, "text": text, "reply_markup": reply_markup}))

    def set_chat_menu_button(self, chat_id: int, text: str, url: str) -> None:
        self.calls.append(("setChatMenuButton", {"chat_id": chat_id, "text": text, "url": url}))

    def create_invoice_link(self, invoice: Any) -> str:
        link = super().create_invoice_link(invoice)
        self.calls.append(("createInvoiceLink", {"invoice": invoice, "link": link}))
        return link
