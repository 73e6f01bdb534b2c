"""Routing of Telegram webhook updates.

Payment callbacks go to ``PaymentHandshakeService``; plain chat messages
get the bot's small command set (``/start``, ``/help``, ``/menu``) or a
greeting. Anything else is ignored.
"""

import logging

from .domain import BotPort, PaymentHandshakeService
from .schemas import MessageDTO, UpdateDTO

logger = logging.getLogger("payments")


class UpdateDispatcher:
    """Dispatch one update to the matching handler.

    Args:
        handshake: Payment callbacks handler.
        bot: Bot used to answer chat commands.
        web_app_url: Public URL of the storefront mini-app.
        store_name: Name the bot introduces itself with.
    """

    def __init__(self, handshake: PaymentHandshakeService, bot: BotPort, web_app_url: str, store_name: str):
        self.handshake = handshake
        self.bot = bot
        self.web_app_url = web_app_url
        self.store_name = store_name

    def dispatch(self, update: UpdateDTO) -> str:
        """Handle ``update`` and return the kind of update that was handled."""
        if update.shipping_query is not None:
            self.handshake.handle_shipping_query(update.shipping_query)
            return "shipping_query"
        if update.pre_checkout_query is not None:
            self.handshake.handle_pre_checkout_query(update.pre_checkout_query)
            return "pre_checkout_query"
        message = update.message
        if message is not None and message.successful_payment is not None:
            self.handshake.handle_successful_payment(message.chat.id, message.successful_payment)
            return "successful_payment"
        if message is not None and message.text:
            return self._handle_text(message)
        logger.debug("update ignored", extra={"update_id": update.update_id})
        return "ignored"

    def _handle_text(self, message: MessageDTO) -> str:
        chat_id = message.chat.id
        # "/start@MyBot payload" -> "/start"
        command = message.text.split()[0].split("@")[0].lower() if message.text.startswith("/") else ""

        if command == "/start":
            markup = {"inline_keyboard": [[{"text": "View Menu", "web_app": {"url": self.web_app_url}}]]}
            self.bot.send_message(chat_id, "Let's get started ;)", reply_markup=markup)
            return "command:start"
        if command == "/help":
            self.bot.send_message(chat_id, "Send /start to open the store or /menu to pin it to the chat menu.")
            return "command:help"
        if command == "/menu":
            self.bot.set_chat_menu_button(chat_id, "Store", self.web_app_url)
            return "command:menu"

        self.bot.send_message(chat_id, f"Hi, I'm the {self.store_name} bot. It's nice to meet you! /help")
        return "text"
