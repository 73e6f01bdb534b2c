"""Payment handshake between Telegram and the commerce backend.

Telegram drives the payment of an invoice created by the orchestrator
and calls back at three points, each carrying the invoice payload that
identifies the backend order:

1. shipping query (flexible invoices only, possibly repeated): which
   shipping options exist for the user's zone;
2. pre-checkout query: last chance to refuse the payment; the shipping
   data Telegram collected is validated and stored on the order here;
3. successful payment: the charge went through; the order is flagged
   paid, or handed to an operator when that fails.

The handlers keep no state between calls. Everything shared lives in
the commerce backend, and ordering between the steps is Telegram's
responsibility (it never confirms a payment whose pre-checkout was
refused).
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from apps.orders.domain import (
    CommercePort,
    InvoicePayload,
    InvoicePort,
    LabeledPrice,
    first_missing_shipping_field,
)
from apps.orders.errors import BackendError, InvalidPayloadError, ManualReconciliationError

from .schemas import PreCheckoutQueryDTO, ShippingQueryDTO, SuccessfulPaymentDTO

logger = logging.getLogger("payments")

NO_SHIPPING_MESSAGE = "No shipping option available at your zone!"
SHIPPING_UNAVAILABLE_MESSAGE = "Shipping options are temporarily unavailable. Please try again later."
UNKNOWN_ORDER_MESSAGE = "This invoice does not belong to a known order. Please contact support."
INCOMPLETE_SHIPPING_MESSAGE = "Please provide complete shipping information!"
UPDATE_FAILED_MESSAGE = "Problem occurred during order update. Please try again or contact support."
PAYMENT_REGISTERED_MESSAGE = "Order successfully registered!"


@dataclass(frozen=True)
class ShippingOption:
    id: str
    title: str
    prices: List[LabeledPrice]


class BotPort(InvoicePort, Protocol):
    """Port describing the Telegram Bot API calls used by this project."""

    def answer_shipping_query(
        self,
        query_id: str,
        ok: bool,
        shipping_options: Optional[List[ShippingOption]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        raise NotImplementedError()

    def answer_pre_checkout_query(self, query_id: str, ok: bool, error_message: Optional[str] = None) -> None:
        raise NotImplementedError()

    def send_message(self, chat_id: int, text: str, reply_markup: Optional[dict] = None) -> None:
        raise NotImplementedError()

    def set_chat_menu_button(self, chat_id: int, text: str, url: str) -> None:
        raise NotImplementedError()


class PaymentHandshakeService:
    """Stateless handlers for Telegram's payment callbacks."""

    def __init__(self, commerce: CommercePort, bot: BotPort):
        self.commerce = commerce
        self.bot = bot

    def handle_shipping_query(self, query: ShippingQueryDTO) -> bool:
        """Answer a shipping query with the enabled methods of the order's zone.

        Every method is offered for free: pricing is not wired to the
        backend's shipping method settings yet.

        Returns:
            True when shipping options were offered.
        """
        try:
            payload = InvoicePayload.loads(query.invoice_payload)
        except InvalidPayloadError:
            logger.warning("shipping query with invalid payload", extra={"query_id": query.id})
            self.bot.answer_shipping_query(query.id, False, error_message=UNKNOWN_ORDER_MESSAGE)
            return False

        try:
            methods = self.commerce.get_shipping_methods(payload.shipping_zone)
        except BackendError:
            logger.exception("shipping methods lookup failed", extra={"order_id": payload.order_id})
            self.bot.answer_shipping_query(query.id, False, error_message=SHIPPING_UNAVAILABLE_MESSAGE)
            return False

        options = [
            ShippingOption(id=m.method_id, title=m.title, prices=[LabeledPrice(label="Free", amount=0)])
            for m in methods
            if m.enabled
        ]
        if not options:
            logger.info("no shipping option", extra={"order_id": payload.order_id, "zone": payload.shipping_zone})
            self.bot.answer_shipping_query(query.id, False, error_message=NO_SHIPPING_MESSAGE)
            return False

        self.bot.answer_shipping_query(query.id, True, shipping_options=options)
        return True

    def handle_pre_checkout_query(self, query: PreCheckoutQueryDTO) -> bool:
        """Validate Telegram-collected shipping data and store it on the order.

        This is the last point at which the payment can be stopped: the
        checkout is accepted only once the backend holds the shipping data.

        Returns:
            True when the checkout was accepted.
        """
        try:
            payload = InvoicePayload.loads(query.invoice_payload)
        except InvalidPayloadError:
            logger.warning("pre-checkout with invalid payload", extra={"query_id": query.id})
            self.bot.answer_pre_checkout_query(query.id, False, error_message=UNKNOWN_ORDER_MESSAGE)
            return False

        info = query.order_info.to_shipping_info() if query.order_info else None
        missing = first_missing_shipping_field(info) if info else "order_info"
        if missing:
            logger.info("pre-checkout rejected", extra={"order_id": payload.order_id, "missing": missing})
            self.bot.answer_pre_checkout_query(query.id, False, error_message=INCOMPLETE_SHIPPING_MESSAGE)
            return False

        try:
            updated = self.commerce.update_order_info(payload.order_id, info)
        except BackendError:
            logger.exception("order info update failed", extra={"order_id": payload.order_id})
            updated = False

        if not updated:
            self.bot.answer_pre_checkout_query(query.id, False, error_message=UPDATE_FAILED_MESSAGE)
            return False

        self.bot.answer_pre_checkout_query(query.id, True)
        logger.info("pre-checkout accepted", extra={"order_id": payload.order_id})
        return True

    def handle_successful_payment(self, chat_id: int, payment: SuccessfulPaymentDTO) -> bool:
        """Flag the order paid and tell the user how it went.

        When the backend cannot be updated the user gets a message with the
        identifiers support needs to reconcile the charge by hand. There is
        no automatic retry.

        Returns:
            True when the order was flagged paid.
        """
        order_id: Optional[int] = None
        paid = False
        try:
            order_id = InvoicePayload.loads(payment.invoice_payload).order_id
            paid = self.commerce.set_order_paid(order_id)
        except InvalidPayloadError:
            logger.error("payment with invalid payload", extra={"chat_id": chat_id})
        except BackendError:
            logger.exception("set paid failed", extra={"order_id": order_id})

        if paid:
            logger.info("order paid", extra={"order_id": order_id})
            self.bot.send_message(chat_id, PAYMENT_REGISTERED_MESSAGE)
            return True

        error = ManualReconciliationError(
            order_id=order_id,
            telegram_payment_charge_id=payment.telegram_payment_charge_id,
            provider_payment_charge_id=payment.provider_payment_charge_id,
        )
        logger.error(
            "payment needs manual reconciliation",
            extra={
                "order_id": order_id,
                "telegram_payment_charge_id": error.telegram_payment_charge_id,
                "provider_payment_charge_id": error.provider_payment_charge_id,
            },
        )
        self.bot.send_message(chat_id, str(error))
        return False
