"""HTTP views for the payments app.

Telegram delivers every bot update to a single webhook. The view checks
the shared secret, validates the update with Pydantic, opens a bot
client for the duration of the request and hands the update to the
dispatcher. Handlers answer Telegram through Bot API calls, so the
webhook response itself only acknowledges receipt.

A Bot API failure while answering is logged and acknowledged with
``{"ok": false}`` and HTTP 200: an error status would make Telegram
redeliver the update, and nothing here is retried automatically.
"""

import hmac
import logging

from django.conf import settings
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.orders.errors import GatewayError

from . import providers
from .schemas import UpdateDTO

logger = logging.getLogger("payments")

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def _secret_matches(request) -> bool:
    expected = getattr(settings, "TELEGRAM_BOT_SECRET", "")
    supplied = request.query_params.get("secret_hash") or request.headers.get(SECRET_HEADER) or ""
    return bool(expected) and hmac.compare_digest(supplied.encode(), expected.encode())


class TelegramWebhookView(APIView):
    """Receive Telegram bot updates."""

    authentication_classes: list = []
    permission_classes: list = []

    def post(self, request):
        """Handle one update.

        Returns:
            Response: One of the following responses.
            - 200 with {ok: True, handled: <kind>} once the update is handled.
            - 200 with {ok: False, detail: "GATEWAY_ERROR"} when answering
              Telegram failed.
            - 400 with {detail: ...} when the body is not a valid update.
            - 403 with {detail: "FORBIDDEN"} when the secret does not match.
        """
        if not _secret_matches(request):
            logger.warning("webhook secret mismatch")
            return Response({"detail": "FORBIDDEN"}, status=status.HTTP_403_FORBIDDEN)

        try:
            update = UpdateDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        with providers.get_bot() as bot:
            dispatcher = providers.get_update_dispatcher(bot)
            try:
                handled = dispatcher.dispatch(update)
            except GatewayError as e:
                logger.exception("telegram answer failed", extra={"update_id": update.update_id})
                return Response({"ok": False, "detail": e.code}, status=status.HTTP_200_OK)

        logger.info("update handled", extra={"update_id": update.update_id, "kind": handled})
        return Response({"ok": True, "handled": handled}, status=status.HTTP_200_OK)
