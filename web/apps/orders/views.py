"""HTTP views for the orders app.

This module contains DRF API views used by the storefront. Views are
kept intentionally small: they validate requests (via Pydantic), map to
domain DTOs, delegate to the domain service, and return an HTTP response.

The create view opens a bot client from ``apps.payments.providers`` for
the duration of the request (it issues Telegram invoice links) and
obtains a configured ``OrderService`` from ``providers.get_order_service``,
which wires HTTP adapters or in-process stubs depending on runtime
settings. This allows tests and local development to swap
implementations without changing view logic.

Order creation is not idempotent: every accepted POST creates a backend
order. The storefront disables its checkout button while a request is in
flight; nothing server-side deduplicates submissions.
"""
import logging

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.payments import providers as payment_providers

from . import providers
from .errors import StorefrontError, ValidationError
from .schemas import CreateOrderDTO, OrderResponseDTO

logger = logging.getLogger("orders")


class OrdersPingView(APIView):
    """Simple health-check endpoint for the orders module.

    This view returns a minimal JSON payload used by liveness/health
    checks and by automated smoke-tests.
    """

    def get(self, request):
        """Handle GET requests for the health endpoint.

        Args:
            request (Request): The incoming DRF request.

        Returns:
            Response: A DRF Response with JSON {"ok": True} and HTTP 200.
        """
        return Response({"ok": True})


class OrdersCollectionView(APIView):
    """Place a storefront order.

    Validates the payload with a Pydantic DTO, creates the order in the
    commerce backend and, for Telegram payments, returns the invoice link
    the client opens to pay.
    """
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_create"

    def post(self, request):
        """Create a new order.

        Args:
            request (Request): DRF request with the order JSON body.

        Returns:
            Response: One of the following responses.
            - 201 with {order_id, status, payment_method, invoice_link?}.
            - 400 with {detail: ...} for DTO validation errors, or with
              {detail: "MISSING_REQUIRED_FIELD", field} when cash-on-delivery
              shipping data is incomplete.
            - 500 with {detail: "BACKEND_ERROR"} when the backend refuses the
              order or its shipping update (the order may already exist), or
              {detail: "UNSUPPORTED_CURRENCY"} for an unknown currency.
            - 502 with {detail: "GATEWAY_ERROR"} when Telegram cannot issue
              the invoice link.
        """
        # 1) Pydantic validation
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        # 2) Domain
        try:
            with payment_providers.get_bot() as bot:
                service = providers.get_order_service(bot)
                placed = service.place_order(dto.to_domain())
        except StorefrontError as e:
            body = {"detail": e.code, "error": str(e)}
            if isinstance(e, ValidationError):
                body["field"] = e.field
            else:
                logger.error("order placement failed", extra={"code": e.code, "error": str(e)})
            return Response(body, status=e.status_code)

        # 3) Response
        body = OrderResponseDTO.from_domain(placed).model_dump(mode="json", exclude_none=True)
        return Response(body, status=status.HTTP_201_CREATED)
