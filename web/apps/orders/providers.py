"""Service provider helpers for wiring OrderService with ports.

This module exposes small factory functions returning configured
collaborators. When ``settings.USE_HTTP_ADAPTERS`` is truthy the commerce
backend is reached over HTTP; otherwise a process-wide in-memory stub is
used so local development works without WooCommerce. The stub is shared
so the Telegram webhook sees the orders created through the API.
"""

from django.conf import settings

from .adapters import CommerceStub
from .domain import CommercePort, InvoicePort, OrderService
from .http_adapters import HttpCommerceClient


_commerce_stub = CommerceStub()


def get_commerce() -> CommercePort:
    """Return the commerce backend port for the current settings."""
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return HttpCommerceClient()
    return _commerce_stub


def get_order_service(invoices: InvoicePort) -> OrderService:
    """Return a configured OrderService instance.

    Args:
        invoices: Invoice issuer, normally the open Telegram bot client.

    Returns:
        OrderService: A service instance with appropriate ports.
    """
    return OrderService(
        commerce=get_commerce(),
        invoices=invoices,
        flexible_invoices=getattr(settings, "TELEGRAM_INVOICE_FLEXIBLE", False),
    )
