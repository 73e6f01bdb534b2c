"""Error taxonomy shared by the storefront, orders and payments apps.

Every error carries a short machine ``code`` (used as the ``detail`` of
HTTP error bodies, like the rest of the API) and the HTTP status the
views map it to. Messages are meant for humans: end users for
validation problems, operators for reconciliation problems.
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for all domain errors raised by this project."""

    code = "STOREFRONT_ERROR"
    status_code = 500


class ValidationError(StorefrontError, ValueError):
    """A user-supplied field is missing or invalid.

    Attributes:
        field: Dotted name of the first offending field
            (e.g. ``address.street_line1``).
    """

    code = "MISSING_REQUIRED_FIELD"
    status_code = 400

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Missing required field: {field}")


class InvalidPayloadError(ValidationError):
    """An invoice payload could not be parsed into an order reference."""

    code = "INVALID_INVOICE_PAYLOAD"

    def __init__(self, raw: str, reason: str):
        self.raw = raw
        super().__init__("invoice_payload", f"Invalid invoice payload ({reason})")


class UnsupportedCurrencyError(StorefrontError):
    """The backend settles in a currency missing from the exponent table."""

    code = "UNSUPPORTED_CURRENCY"
    status_code = 500

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unsupported currency: {currency}")


class BackendError(StorefrontError):
    """The commerce backend answered with a non-success response.

    Attributes:
        upstream_status: HTTP status returned by the backend, or None when
            the request never got an answer (transport error).
        order_id: Backend order the call was about, when known. The order
            may already exist when this is raised; nothing is rolled back.
    """

    code = "BACKEND_ERROR"
    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None, order_id: Optional[int] = None):
        self.upstream_status = upstream_status
        self.order_id = order_id
        super().__init__(message)


class GatewayError(StorefrontError):
    """A Telegram Bot API call failed or returned ``ok: false``."""

    code = "GATEWAY_ERROR"
    status_code = 502

    def __init__(self, method: str, description: Optional[str] = None):
        self.method = method
        self.description = description
        super().__init__(f"Telegram {method} failed: {description or 'no response'}")


class GatewayCapabilityError(StorefrontError):
    """The Telegram client is too old to open invoices in-app."""

    code = "GATEWAY_UNSUPPORTED"
    status_code = 400

    def __init__(self, min_version: str):
        self.min_version = min_version
        super().__init__(
            f"Telegram payment requires app version {min_version} or higher. "
            "Please update your Telegram app!"
        )


class ManualReconciliationError(StorefrontError):
    """Telegram charged the user but the backend order could not be marked paid.

    The identifiers are everything an operator needs to match the charge
    with the order by hand. Never retried automatically.
    """

    code = "MANUAL_RECONCILIATION"
    status_code = 500

    def __init__(
        self,
        order_id: Optional[int],
        telegram_payment_charge_id: str,
        provider_payment_charge_id: str,
    ):
        self.order_id = order_id
        self.telegram_payment_charge_id = telegram_payment_charge_id
        self.provider_payment_charge_id = provider_payment_charge_id
        super().__init__(
            "Error registering payment, contact support!\n"
            f"orderId: {order_id if order_id is not None else 'unknown'}\n"
            f"telegram_payment_charge_id: {telegram_payment_charge_id}\n"
            f"provider_payment_charge_id: {provider_payment_charge_id}"
        )
