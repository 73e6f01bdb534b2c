"""Edge middleware: request correlation and payload size limits.

``RequestIdMiddleware`` makes sure every incoming HTTP request (storefront
API call or Telegram webhook) receives a request identifier. The id is
read from the incoming ``X-Request-Id`` header when provided, or
generated server-side otherwise. It is stored on the ``request`` object
and in a context variable so the HTTP adapters can forward it to
WooCommerce and Telegram and the logging filter can stamp it on every
record without passing the value explicitly.

``ApiSizeLimitMiddleware`` refuses oversized bodies on the API and the
webhook before any parsing happens.
"""

import contextvars
import uuid

from django.conf import settings
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
LIMITED_PREFIXES = ("/api/", "/telegram/")


def request_headers(extra=None) -> dict:
    """Headers for an outgoing upstream call, carrying the current request id.

    ``X-Request-ID`` is added when a request is being served (the context
    variable holds something other than ``"-"``); ``extra`` is applied on top.
    """
    headers = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


class RequestIdMiddleware(MiddlewareMixin):
    """Django middleware that sets and returns a per-request identifier.

    Attributes:
        HEADER (str): The name of the incoming HTTP header (in Django's
            ``request.META`` casing) that may contain a client-provided id.
        RESPONSE_HEADER (str): The name of the header returned on responses.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        """Attach the request id to the request and the context variable."""
        rid = request.META.get(self.HEADER) or str(uuid.uuid4())
        request.request_id = rid
        REQUEST_ID_CTX.set(rid)

    def process_response(self, request, response):
        """Echo the request id on the response."""
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    """Answer 413 when a declared body exceeds ``settings.API_MAX_BYTES``."""

    def process_request(self, request):
        if request.path.startswith(LIMITED_PREFIXES):
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > settings.API_MAX_BYTES:
                return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
