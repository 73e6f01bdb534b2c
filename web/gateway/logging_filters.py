"""Logging filters for enriching log records with request context."""

from logging import Filter, LogRecord
from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    The value comes from the ``REQUEST_ID_CTX`` ContextVar set by
    ``RequestIdMiddleware``; outside a request it is ``"-"``, so JSON
    formatters can always reference ``%(request_id)s``. A ``request_id``
    passed explicitly through ``extra`` is left alone.
    """

    def filter(self, record: LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = REQUEST_ID_CTX.get()
        return True
