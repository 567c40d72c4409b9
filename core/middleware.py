"""
Request correlation for logs.

RequestIDMiddleware:
  Reads the X-Request-ID header (or generates a UUID when absent), stores it
  for the duration of the request and echoes it on the response.

RequestIDFilter:
  A logging filter that stamps the current request id on every record as
  `request_id`, so the formatter can include `[%(request_id)s]`. Records
  emitted outside a request (Celery workers, management commands) get "-".
"""

import logging
import re
import uuid
from contextvars import ContextVar


REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


def get_request_id() -> str:
    """Return the id of the request being handled, or "-"."""
    return _request_id.get()


class RequestIDMiddleware:
    """Assign and propagate a per-request correlation id."""

    def __init__(self, get_response):
        """
        Initialize the middleware.

        Args:
            get_response: The next middleware or view in the chain.
        """
        self.get_response = get_response

    def __call__(self, request):
        request_id = self._incoming_request_id(request) or uuid.uuid4().hex
        request.request_id = request_id
        token = _request_id.set(request_id)
        try:
            response = self.get_response(request)
        finally:
            _request_id.reset(token)
        response[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _incoming_request_id(request) -> str | None:
        """Return the client-supplied id if it is safe to log."""
        value = request.headers.get(REQUEST_ID_HEADER, "")
        if value and _VALID_REQUEST_ID.match(value):
            return value
        return None


class RequestIDFilter(logging.Filter):
    """Attach the current request id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True
