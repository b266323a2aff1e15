"""CSRF token helpers and validation middleware."""

from .options import CSRFOptions
from .tokens import (
    CSRF_COOKIE_NAME,
    CSRF_RESPONSE_HEADER,
    CSRF_SESSION_KEY,
    get_token,
    refresh_token,
    refresh_request_token,
)
from .middleware import CSRFMiddleware, CSRF_FAILURE_STATUS

__all__ = [
    "CSRFOptions",
    "CSRF_COOKIE_NAME",
    "CSRF_RESPONSE_HEADER",
    "CSRF_SESSION_KEY",
    "CSRF_FAILURE_STATUS",
    "get_token",
    "refresh_token",
    "refresh_request_token",
    "CSRFMiddleware",
]
