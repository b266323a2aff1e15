"""
HTTP middleware helpers for FastAPI/Starlette services: cache backed
sessions, CSRF protection, rate limiting, uploads, typed HTTP errors with a
terminal error handler, and Content-Type gates.
"""

from .cast import Caster, CastError
from .content import form_only, json_only, multipart_only, xml_only
from .errors import HttpError, new_error, new_form_error
from .error_handler import ErrorHandler, setup_error_handler

__all__ = [
    "Caster",
    "CastError",
    "HttpError",
    "new_error",
    "new_form_error",
    "ErrorHandler",
    "setup_error_handler",
    "json_only",
    "xml_only",
    "form_only",
    "multipart_only",
]
