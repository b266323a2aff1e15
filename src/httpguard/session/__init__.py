"""Cache backed HTTP sessions."""

from .generator import IdGenerator, uuid_generator
from .options import CookieParameters, SessionOptions
from .session import Session, SessionError, new_session, CREATED_AT_KEY, SESSION_KEY_PREFIX
from .middleware import SessionMiddleware
from .dependencies import get_session, parse_session

__all__ = [
    "IdGenerator",
    "uuid_generator",
    "CookieParameters",
    "SessionOptions",
    "Session",
    "SessionError",
    "new_session",
    "CREATED_AT_KEY",
    "SESSION_KEY_PREFIX",
    "SessionMiddleware",
    "get_session",
    "parse_session",
]
