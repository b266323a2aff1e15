import uuid
from typing import Optional

from fastapi import Request

from httpguard.session import Session, SessionError, parse_session

CSRF_SESSION_KEY = "csrf"
CSRF_RESPONSE_HEADER = "X-CSRF-TOKEN"
CSRF_COOKIE_NAME = "csrf_token"

# GET, HEAD, OPTIONS and TRACE are safe methods (RFC 9110 section 9.2.1)
CHECKED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def get_token(session: Optional[Session]) -> str:
    """Return the session's CSRF token, or an empty string."""
    if session is None:
        return ""
    return session.cast(CSRF_SESSION_KEY).as_str_safe("")


def refresh_token(
    session: Session,
    secure: bool = False,
    mirror: bool = True,
    cookie_name: str = CSRF_COOKIE_NAME,
) -> str:
    """
    Generate a new CSRF token and store it in the session.

    When mirror is set the token is also sent back to the client in the
    X-CSRF-TOKEN response header and a strict same-site cookie, written
    when the session is attached to the response.
    """
    token = str(uuid.uuid4())
    session.set(CSRF_SESSION_KEY, token)
    if mirror:
        session.set_response_header(CSRF_RESPONSE_HEADER, token)
        session.set_response_cookie(
            cookie_name,
            token,
            path="/",
            secure=secure,
            httponly=False,
            samesite="strict",
        )
    return token


def refresh_request_token(request: Request, secure: bool = False) -> str:
    """Refresh the token of the session attached to the request."""
    session = parse_session(request)
    if session is None:
        raise SessionError("failed to resolve session")
    return refresh_token(session, secure=secure)


def is_checked_method(method: str) -> bool:
    return method.upper() in CHECKED_METHODS
