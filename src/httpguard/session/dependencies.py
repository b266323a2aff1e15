from typing import Optional

from fastapi import Request

from .session import Session, SessionError


def parse_session(request: Request) -> Optional[Session]:
    """Return the session attached by SessionMiddleware, or None."""
    session = getattr(request.state, "session", None)
    if isinstance(session, Session):
        return session
    return None


async def get_session(request: Request) -> Session:
    """
    FastAPI dependency giving handlers the current request's session.

    Raises:
        SessionError: If SessionMiddleware is not installed in front of the route
    """
    session = parse_session(request)
    if session is None:
        raise SessionError("failed to resolve session")
    return session
