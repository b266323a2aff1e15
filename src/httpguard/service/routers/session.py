from datetime import timedelta
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from httpguard.csrf import get_token, refresh_token
from httpguard.config import secure_cookies
from httpguard.session import Session, get_session
from ..schema import CSRFTokenResponse, LoginRequest, SessionInfoResponse, TTLRequest

logger = logging.getLogger('httpguard.service.routers.session')

router = APIRouter(
    tags=["session"],
)


def _info(session: Session) -> SessionInfoResponse:
    created_at = session.created_at()
    return SessionInfoResponse(
        session_id=session.id,
        user=session.cast("user").as_str_safe("") or None,
        created_at=created_at.isoformat() if created_at else None,
        csrf_token=get_token(session),
    )


@router.get("/status")
async def status():
    return {"status": "ok"}


@router.get("/csrf-token")
async def csrf_token(session: Session = Depends(get_session)) -> CSRFTokenResponse:
    """
    Return the session's CSRF token; the CSRF middleware mints one when missing.
    """
    return CSRFTokenResponse(csrf_token=get_token(session))


@router.get("/me")
async def me(session: Session = Depends(get_session)) -> SessionInfoResponse:
    return _info(session)


@router.post("/login")
async def login(body: LoginRequest, session: Session = Depends(get_session)) -> SessionInfoResponse:
    # Rotate the token whenever the authenticated identity changes
    session.set("user", body.username)
    refresh_token(session, secure=secure_cookies())
    logger.info(f"Session {session.id} logged in as {body.username}")
    return _info(session)


@router.post("/logout")
async def logout(session: Session = Depends(get_session)):
    session_id = session.id
    await session.destroy()
    logger.info(f"Session {session_id} destroyed")
    return PlainTextResponse("session deleted")


@router.post("/ttl")
async def change_ttl(body: TTLRequest, session: Session = Depends(get_session)) -> SessionInfoResponse:
    if body.mode == "add":
        session.add_ttl(timedelta(seconds=body.seconds))
    else:
        session.set_ttl(timedelta(seconds=body.seconds))
    return _info(session)
