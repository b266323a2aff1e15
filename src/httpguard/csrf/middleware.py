import inspect
import json
import logging
from typing import Optional

from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from httpguard.session import SessionError, parse_session
from .options import CSRFOptions
from .tokens import CSRF_RESPONSE_HEADER, get_token, is_checked_method, refresh_token

logger = logging.getLogger('httpguard.csrf')

CSRF_FAILURE_STATUS = 419


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Reject state changing requests that do not echo the session's CSRF token.

    The candidate token is read from the header, then the cookie, then the
    form or JSON body field. A missing session token is minted before the
    check, so the first state changing request of a new session fails: the
    client has not received that token yet.

    Must run inside SessionMiddleware.
    """

    def __init__(self, app: ASGIApp, options: Optional[CSRFOptions] = None):
        super().__init__(app)
        self.options = options or CSRFOptions()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self.options.skip is not None and self.options.skip(request):
            return await call_next(request)

        session = parse_session(request)
        if session is None:
            raise SessionError("failed to resolve session")

        token = get_token(session)
        if not token:
            token = refresh_token(
                session,
                secure=self.options.secure,
                mirror=self.options.mirror,
                cookie_name=self.options.cookie_name,
            )
            logger.debug(f"CSRF token minted for session {session.id}")

        if is_checked_method(request.method):
            candidate = await self._candidate(request)
            if not token or candidate != token:
                logger.info(f"CSRF validation failed for {request.method} {request.url.path}")
                response = await self._fail(request)
                self._expose(response)
                return response

        response = await call_next(request)
        self._expose(response)
        return response

    async def _candidate(self, request: Request) -> str:
        candidate = request.headers.get(self.options.header_name, "")
        if candidate:
            return candidate

        candidate = request.cookies.get(self.options.cookie_name, "")
        if candidate:
            return candidate

        return await self._body_field(request)

    async def _body_field(self, request: Request) -> str:
        content_type = request.headers.get("content-type", "").lower()
        field = self.options.field_name

        if content_type.startswith("application/json"):
            raw = await request.body()
            try:
                data = json.loads(raw) if raw else None
            except ValueError:
                return ""
            value = data.get(field) if isinstance(data, dict) else None
            return value if isinstance(value, str) else ""

        if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
            # Read the raw body first so downstream handlers can parse it again
            await request.body()
            try:
                form = await request.form()
            except (HTTPException, MultiPartException) as exc:
                logger.debug(f"Unreadable form body, no CSRF field: {exc}")
                return ""
            value = form.get(field)
            return value if isinstance(value, str) else ""

        return ""

    async def _fail(self, request: Request) -> Response:
        if self.options.on_fail is not None:
            result = self.options.on_fail(request)
            if inspect.isawaitable(result):
                result = await result
            return result
        return PlainTextResponse("invalid csrf token", status_code=CSRF_FAILURE_STATUS)

    @staticmethod
    def _expose(response: Response) -> None:
        response.headers.append("Access-Control-Expose-Headers", CSRF_RESPONSE_HEADER)
        response.headers.append("Access-Control-Allow-Headers", CSRF_RESPONSE_HEADER)
