import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from httpguard.cache import Cache
from .options import SessionOptions
from .session import new_session

logger = logging.getLogger('httpguard.session.middleware')


def request_failed(request: Request) -> bool:
    """True when the terminal error handler already rendered an error for this request."""
    return getattr(request.state, "error", None) is not None


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Resolve or create the request's session and persist it after the response.

    The session is stored on request.state.session; handlers should receive it
    through the get_session dependency. It is saved only when downstream
    processing finished without an error.
    """

    def __init__(self, app: ASGIApp, cache: Cache, options: Optional[SessionOptions] = None):
        super().__init__(app)
        self.cache = cache
        self.options = options or SessionOptions()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        session = await new_session(request, self.cache, self.options)
        request.state.session = session
        logger.debug(f"Session {session.id} resolved for {request.method} {request.url.path} (fresh={session.is_fresh})")

        response = await call_next(request)

        # Set allowed header
        if self.options.header:
            response.headers.append("Access-Control-Expose-Headers", self.options.name)
            response.headers.append("Access-Control-Allow-Headers", self.options.name)

        if request_failed(request):
            logger.debug(f"Skipping save of session {session.id}: request failed")
            return response

        await session.save()
        session.attach_to_response(response)
        return response
