import logging
import os
from typing import Awaitable, Callable, Iterable, Optional

from fastapi import FastAPI
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp
from slowapi.util import get_remote_address

from .errors import HttpError

logger = logging.getLogger('httpguard.error_handler')

# Renders the client response for a resolved error
ErrorCallback = Callable[[Request, HttpError], Awaitable[Response]]


def relative_path(path: str) -> str:
    """
    Make a source path relative to APP_ROOT when it is set.
    """
    path = path.replace(os.sep, "/")
    root = os.getenv("APP_ROOT", "").replace(os.sep, "/")
    if root and path:
        try:
            return os.path.relpath(path, root).replace(os.sep, "/")
        except ValueError:
            # Different drives on Windows
            pass
    return path


def add_error_header(request: Request, name: str, value: str) -> None:
    """
    Queue a header for the response the error handler renders.

    Middlewares that see an exception pass through them use this to keep
    their headers on the final error response.
    """
    headers = getattr(request.state, "error_headers", None)
    if headers is None:
        headers = []
        request.state.error_headers = headers
    headers.append((name, value))


class ErrorHandler:
    """
    Terminal handler for every error a request can end with.

    Status and message come from an HttpError, a Starlette HTTPException,
    or default to 500 / "Internal Server Error". Errors whose status is in
    `codes` (or every error when `codes` is empty) are logged with their
    diagnostics as structured fields.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = logger,
        callback: Optional[ErrorCallback] = None,
        codes: Iterable[int] = (),
    ):
        self.logger = logger
        self.callback = callback
        self.codes = set(codes)

    def resolve(self, exc: Exception) -> HttpError:
        if isinstance(exc, HttpError):
            return exc
        if isinstance(exc, HTTPException):
            return HttpError(str(exc.detail), status=exc.status_code)
        return HttpError("Internal Server Error", status=500)

    def should_log(self, status: int) -> bool:
        return self.logger is not None and (not self.codes or status in self.codes)

    def log(self, request: Request, error: HttpError, exc: Exception) -> None:
        fields = {
            "file": relative_path(error.file),
            "line": error.line,
            "status": error.status,
            "ip": get_remote_address(request),
            "path": request.url.path,
            "method": request.method,
        }
        for key, value in (error.body or {}).items():
            fields[key] = value

        unexpected = not isinstance(exc, (HttpError, HTTPException))
        self.logger.error(error.message, extra=fields, exc_info=exc if unexpected else None)

    async def __call__(self, request: Request, exc: Exception) -> Response:
        error = self.resolve(exc)
        request.state.error = error

        if self.should_log(error.status):
            self.log(request, error, exc)

        if self.callback is not None:
            response = await self.callback(request, error)
        else:
            response = PlainTextResponse(error.message, status_code=error.status)
            headers = getattr(exc, "headers", None)
            if isinstance(exc, HTTPException) and headers:
                response.headers.update(headers)

        for name, value in getattr(request.state, "error_headers", None) or []:
            response.headers.append(name, value)
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catches errors raised by middlewares or left unhandled by routes"""

    def __init__(self, app: ASGIApp, handler: ErrorHandler):
        super().__init__(app)
        self.handler = handler

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await self.handler(request, exc)


def setup_error_handler(
    app: FastAPI,
    logger: Optional[logging.Logger] = logger,
    callback: Optional[ErrorCallback] = None,
    codes: Iterable[int] = (),
) -> ErrorHandler:
    """
    Route every request error through one ErrorHandler.

    Must be called after the middlewares whose errors it should render;
    only middlewares added later (e.g. CORS) wrap the error middleware.
    """
    handler = ErrorHandler(logger=logger, callback=callback, codes=codes)
    app.add_exception_handler(HttpError, handler)
    app.add_exception_handler(HTTPException, handler)
    app.add_middleware(ErrorHandlingMiddleware, handler=handler)
    return handler
