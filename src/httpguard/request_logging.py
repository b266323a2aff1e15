import logging
import os

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from httpguard.session.middleware import request_failed

logger = logging.getLogger('httpguard.middleware')

VALID_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def configure_logging(level: str | None = None) -> str:
    """
    Configure root logging from the given level or LOG_LEVEL.

    Returns:
        str: The level actually applied
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if log_level not in VALID_LEVELS:
        logging.warning(f"Invalid LOG_LEVEL '{log_level}'. Using INFO instead.")
        log_level = 'INFO'

    logging.basicConfig(
        level=getattr(logging, log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return log_level


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs requests and responses.

    Client errors are logged at INFO. Server errors are logged at ERROR unless
    the error handler rendered them, since it already logged the cause.
    """

    def __init__(self, app, session_name: str = "session"):
        super().__init__(app)
        self.session_name = session_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        logger.debug(f"REQUEST: {request.method} {request.url}")
        logger.debug(f"REQUEST: Session carrier present: {bool(request.cookies.get(self.session_name) or request.headers.get(self.session_name))}")

        try:
            response = await call_next(request)
        except Exception as exc:
            # Logged with its traceback by the error handler
            logger.debug(f"UNEXPECTED_EXCEPTION: {type(exc).__name__}: {exc} for {request.method} {request.url.path}")
            raise

        logger.debug(f"RESPONSE: Status {response.status_code}")
        if response.status_code >= 500 and not request_failed(request):
            logger.error(f"ERROR_RESPONSE: Status {response.status_code} for {request.method} {request.url.path}")
        elif response.status_code >= 400:
            logger.info(f"ERROR_RESPONSE: Status {response.status_code} for {request.method} {request.url.path}")

        return response
