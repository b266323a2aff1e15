import inspect
import logging
from datetime import timedelta
from typing import Optional

from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from httpguard.cache import Cache
from httpguard.error_handler import add_error_header
from httpguard.session.middleware import request_failed
from .options import LimiterOptions

logger = logging.getLogger('httpguard.limiter')

LIMIT_UNTIL_HEADER = "X-LIMIT-UNTIL"
LIMIT_REMAIN_HEADER = "X-LIMIT-REMAIN"


def format_duration(duration: timedelta) -> str:
    """Render a duration the way Go's time.Duration does, e.g. 1m30s or 250ms."""
    ms = int(round(duration.total_seconds() * 1000))
    if ms <= 0:
        return "0s"
    if ms < 1000:
        return f"{ms}ms"

    hours, rest = divmod(ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    if rest % 1000 == 0:
        seconds = str(rest // 1000)
    else:
        seconds = f"{rest / 1000:.3f}".rstrip("0")

    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed window rate limiting per client address and optional extra keys.

    Rejected requests get X-LIMIT-UNTIL with the time until the window
    reopens; accepted ones get X-LIMIT-REMAIN with the attempts left.
    """

    def __init__(self, app: ASGIApp, cache: Cache, options: Optional[LimiterOptions] = None):
        super().__init__(app)
        self.cache = cache
        self.options = options or LimiterOptions()

    def build_key(self, request: Request) -> str:
        key = f"{self.options.key}-{get_remote_address(request)}"
        if self.options.keys is not None:
            for fragment in self.options.keys(request):
                fragment = fragment.strip()
                if fragment:
                    key += "-" + fragment
        return key

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self.options.skip is not None and self.options.skip(request):
            return await call_next(request)

        limiter = self.cache.rate_limiter(self.build_key(request), self.options.max_attempts, self.options.ttl)

        if await limiter.must_lock():
            until = await limiter.available_in()
            logger.info(f"Rate limit exceeded for {limiter.key}, available in {until}")
            response = await self._fail(request, until)
            response.headers.append("Access-Control-Expose-Headers", LIMIT_UNTIL_HEADER)
            response.headers[LIMIT_UNTIL_HEADER] = format_duration(until)
            return response

        try:
            response = await call_next(request)
        except Exception:
            # Applied by the terminal error handler when it renders the response
            if not self.options.skip_fail:
                await limiter.hit()
            left = await limiter.retries_left()
            add_error_header(request, "Access-Control-Expose-Headers", LIMIT_REMAIN_HEADER)
            add_error_header(request, LIMIT_REMAIN_HEADER, str(left))
            raise

        if not self.options.skip_fail or not request_failed(request):
            await limiter.hit()

        left = await limiter.retries_left()
        response.headers.append("Access-Control-Expose-Headers", LIMIT_REMAIN_HEADER)
        response.headers[LIMIT_REMAIN_HEADER] = str(left)
        return response

    async def _fail(self, request: Request, until: timedelta) -> Response:
        if self.options.on_fail is not None:
            result = self.options.on_fail(request, until)
            if inspect.isawaitable(result):
                result = await result
            return result
        return Response(status_code=429)
