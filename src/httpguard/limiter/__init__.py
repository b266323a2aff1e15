"""Cache backed fixed window rate limiting."""

from .options import LimiterOptions
from .middleware import RateLimitMiddleware, LIMIT_REMAIN_HEADER, LIMIT_UNTIL_HEADER, format_duration

__all__ = [
    "LimiterOptions",
    "RateLimitMiddleware",
    "LIMIT_REMAIN_HEADER",
    "LIMIT_UNTIL_HEADER",
    "format_duration",
]
