import logging as log
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from httpguard.cache import Cache
from httpguard.csrf import CSRFMiddleware, CSRFOptions
from httpguard.error_handler import ErrorHandler, setup_error_handler
from httpguard.limiter import LimiterOptions, RateLimitMiddleware
from httpguard.request_logging import RequestResponseLoggingMiddleware
from httpguard.session import SessionMiddleware, SessionOptions

logger = log.getLogger('httpguard.service.middleware')


def setup_middleware(
    app: FastAPI,
    cache: Cache,
    session_options: SessionOptions,
    limiter_options: LimiterOptions,
    csrf_options: Optional[CSRFOptions],
    cors_allowed_origins: list[str],
    cors_allowed_methods: list[str],
    cors_allowed_headers: list[str],
) -> ErrorHandler:
    """
    Setup all middleware for the FastAPI application.

    Middleware are added in reverse order (last added = first executed).
    Current order of execution:
    1. CORSMiddleware (handles CORS)
    2. ErrorHandlingMiddleware (renders every error that escapes the chain)
    3. RequestResponseLoggingMiddleware (logs requests/responses)
    4. RateLimitMiddleware (per client fixed window)
    5. SessionMiddleware (loads the session, saves it after the response)
    6. CSRFMiddleware (validates state changing requests against the session token)

    Args:
        app: FastAPI application instance
        cache: Backend shared by sessions and the rate limiter
        session_options: Session carrier and lifetime
        limiter_options: Rate limit window
        csrf_options: CSRF token sources, None for defaults
        cors_allowed_origins: List of allowed CORS origins
        cors_allowed_methods: List of allowed HTTP methods
        cors_allowed_headers: List of allowed headers
    """
    # CSRF needs the session, so it sits inside the session middleware
    app.add_middleware(CSRFMiddleware, options=csrf_options)

    app.add_middleware(SessionMiddleware, cache=cache, options=session_options)

    app.add_middleware(RateLimitMiddleware, cache=cache, options=limiter_options)

    app.add_middleware(RequestResponseLoggingMiddleware, session_name=session_options.name)

    handler = setup_error_handler(app, codes=range(500, 600))

    # Setup CORS policy
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allowed_origins,
        allow_credentials=True,
        allow_methods=cors_allowed_methods,
        allow_headers=cors_allowed_headers,
    )

    logger.info(f"CORS configured with origins: {cors_allowed_origins}")
    logger.info(
        f"Rate limit: {limiter_options.max_attempts} requests per {limiter_options.ttl}, "
        f"session carrier: {'header' if session_options.header else 'cookie'} '{session_options.name}'"
    )
    return handler


__all__ = [
    'setup_middleware',
]
