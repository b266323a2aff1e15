"""
Environment driven configuration.

Variables are read from the process environment after loading a .env file:
session (SESSION_*), cookies (SECURE_COOKIES), rate limiting (RATE_LIMIT_*),
uploads (UPLOAD_*) and CORS (CORS_*).
"""
import os
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Tuple

from dotenv import load_dotenv

from .limiter import LimiterOptions
from .session import CookieParameters, SessionOptions

load_dotenv()

logger = logging.getLogger('httpguard.config')


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name} '{raw}', using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using {default}")
        return default
    return value


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def get_session_options() -> SessionOptions:
    ttl = timedelta(seconds=_env_int("SESSION_TTL_SECONDS", 86400))
    name = os.getenv("SESSION_NAME", "session")

    if _env_bool("SESSION_HEADER_MODE", False):
        return SessionOptions.with_header(name, ttl=ttl)

    # For development, allow insecure cookies over HTTP
    cookie = CookieParameters(
        secure=_env_bool("SECURE_COOKIES", True),
        samesite="lax",
        httponly=True,
        path="/",
    )
    return SessionOptions.with_cookie(name, cookie, ttl=ttl)


def get_limiter_options() -> LimiterOptions:
    return LimiterOptions(
        max_attempts=_env_int("RATE_LIMIT_ATTEMPTS", 100),
        ttl=timedelta(seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 60)),
    )


def secure_cookies() -> bool:
    return _env_bool("SECURE_COOKIES", True)


@dataclass
class UploadSettings:
    root: str = "uploads"
    url_prefix: str = ""


def get_upload_settings() -> UploadSettings:
    return UploadSettings(
        root=os.getenv("UPLOAD_ROOT", "uploads"),
        url_prefix=os.getenv("UPLOAD_URL_PREFIX", ""),
    )


def get_cors_config() -> Tuple[list[str], list[str], list[str]]:
    """
    Parse and return CORS configuration from environment variables.

    Returns:
        Tuple containing (origins, methods, headers) lists
    """
    cors_allowed_origins = _env_list("CORS_ALLOWED_ORIGINS", "")

    # Development fallback
    if not cors_allowed_origins:
        logger.warning("CORS_ALLOWED_ORIGINS not set, using development defaults")
        cors_allowed_origins = [
            "http://localhost:5174",
            "http://localhost:3000",
            "http://127.0.0.1:5174",
            "http://127.0.0.1:3000"
        ]

    cors_allowed_methods = _env_list("CORS_ALLOWED_METHODS", "GET,POST,PUT,PATCH,DELETE,OPTIONS")
    cors_allowed_headers = _env_list("CORS_ALLOWED_HEADERS", "Content-Type,Authorization,X-CSRF-Token")

    return cors_allowed_origins, cors_allowed_methods, cors_allowed_headers


__all__ = [
    'get_session_options',
    'get_limiter_options',
    'secure_cookies',
    'UploadSettings',
    'get_upload_settings',
    'get_cors_config',
]
