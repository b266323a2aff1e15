from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Literal, Optional

from .generator import IdGenerator, uuid_generator


@dataclass
class CookieParameters:
    """Attributes of the cookie carrying the session id."""
    domain: Optional[str] = None
    path: str = "/"
    samesite: Literal["lax", "strict", "none"] = "lax"
    secure: bool = False
    httponly: bool = True
    # Overrides the expiry derived from the session TTL when set
    max_age: Optional[int] = None
    # Omit expiry entirely so the browser drops the cookie on close
    session_only: bool = False


@dataclass
class SessionOptions:
    ttl: timedelta = timedelta(hours=24)
    name: str = "session"
    header: bool = False
    cookie: CookieParameters = field(default_factory=CookieParameters)
    generator: IdGenerator = uuid_generator

    def __post_init__(self):
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("session carrier name must not be empty")
        if self.ttl.total_seconds() <= 0:
            raise ValueError("session ttl must be positive")

    @classmethod
    def with_header(
        cls,
        name: str,
        ttl: Optional[timedelta] = None,
        generator: Optional[Callable[[], str]] = None,
    ) -> "SessionOptions":
        """Carry the session id in a request/response header."""
        options = cls(name=name, header=True)
        if ttl is not None:
            options.ttl = ttl
        if generator is not None:
            options.generator = generator
        return options

    @classmethod
    def with_cookie(
        cls,
        name: str,
        cookie: Optional[CookieParameters] = None,
        ttl: Optional[timedelta] = None,
        generator: Optional[Callable[[], str]] = None,
    ) -> "SessionOptions":
        """Carry the session id in a cookie."""
        options = cls(name=name, header=False, cookie=cookie or CookieParameters())
        if ttl is not None:
            options.ttl = ttl
        if generator is not None:
            options.generator = generator
        return options
