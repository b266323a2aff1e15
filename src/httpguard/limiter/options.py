from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, List, Optional, Union

from starlette.requests import Request
from starlette.responses import Response

# Receives the time left until the window reopens
FailHandler = Callable[[Request, timedelta], Union[Response, Awaitable[Response]]]
SkipPredicate = Callable[[Request], bool]
KeysFunc = Callable[[Request], List[str]]


@dataclass
class LimiterOptions:
    key: str = "limiter"
    max_attempts: int = 100
    ttl: timedelta = timedelta(minutes=1)
    # Do not count requests that ended with an error
    skip_fail: bool = False
    on_fail: Optional[FailHandler] = None
    skip: Optional[SkipPredicate] = None
    # Extra key fragments, e.g. a route name or user id
    keys: Optional[KeysFunc] = None

    def __post_init__(self):
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if self.ttl.total_seconds() <= 0:
            raise ValueError("ttl must be positive")
