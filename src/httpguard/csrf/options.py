from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from starlette.requests import Request
from starlette.responses import Response

FailHandler = Callable[[Request], Union[Response, Awaitable[Response]]]
SkipPredicate = Callable[[Request], bool]


@dataclass
class CSRFOptions:
    header_name: str = "X-CSRF-Token"
    cookie_name: str = "csrf_token"
    field_name: str = "csrf_token"
    # Secure flag of the mirrored token cookie
    secure: bool = False
    # Mirror freshly minted tokens into a response header and cookie
    mirror: bool = True
    on_fail: Optional[FailHandler] = None
    skip: Optional[SkipPredicate] = None
