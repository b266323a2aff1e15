"""
Content-Type gates for routes.

Each factory returns a FastAPI dependency:

    @router.post("/items", dependencies=[Depends(json_only())])

A rejected request raises HTTP 406, or the exception built by on_fail.
"""

from typing import Callable, Optional

from fastapi import HTTPException, Request, status

FailFactory = Callable[[Request], Exception]

JSON = "application/json"
XML = "application/xml"
TEXT_XML = "text/xml"
FORM = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"


def is_valid_content(content_type: str, *valids: str) -> bool:
    """Case insensitive prefix match, tolerating parameters such as the multipart boundary."""
    content_type = content_type.strip().lower()
    return any(content_type.startswith(valid.lower()) for valid in valids)


def _gate(accept: Callable[[str], bool], on_fail: Optional[FailFactory]):
    async def dependency(request: Request) -> None:
        if accept(request.headers.get("content-type", "")):
            return
        if on_fail is not None:
            raise on_fail(request)
        raise HTTPException(status_code=status.HTTP_406_NOT_ACCEPTABLE, detail="Not Acceptable")

    return dependency


def json_only(on_fail: Optional[FailFactory] = None):
    return _gate(lambda content_type: content_type == JSON, on_fail)


def xml_only(on_fail: Optional[FailFactory] = None):
    return _gate(lambda content_type: content_type in (XML, TEXT_XML), on_fail)


def form_only(on_fail: Optional[FailFactory] = None):
    return _gate(lambda content_type: content_type in (FORM, MULTIPART), on_fail)


def multipart_only(on_fail: Optional[FailFactory] = None):
    return _gate(lambda content_type: is_valid_content(content_type, MULTIPART), on_fail)
