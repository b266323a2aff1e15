"""
Typed HTTP errors carrying call-site diagnostics.

The file, line and body snapshot are meant for the logs only; the terminal
error handler never renders them to the client.
"""

import inspect
import json
from typing import Any, Dict, Optional

from humanfriendly import format_size
from starlette.datastructures import UploadFile
from starlette.requests import Request

from .sniff import detect_upload_mime


class HttpError(Exception):
    """An error with an HTTP status, a client-facing message and diagnostics."""

    def __init__(
        self,
        message: str,
        status: int = 500,
        file: str = "",
        line: int = 0,
        body: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.file = file
        self.line = line
        self.body = body

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"HttpError(status={self.status}, message={self.message!r}, file={self.file!r}, line={self.line})"


def _caller(depth: int = 2) -> tuple[str, int]:
    frame = inspect.currentframe()
    try:
        for _ in range(depth):
            if frame is None:
                break
            frame = frame.f_back
        if frame is None:
            return "", 0
        return frame.f_code.co_filename, frame.f_lineno
    finally:
        del frame


def new_error(message: str, status: int = 500) -> HttpError:
    """Create an HttpError recording the file and line of the caller."""
    file, line = _caller()
    return HttpError(message, status=status, file=file, line=line)


async def new_form_error(message: str, request: Optional[Request], status: int = 500) -> HttpError:
    """
    Create an HttpError recording the caller location and a snapshot of the request body.

    Multipart fields are stored as form.<name>, files as file.<name> with a
    "<filename> [<size>] (<mime>)" description per file.
    """
    # Resolve the caller before the first await; afterwards f_back points into the event loop
    file, line = _caller()
    body = await snapshot_body(request) if request is not None else None
    return HttpError(message, status=status, file=file, line=line, body=body)


def describe_upload(upload: UploadFile) -> str:
    size = upload.size
    if size is None:
        position = upload.file.tell()
        upload.file.seek(0, 2)
        size = upload.file.tell()
        upload.file.seek(position)
    try:
        mime = detect_upload_mime(upload)
    except OSError:
        mime = "?"
    return f"{upload.filename} [{format_size(size, binary=True)}] ({mime})"


async def snapshot_body(request: Request) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("multipart/form-data"):
        try:
            form = await request.form()
        except Exception as e:
            body["form"] = str(e)
            return body

        for key in dict.fromkeys(form.keys()):
            values = form.getlist(key)
            fields = [v for v in values if not isinstance(v, UploadFile)]
            files = [v for v in values if isinstance(v, UploadFile)]
            if len(fields) == 1:
                body["form." + key] = fields[0]
            elif fields:
                body["form." + key] = fields
            if files:
                body["file." + key] = [describe_upload(f) for f in files]
        return body

    if content_type.startswith("application/json"):
        raw = await request.body()
        try:
            form = json.loads(raw) if raw else {}
        except ValueError as e:
            body["form"] = str(e)
            return body
        if not isinstance(form, dict):
            body["form"] = "JSON body is not an object"
            return body
    elif content_type.startswith("application/x-www-form-urlencoded"):
        parsed = await request.form()
        form = {}
        for key in dict.fromkeys(parsed.keys()):
            values = parsed.getlist(key)
            form[key] = values[0] if len(values) == 1 else values
    else:
        body["form"] = "Unprocessable Entity"
        return body

    if not form:
        body["form"] = None
    else:
        for key, value in form.items():
            body["form." + key] = value
    return body
