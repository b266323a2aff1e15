"""Content based MIME detection for uploaded files."""

import json
import re
from typing import Iterable

import filetype
from starlette.datastructures import UploadFile

# filetype needs at most this many leading bytes for any of its matchers
SNIFF_LENGTH = 8192

_HTML_MARKUP = re.compile(rb"<(!doctype\s+html|html|head|body|script|iframe|div|p|a|table|title|style)[\s>/]", re.IGNORECASE)


def detect_text_mime(head: bytes) -> str:
    """
    Classify UTF-8 text by its leading markup.

    JSON is only recognised when the whole head parses, so documents cut at
    the sniff boundary stay text/plain. CSV has no marker and is text/plain.
    """
    text = head.lstrip(b"\xef\xbb\xbf \t\r\n")
    lowered = text[:512].lower()

    if text[:1] in (b"{", b"["):
        try:
            json.loads(text)
        except ValueError:
            pass
        else:
            return "application/json"
    if lowered.startswith(b"<?xml"):
        return "image/svg+xml" if b"<svg" in lowered else "text/xml"
    if lowered.startswith(b"<svg"):
        return "image/svg+xml"
    if _HTML_MARKUP.match(text):
        return "text/html"
    return "text/plain"


def detect_mime(head: bytes) -> str:
    kind = filetype.guess(head)
    if kind is not None:
        return kind.mime
    if b"\x00" in head:
        return "application/octet-stream"
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte sequence may be cut at the sniff boundary
        if len(head) < SNIFF_LENGTH or e.start < len(head) - 3:
            return "application/octet-stream"
    return detect_text_mime(head)


def detect_upload_mime(upload: UploadFile) -> str:
    """
    Sniff an upload without consuming it.

    Reads through the underlying spooled file and rewinds it afterwards.
    """
    position = upload.file.tell()
    try:
        upload.file.seek(0)
        head = upload.file.read(SNIFF_LENGTH)
    finally:
        upload.file.seek(position)
    return detect_mime(head)


def _base_type(mime: str) -> str:
    return mime.split(";", 1)[0].strip().lower()


def mime_equals_any(mime: str, candidates: Iterable[str]) -> bool:
    """Compare MIME types ignoring case and parameters."""
    base = _base_type(mime)
    return any(base == _base_type(candidate) for candidate in candidates)
