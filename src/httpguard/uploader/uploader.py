import logging
import os
from typing import Optional

from humanfriendly import parse_size
from starlette.datastructures import UploadFile
from starlette.requests import Request

from httpguard.cache import Queue
from httpguard.sniff import SNIFF_LENGTH, detect_mime, mime_equals_any
from .naming import absolute_url, normalize_path, numbered_file, timestamped_file
from .options import UploaderOptions

logger = logging.getLogger('httpguard.uploader')

CHUNK_SIZE = 1024 * 1024


class UploadConflictError(FileExistsError):
    """Raised when the destination of an upload already exists"""
    pass


async def form_file(request: Request, name: str) -> Optional[UploadFile]:
    """
    Return the uploaded file of a form field.

    A missing field, or a field holding a plain value, yields None.
    """
    form = await request.form()
    value = form.get(name)
    if isinstance(value, UploadFile):
        return value
    return None


class Uploader:
    """
    Handles one uploaded file: validation, saving under a generated name, deletion.

    The file may be None when the client did not submit one; every operation
    is then a no-op and validations return False.
    """

    def __init__(self, root: str, file: Optional[UploadFile], options: Optional[UploaderOptions] = None):
        self.options = options or UploaderOptions()
        self.file = file
        self.root = root.strip()
        self.saved = False
        self.name = ""

        if file is not None:
            filename = file.filename or ""
            if self.options.numbered:
                self.name = numbered_file(self.root, filename)
            else:
                self.name = timestamped_file(filename)

    @classmethod
    async def from_request(
        cls,
        request: Request,
        field: str,
        root: str,
        options: Optional[UploaderOptions] = None,
    ) -> "Uploader":
        return cls(root, await form_file(request, field), options)

    def is_nil(self) -> bool:
        return self.file is None

    def size(self) -> int:
        if self.file is None:
            return 0
        if self.file.size is not None:
            return self.file.size
        position = self.file.file.tell()
        self.file.file.seek(0, os.SEEK_END)
        size = self.file.file.tell()
        self.file.file.seek(position)
        return size

    def validate_size(self, min_size: str, max_size: str) -> bool:
        """
        Check the file size lies within [min_size, max_size].

        Sizes use binary multiples: "1KB" is 1024 bytes.
        """
        if self.is_nil():
            return False
        minimum = parse_size(min_size, binary=True)
        maximum = parse_size(max_size, binary=True)
        return minimum <= self.size() <= maximum

    async def validate_mime(self, *mimes: str) -> bool:
        """
        Check the sniffed content type against the allowed types.

        Binary formats come from filetype. UTF-8 text is reported as
        application/json, text/xml, image/svg+xml or text/html when its
        leading markup says so, and as text/plain otherwise (CSV included).
        """
        if self.is_nil():
            return False
        await self.file.seek(0)
        head = await self.file.read(SNIFF_LENGTH)
        await self.file.seek(0)
        return mime_equals_any(detect_mime(head), mimes)

    def path(self) -> str:
        if self.is_nil():
            return ""
        return normalize_path(self.root, self.name)

    def url(self) -> str:
        if self.is_nil():
            return ""
        return absolute_url(self.options.prefix, self.path())

    async def save(self) -> None:
        if self.is_nil() or self.saved:
            return

        dest = self.path()
        if self.root:
            os.makedirs(self.root, exist_ok=True)

        try:
            handle = open(dest, "xb")
        except FileExistsError as e:
            raise UploadConflictError(f"{dest} file exists") from e

        try:
            with handle:
                await self.file.seek(0)
                while chunk := await self.file.read(CHUNK_SIZE):
                    handle.write(chunk)
        except Exception:
            os.remove(dest)
            raise

        self.saved = True
        logger.debug(f"Upload {self.file.filename} saved to {dest}")

    def delete(self) -> None:
        if self.is_nil() or not self.saved:
            return
        try:
            os.remove(self.path())
        except FileNotFoundError:
            pass

    async def safe_delete(self) -> None:
        """Delete the file, parking its path on the queue if that fails."""
        try:
            self.delete()
        except OSError as e:
            if self.options.queue is None:
                logger.warning(f"Failed to delete upload {self.path()}: {e}")
                return
            logger.info(f"Queueing {self.path()} for deferred deletion: {e}")
            await self.options.queue.push(self.path())


async def drain_delete_queue(queue: Queue, limit: int = 100) -> int:
    """
    Retry deletions parked by safe_delete.

    Paths that still cannot be removed go back on the queue. Returns the
    number of paths removed or found already gone.
    """
    removed = 0
    retry = []
    for _ in range(limit):
        path = await queue.pull()
        if path is None:
            break
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Deferred deletion of {path} failed again: {e}")
            retry.append(path)
            continue
        removed += 1

    for path in retry:
        await queue.push(path)
    return removed
