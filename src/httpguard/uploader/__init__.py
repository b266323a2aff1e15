"""Single file upload handling."""

from .options import UploaderOptions
from .uploader import Uploader, UploadConflictError, drain_delete_queue, form_file
from .naming import numbered_file, timestamped_file

__all__ = [
    "UploaderOptions",
    "Uploader",
    "UploadConflictError",
    "form_file",
    "drain_delete_queue",
    "numbered_file",
    "timestamped_file",
]
