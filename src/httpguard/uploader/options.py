from dataclasses import dataclass
from typing import Optional

from httpguard.cache import Queue


@dataclass
class UploaderOptions:
    # Receives paths of files that could not be deleted; clean them up later
    queue: Optional[Queue] = None
    # Numbered (name-1.ext) instead of timestamped (name-<ns>.ext) file names
    numbered: bool = False
    # Path prefix removed when building the public URL
    prefix: str = ""

    def __post_init__(self):
        self.prefix = self.prefix.strip()
