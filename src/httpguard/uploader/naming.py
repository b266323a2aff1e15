import os
import posixpath
import time


def _split(filename: str) -> tuple[str, str]:
    # Drop any client supplied directories
    name = os.path.basename(filename.replace("\\", "/")).strip() or "file"
    stem, ext = os.path.splitext(name)
    return stem or "file", ext


def timestamped_file(filename: str) -> str:
    stem, ext = _split(filename)
    return f"{stem}-{time.time_ns()}{ext}"


def numbered_file(root: str, filename: str) -> str:
    """Return the first <stem>-<n><ext> (n >= 1) that does not exist under root."""
    stem, ext = _split(filename)
    n = 1
    while True:
        name = f"{stem}-{n}{ext}"
        if not os.path.exists(os.path.join(root, name)):
            return name
        n += 1


def normalize_path(root: str, name: str) -> str:
    root = root.replace("\\", "/")
    path = posixpath.join(root, name) if root else name
    return posixpath.normpath(path)


def absolute_url(prefix: str, path: str) -> str:
    """Build a root relative URL from a file path, removing prefix from its start."""
    path = path.replace("\\", "/")
    prefix = prefix.replace("\\", "/").strip("/")
    while path.startswith("./"):
        path = path[2:]
    path = path.lstrip("/")
    if prefix and (path == prefix or path.startswith(prefix + "/")):
        path = path[len(prefix):]
    return "/" + path.lstrip("/")
