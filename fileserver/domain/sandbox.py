"""Filesystem sandbox utilities for safe path resolution."""

from pathlib import Path
from typing import Optional, Union

StrPath = Union[str, Path]


class PathRejected(Exception):
    """Raised when a request path is missing or escapes the document root.

    Both cases are reported identically so a client cannot tell a
    forbidden path from a nonexistent one.
    """


def is_within(target: Path, root: Path) -> bool:
    """Return True when ``target`` is ``root`` or lies underneath it."""
    return target == root or root in target.parents


def resolve_request_path(
    request_path: str,
    document_root: StrPath,
    base_directory: Optional[StrPath] = None,
) -> Path:
    """Map a decoded request path onto a canonical path inside the document root.

    The URL space is rooted at ``base_directory`` (the working directory by
    default): a single leading ``/`` is stripped and the remainder is joined
    onto it. The target has to exist, since canonicalization follows
    symlinks and collapses ``..`` against the real filesystem.
    """
    base = Path(base_directory) if base_directory is not None else Path.cwd()
    relative_part = request_path[1:] if request_path.startswith("/") else request_path

    try:
        root = Path(document_root).resolve(strict=True)
        target = (base / relative_part).resolve(strict=True)
    except (OSError, RuntimeError, ValueError) as exc:
        raise PathRejected(request_path) from exc

    if not is_within(target, root):
        raise PathRejected(request_path)
    return target
