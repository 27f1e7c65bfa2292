"""HTML index pages for directories under the document root."""

import html
import os
from pathlib import Path, PurePath, PurePosixPath
from typing import Iterable

ALNUM_BYTES = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
)


def encode_segment(segment: str) -> str:
    """Percent-encode every byte of a path segment except ASCII letters and digits."""
    raw = os.fsencode(segment)
    return "".join(
        chr(byte) if byte in ALNUM_BYTES else f"%{byte:02X}" for byte in raw
    )


def url_path(parts: Iterable[str]) -> str:
    """Build an absolute URL path from unencoded path segments."""
    return "/" + "/".join(encode_segment(part) for part in parts)


def _extension(name: str) -> str:
    return PurePath(name).suffix[1:].lower()


def sort_directories(names: Iterable[str]) -> list[str]:
    return sorted(names, key=str.lower)


def sort_files(names: Iterable[str]) -> list[str]:
    """Order files by extension first, then by name, both case-insensitively."""
    return sorted(names, key=lambda name: (_extension(name), name.lower()))


def collect_entries(directory: Path) -> tuple[list[str], list[str]]:
    """Split a directory's entries into subdirectory and regular-file names.

    Symlinks are not followed, so links and special files are left out.
    """
    directories: list[str] = []
    files: list[str] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                directories.append(entry.name)
            elif entry.is_file(follow_symlinks=False):
                files.append(entry.name)
    return sort_directories(directories), sort_files(files)


def render_directory_listing(
    directory: Path, document_root: Path, base_directory: Path
) -> str:
    """Render a standalone HTML index for ``directory``.

    Links are absolute URL paths in the request path space, which is rooted
    at ``base_directory``. Raises OSError when the directory cannot be read.
    """
    relative = PurePosixPath(directory.relative_to(base_directory).as_posix())
    parts = [part for part in relative.parts if part != "."]
    display_path = html.escape("/" + "/".join(parts))
    directories, files = collect_entries(directory)

    lines = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="UTF-8">',
        f"<title>Directory listing for {display_path}</title>",
        "</head>",
        "<body>",
        f"<h1>Directory listing for {display_path}</h1>",
        "<hr>",
        "<pre>",
    ]

    if directory != document_root:
        lines.append(f'<a href="{url_path(parts[:-1])}">[Parent Directory]</a>')

    for name in directories:
        lines.append(
            f'<a href="{url_path([*parts, name])}">[DIR] {html.escape(name)}/</a>'
        )
    for name in files:
        lines.append(f'<a href="{url_path([*parts, name])}">{html.escape(name)}</a>')

    lines.extend(["</pre>", "<hr>", "</body>", "</html>"])
    return "\n".join(lines) + "\n"
