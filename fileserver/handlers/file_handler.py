"""Static file and directory handlers."""

import logging
import mimetypes
from pathlib import Path

from fileserver.domain.correlation_id import module_logger
from fileserver.domain.http_types import HttpResponse
from fileserver.domain.response_builders import (
    html_response,
    internal_error_response,
    ok_response,
)
from fileserver.handlers.directory_listing import render_directory_listing

FILE_LOGGER = module_logger("handlers.file")

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# mimetypes reports compression suffixes as an encoding of the inner name;
# the bytes on disk are the compressed stream, so type them as such.
ENCODING_CONTENT_TYPES = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "br": "application/x-brotli",
    "compress": "application/x-compress",
}


def content_type_for_path(filepath: Path) -> str:
    mime_type, encoding = mimetypes.guess_type(filepath.as_posix())
    if encoding is not None:
        return ENCODING_CONTENT_TYPES.get(encoding, DEFAULT_CONTENT_TYPE)
    return mime_type or DEFAULT_CONTENT_TYPE


def file_response(resolved_path: Path) -> HttpResponse:
    """Serve a regular file in full with a MIME type guessed from its extension.

    ``text/*`` content has to be valid UTF-8; anything else is sent as raw
    bytes.
    """
    mime_type = content_type_for_path(resolved_path)
    if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_LOGGER.debug(
            "File read started",
            extra={
                "event": "file_read_started",
                "path": resolved_path.as_posix(),
                "mime_type": mime_type,
            },
        )
    try:
        payload = resolved_path.read_bytes()
    except OSError as error:
        FILE_LOGGER.error(
            "Failed to read file",
            extra={
                "event": "file_read_failed",
                "path": resolved_path.as_posix(),
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        return internal_error_response()

    if mime_type.startswith("text/"):
        try:
            payload.decode("utf-8")
        except UnicodeDecodeError:
            FILE_LOGGER.error(
                "Text file is not valid UTF-8",
                extra={
                    "event": "file_decode_failed",
                    "path": resolved_path.as_posix(),
                    "mime_type": mime_type,
                },
            )
            return internal_error_response()

    FILE_LOGGER.info(
        "File served",
        extra={
            "event": "file_served",
            "path": resolved_path.as_posix(),
            "mime_type": mime_type,
            "bytes_out": len(payload),
        },
    )
    return ok_response(mime_type, payload)


def directory_response(
    resolved_path: Path, document_root: Path, base_directory: Path
) -> HttpResponse:
    """Render an index page for a directory, or 500 when it cannot be read."""
    try:
        document = render_directory_listing(resolved_path, document_root, base_directory)
    except (OSError, ValueError) as error:
        FILE_LOGGER.error(
            "Failed to list directory",
            extra={
                "event": "directory_list_failed",
                "path": resolved_path.as_posix(),
                "error_type": type(error).__name__,
            },
        )
        return internal_error_response()

    FILE_LOGGER.info(
        "Directory listed",
        extra={"event": "directory_listed", "path": resolved_path.as_posix()},
    )
    return html_response(document)
