"""HTTP input/output: request parsing and response serialization."""

import logging
import socket
import urllib.parse
from typing import BinaryIO

from fileserver.bootstrap.config import MAX_BODY_BYTES
from fileserver.domain.correlation_id import module_logger
from fileserver.domain.http_types import HttpRequest, HttpResponse

IO_LOGGER = module_logger("io")

CRLF = "\r\n"
HEADER_SEPARATOR = ": "
CONTENT_LENGTH = "Content-Length"
MAX_LINE_BYTES = 65536


class RequestParseError(ValueError):
    """Base class for requests that cannot be parsed; no response is sent."""


class InvalidRequestLine(RequestParseError):
    """The request line is not valid UTF-8 or does not hold exactly three tokens."""


class InvalidPathEncoding(RequestParseError):
    """The request target does not percent-decode to valid UTF-8."""


class InvalidHeader(RequestParseError):
    """A header line is malformed or Content-Length is unusable."""


class InvalidBody(RequestParseError):
    """The request body is not valid UTF-8."""


def parse_request_line(request_line: str) -> tuple[str, str, str]:
    """Split the request line into method, decoded path and version."""
    tokens = request_line.split()
    if len(tokens) != 3:
        raise InvalidRequestLine(f"Expected 3 tokens, got {len(tokens)}")
    method, raw_path, version = tokens
    try:
        path = urllib.parse.unquote(raw_path, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        raise InvalidPathEncoding(raw_path) from exc
    return method, path, version


def parse_header_line(line: str) -> tuple[str, str]:
    """Split one header line on ": " into exactly a name and a value."""
    fields = line.split(HEADER_SEPARATOR)
    if len(fields) != 2:
        raise InvalidHeader(line)
    return fields[0], fields[1]


def determine_content_length(
    headers: dict[str, str], max_body_bytes: int = MAX_BODY_BYTES
) -> int:
    """Return the declared body length, or 0 when no Content-Length was sent."""
    header_value = headers.get(CONTENT_LENGTH)
    if header_value is None:
        return 0
    if not (header_value.isascii() and header_value.isdigit()):
        raise InvalidHeader(f"Invalid Content-Length {header_value!r}")
    content_length = int(header_value)
    if content_length > max_body_bytes:
        raise InvalidHeader(f"Content-Length {content_length} exceeds limit")
    return content_length


def _read_text_line(reader: BinaryIO, error: type[RequestParseError]) -> str:
    raw_line = reader.readline(MAX_LINE_BYTES + 1)
    if len(raw_line) > MAX_LINE_BYTES:
        raise error(f"Line longer than {MAX_LINE_BYTES} bytes")
    try:
        return raw_line.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise error("Line is not valid UTF-8") from exc


def parse_request(
    reader: BinaryIO, max_body_bytes: int = MAX_BODY_BYTES
) -> HttpRequest:
    """Read exactly one request from a buffered binary stream.

    Only the bytes belonging to the request are consumed: the request line,
    the header block up to its blank line, and Content-Length body bytes.
    A body shorter than declared is accepted as-is.
    """
    method, path, version = parse_request_line(
        _read_text_line(reader, InvalidRequestLine)
    )

    headers: dict[str, str] = {}
    while True:
        line = _read_text_line(reader, InvalidHeader).strip()
        if not line:
            break
        name, value = parse_header_line(line)
        headers[name] = value

    body = b""
    content_length = determine_content_length(headers, max_body_bytes)
    if content_length:
        body = reader.read(content_length) or b""
        try:
            body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidBody("Body is not valid UTF-8") from exc

    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Parsed request",
            extra={
                "event": "request_parsed",
                "method": method,
                "route": path,
                "bytes_in": len(body),
            },
        )
    return HttpRequest(method, path, version, headers, body)


def receive_request(
    client_socket: socket.socket, max_body_bytes: int = MAX_BODY_BYTES
) -> HttpRequest:
    """Parse a single request straight off a connected socket."""
    with client_socket.makefile("rb") as reader:
        return parse_request(reader, max_body_bytes)


def serialize_response(response: HttpResponse) -> bytes:
    """Render the status line, headers, blank line and raw body."""
    lines = [response.status_line]
    lines.extend(
        f"{name}{HEADER_SEPARATOR}{value}" for name, value in response.headers.items()
    )
    head = CRLF.join(lines) + CRLF + CRLF
    return head.encode("utf-8") + response.body


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Serialize and send the HTTP response over the socket."""
    client_socket.sendall(serialize_response(response))
    IO_LOGGER.debug(
        "Sent response",
        extra={
            "event": "response_written",
            "status_code": response.status_code,
            "bytes_out": len(response.body),
        },
    )
