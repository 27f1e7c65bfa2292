"""In-memory HTTP message types shared by the parser, handlers and serializer."""

from dataclasses import dataclass, field

HTTP_VERSION = "HTTP/1.1"


@dataclass(frozen=True)
class HttpRequest:
    """A parsed request.

    Header names keep the exact case sent by the client and a repeated
    header keeps only its last value; lookups must use the exact name.
    """

    method: str
    path: str
    version: str
    headers: dict[str, str]
    body: bytes = b""


@dataclass
class HttpResponse:
    """A response waiting to be serialized onto the wire."""

    status_code: int
    reason: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = HTTP_VERSION

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status_code} {self.reason}"
