"""Pure HTTP response builders."""

from fileserver.domain.http_types import HttpResponse

HTML_CONTENT_TYPE = "text/html"


def _status_response(status_code: int, reason: str) -> HttpResponse:
    return HttpResponse(status_code, reason, {"Connection": "close"})


def with_body(response: HttpResponse, content_type: str, body: bytes) -> HttpResponse:
    """Attach a body and keep Content-Type and Content-Length in step with it."""
    response.body = body
    response.headers["Content-Type"] = content_type
    response.headers["Content-Length"] = str(len(body))
    return response


def ok_response(content_type: str, body: bytes) -> HttpResponse:
    """Return a 200 OK response carrying the given payload."""
    return with_body(_status_response(200, "OK"), content_type, body)


def html_response(document: str) -> HttpResponse:
    """Return a 200 OK response for a rendered HTML document."""
    return ok_response(HTML_CONTENT_TYPE, document.encode("utf-8"))


def bad_request_response() -> HttpResponse:
    return _status_response(400, "Bad Request")


def not_found_response() -> HttpResponse:
    return _status_response(404, "Not Found")


def internal_error_response() -> HttpResponse:
    return _status_response(500, "Internal Server Error")


def not_implemented_response() -> HttpResponse:
    """Produce a 501 response for methods other than GET."""
    return _status_response(501, "Not Implemented")
