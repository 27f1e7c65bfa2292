"""Request dispatch: method check, path resolution and content-type routing."""

import logging

from fileserver.bootstrap.config import ServerConfig
from fileserver.domain.correlation_id import module_logger
from fileserver.domain.http_types import HttpRequest, HttpResponse
from fileserver.domain.response_builders import (
    bad_request_response,
    not_found_response,
    not_implemented_response,
)
from fileserver.domain.sandbox import PathRejected, resolve_request_path
from fileserver.handlers.cgi_handler import is_cgi_request, run_cgi_script
from fileserver.handlers.file_handler import directory_response, file_response

ROUTER_LOGGER = module_logger("pipeline.router")

SUPPORTED_METHOD = "GET"


def route_request(request: HttpRequest, config: ServerConfig) -> HttpResponse:
    """Route the request to the appropriate handler and return a response."""
    if request.method != SUPPORTED_METHOD:
        ROUTER_LOGGER.warning(
            "Method not implemented",
            extra={
                "event": "method_not_implemented",
                "method": request.method,
                "route": request.path,
            },
        )
        return not_implemented_response()

    try:
        resolved_path = resolve_request_path(
            request.path, config.document_root, config.base_directory
        )
    except PathRejected:
        ROUTER_LOGGER.warning(
            "Path rejected",
            extra={"event": "path_rejected", "route": request.path},
        )
        return not_found_response()

    if resolved_path.is_dir():
        if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            ROUTER_LOGGER.debug(
                "Directory requested",
                extra={"event": "directory_requested", "route": request.path},
            )
        return directory_response(
            resolved_path, config.document_root, config.base_directory
        )

    if resolved_path.is_file():
        if is_cgi_request(request.path):
            return run_cgi_script(resolved_path, config.cgi_timeout)
        return file_response(resolved_path)

    ROUTER_LOGGER.warning(
        "Unsupported file type",
        extra={
            "event": "unsupported_file_type",
            "route": request.path,
            "path": resolved_path.as_posix(),
        },
    )
    return bad_request_response()
