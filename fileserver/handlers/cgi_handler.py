"""CGI script execution: run the script, return whatever it wrote to stdout."""

import subprocess
import time
from pathlib import Path

from fileserver.domain.correlation_id import module_logger
from fileserver.domain.http_types import HttpResponse
from fileserver.domain.response_builders import (
    HTML_CONTENT_TYPE,
    internal_error_response,
    ok_response,
)

CGI_LOGGER = module_logger("handlers.cgi")

CGI_SUFFIX = ".cgi"


def is_cgi_request(request_path: str) -> bool:
    return request_path.endswith(CGI_SUFFIX)


def run_cgi_script(script_path: Path, timeout: float) -> HttpResponse:
    """Execute ``script_path`` and wrap its standard output as an HTML response.

    The script gets no arguments and only the server's own environment; its
    stderr is discarded and its exit status is ignored. Failing to start it,
    or it outliving ``timeout`` seconds, yields a 500.
    """
    started = time.monotonic()
    try:
        completed = subprocess.run(
            [str(script_path)],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        CGI_LOGGER.error(
            "CGI script timed out",
            extra={
                "event": "cgi_failed",
                "path": script_path.as_posix(),
                "error_type": "TimeoutExpired",
                "cgi_timeout": timeout,
            },
        )
        return internal_error_response()
    except OSError as error:
        CGI_LOGGER.error(
            "Failed to execute CGI script",
            extra={
                "event": "cgi_failed",
                "path": script_path.as_posix(),
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        return internal_error_response()

    CGI_LOGGER.info(
        "CGI script executed",
        extra={
            "event": "cgi_executed",
            "path": script_path.as_posix(),
            "bytes_out": len(completed.stdout),
            "duration_ms": round((time.monotonic() - started) * 1000, 2),
        },
    )
    return ok_response(HTML_CONTENT_TYPE, completed.stdout)
