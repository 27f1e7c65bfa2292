"""Worker thread logic for handling individual client connections."""

import socket
import threading
import time
from typing import Optional

from fileserver.domain.correlation_id import connection_scope, module_logger
from fileserver.domain.http_types import HttpRequest
from fileserver.lifecycle.state import ServerLifecycle
from fileserver.pipeline.io import RequestParseError, receive_request, send_response
from fileserver.pipeline.router import route_request
from fileserver.transport.context import WorkerContext

WORKER_LOGGER = module_logger("transport.worker")


def _read_request(
    client_socket: socket.socket, context: WorkerContext
) -> Optional[HttpRequest]:
    """Parse the connection's only request.

    Malformed input is answered with silence: the caller closes the
    connection without writing a response.
    """
    try:
        return receive_request(client_socket, context.config.max_body_bytes)
    except RequestParseError as error:
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "error_type": type(error).__name__},
        )
        return None


def _close_connection(client_socket: socket.socket) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()
    WORKER_LOGGER.debug("Socket closed", extra={"event": "socket_closed"})


def _serve_one(client_socket: socket.socket, context: WorkerContext) -> None:
    started = time.monotonic()
    client_socket.settimeout(context.config.socket_timeout)
    request = _read_request(client_socket, context)
    if request is None:
        return

    WORKER_LOGGER.info(
        "Request received",
        extra={
            "event": "request_received",
            "method": request.method,
            "route": request.path,
        },
    )
    response = route_request(request, context.config)
    send_response(client_socket, response)
    WORKER_LOGGER.info(
        "Response sent",
        extra={
            "event": "response_sent",
            "status_code": response.status_code,
            "bytes_out": len(response.body),
            "duration_ms": round((time.monotonic() - started) * 1000, 2),
        },
    )


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Serve exactly one request on the socket, then close it.

    Every record logged while the connection is open carries its
    correlation ID and ``client`` address.
    """
    lifecycle: Optional[ServerLifecycle] = context.lifecycle
    current_thread = threading.current_thread()

    with connection_scope(f"{client_address[0]}:{client_address[1]}"):
        try:
            _serve_one(client_socket, context)
        except (ConnectionError, TimeoutError, OSError) as error:
            WORKER_LOGGER.error(
                "Error handling client connection",
                extra={"event": "connection_error", "error_type": type(error).__name__},
            )
        except Exception as error:  # pylint: disable=broad-except
            WORKER_LOGGER.error(
                "Unexpected error in worker",
                extra={"event": "worker_error", "error_type": type(error).__name__},
                exc_info=True,
            )
        finally:
            _close_connection(client_socket)
            if lifecycle is not None:
                lifecycle.cleanup_worker(current_thread)
