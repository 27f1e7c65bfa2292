"""Main connection acceptance loop."""

import logging
import socket
import threading

from fileserver.bootstrap.config import ServerConfig
from fileserver.bootstrap.socket_factory import create_server_socket
from fileserver.domain.correlation_id import module_logger
from fileserver.lifecycle.state import ServerLifecycle
from fileserver.transport.context import WorkerContext
from fileserver.transport.worker import handle_client

ACCEPT_LOGGER = module_logger("transport.accept")


def _spawn_worker(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    handler_context: WorkerContext,
) -> threading.Thread:
    """Start a dedicated thread for a newly accepted connection."""
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, handler_context),
        daemon=False,
    )
    if handler_context.lifecycle is not None:
        handler_context.lifecycle.register_worker(thread)
    thread.start()
    return thread


def serve_forever(
    server_socket: socket.socket, config: ServerConfig, lifecycle: ServerLifecycle
) -> None:
    """Accept connections on ``server_socket`` until a stop is requested."""
    handler_context = WorkerContext(config=config, lifecycle=lifecycle)
    try:
        while not lifecycle.should_stop():
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            _spawn_worker(client_socket, client_address, handler_context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "grace_seconds": config.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(config.shutdown_grace_seconds)
        ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})


def run_server(config: ServerConfig, lifecycle: ServerLifecycle) -> None:
    """Create the listening socket and serve until the lifecycle says stop."""
    server_socket = create_server_socket(config.host, config.port)
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": config.host,
            "port": server_socket.getsockname()[1],
            "document_root": config.document_root.as_posix(),
        },
    )
    serve_forever(server_socket, config, lifecycle)
