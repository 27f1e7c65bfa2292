"""Command-line entry point for the file server."""

import signal
import sys
from typing import Optional

from fileserver.bootstrap.config import (
    ConfigError,
    build_server_config,
    config_file_path,
    parse_cli_args,
)
from fileserver.bootstrap.logging_setup import configure_logging
from fileserver.domain.correlation_id import module_logger
from fileserver.lifecycle.state import ServerLifecycle
from fileserver.transport.accept_loop import run_server

SERVER_LOGGER = module_logger("server")


def main(argv: Optional[list[str]] = None) -> int:
    """Configure logging, build the configuration once and serve until signalled."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination, args.log_format == "json")

    try:
        config = build_server_config(args)
    except ConfigError as error:
        SERVER_LOGGER.critical(
            "Invalid configuration: %s",
            error,
            extra={"event": "config_error", "error_type": type(error).__name__},
        )
        return 1

    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal", extra={"event": "signal", "signal": signum}
        )
        lifecycle.request_stop()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting file server",
        extra={
            "event": "server_starting",
            "host": config.host,
            "port": config.port,
            "document_root": config.document_root.as_posix(),
            "base_directory": config.base_directory.as_posix(),
            "config_file": config_file_path(args) or "-",
            "socket_timeout": config.socket_timeout,
            "cgi_timeout": config.cgi_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
        },
    )
    try:
        run_server(config, lifecycle)
    except OSError as error:
        SERVER_LOGGER.critical(
            "Cannot bind listening socket",
            extra={
                "event": "bind_failed",
                "host": config.host,
                "port": config.port,
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        return 1
    return 0
