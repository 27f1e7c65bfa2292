"""Listening socket creation."""

import socket

ACCEPT_POLL_SECONDS = 0.5


def create_server_socket(host: str, port: int) -> socket.socket:
    """Bind a listening socket whose accept() wakes up periodically.

    The accept timeout lets the accept loop notice a stop request without
    needing a connection to arrive first.
    """
    server_socket = socket.create_server(
        (host, port), reuse_port=hasattr(socket, "SO_REUSEPORT")
    )
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    return server_socket
