"""Shared fixtures for unit tests."""

import logging
from pathlib import Path

import pytest

from fileserver.bootstrap.config import ServerConfig


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("fileserver")
    old_propagate = logger.propagate
    old_level = logger.level
    old_handlers = list(logger.handlers)
    logger.propagate = True
    yield
    for handler in logger.handlers:
        if handler not in old_handlers:
            handler.close()
    logger.handlers[:] = old_handlers
    logger.setLevel(old_level)
    logger.propagate = old_propagate


@pytest.fixture()
def docroot(tmp_path: Path) -> Path:
    """A resolved, empty directory used as both base directory and document root."""
    root = tmp_path / "site"
    root.mkdir()
    return root.resolve()


@pytest.fixture()
def server_config(docroot: Path) -> ServerConfig:
    """Configuration serving ``docroot`` with URL paths rooted at it."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        document_root=docroot,
        base_directory=docroot,
        cgi_timeout=5,
        socket_timeout=5,
    )
