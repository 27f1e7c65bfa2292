"""Per-connection log context: a correlation ID and the peer address.

Each accepted connection runs inside ``connection_scope``; every record
logged through a ``module_logger`` adapter while the scope is open carries
the same ``correlation_id`` and ``client``.
"""

import contextvars
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, MutableMapping, Optional

ROOT_LOGGER_NAME = "fileserver"
NO_CONNECTION = "-"


@dataclass(frozen=True)
class ConnectionTag:
    correlation_id: str
    client: str = NO_CONNECTION


_connection_var: contextvars.ContextVar[Optional[ConnectionTag]] = contextvars.ContextVar(
    "connection_tag", default=None
)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Return the ID of the connection being served by this thread, if any."""
    tag = _connection_var.get()
    return tag.correlation_id if tag is not None else None


def set_correlation_id(correlation_id: str, client: str = NO_CONNECTION) -> None:
    _connection_var.set(ConnectionTag(correlation_id, client))


def clear_correlation_id() -> None:
    _connection_var.set(None)


@contextmanager
def connection_scope(client: str) -> Iterator[str]:
    """Tag everything logged inside the block with a fresh correlation ID.

    The previous tag, if any, is restored on exit.
    """
    tag = ConnectionTag(generate_correlation_id(), client)
    token = _connection_var.set(tag)
    try:
        yield tag.correlation_id
    finally:
        _connection_var.reset(token)


def component_name(logger_name: str) -> str:
    """Strip the package prefix: ``fileserver.transport.worker`` -> ``transport.worker``."""
    prefix = f"{ROOT_LOGGER_NAME}."
    if logger_name.startswith(prefix):
        return logger_name[len(prefix) :]
    return logger_name


class CorrelationLoggerAdapter(logging.LoggerAdapter):
    """Stamps the connection tag and component onto every record."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        tag = _connection_var.get()
        if tag is None:
            extra["correlation_id"] = NO_CONNECTION
        else:
            extra["correlation_id"] = tag.correlation_id
            if tag.client != NO_CONNECTION:
                extra.setdefault("client", tag.client)
        extra["component"] = component_name(self.logger.name)
        kwargs["extra"] = extra
        return msg, kwargs


def module_logger(name: str) -> CorrelationLoggerAdapter:
    """Return the adapter for ``fileserver.<name>``."""
    return CorrelationLoggerAdapter(logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}"), {})
