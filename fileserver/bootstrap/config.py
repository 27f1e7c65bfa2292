"""Server configuration and CLI argument parsing."""

import argparse
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from fileserver.domain.sandbox import is_within


class ConfigError(Exception):
    """Raised when the server cannot be configured from the given inputs."""


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


DEFAULT_HOST = _env_str("FILESERVER_HOST", "127.0.0.1")
DEFAULT_PORT = _env_int("FILESERVER_PORT", 8080)
DEFAULT_DOCUMENT_ROOT = _env_str("FILESERVER_DOCUMENT_ROOT", ".")
DEFAULT_BASE_DIRECTORY = os.getenv("FILESERVER_BASE_DIRECTORY")
MAX_BODY_BYTES = _env_int("FILESERVER_MAX_BODY_BYTES", 5 * 1024 * 1024)
DEFAULT_SOCKET_TIMEOUT = _env_int("FILESERVER_SOCKET_TIMEOUT", 60)
DEFAULT_CGI_TIMEOUT = _env_int("FILESERVER_CGI_TIMEOUT", 30)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("FILESERVER_SHUTDOWN_GRACE_SECONDS", 30)

# Read from the working directory when --config is not given.
DEFAULT_CONFIG_FILE = "config.json"

# Keys understood in a JSON config file; static_dir is the historical name
# of the document root.
CONFIG_FILE_KEYS = {
    "host": "host",
    "port": "port",
    "static_dir": "document_root",
    "document_root": "document_root",
    "base_directory": "base_directory",
    "max_body_bytes": "max_body_bytes",
    "socket_timeout": "socket_timeout",
    "cgi_timeout": "cgi_timeout",
    "shutdown_grace_seconds": "shutdown_grace_seconds",
}


@dataclass(frozen=True)
class ServerConfig:
    """Read-only settings built once at startup and handed to every component."""

    host: str
    port: int
    document_root: Path
    base_directory: Path
    max_body_bytes: int = MAX_BODY_BYTES
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT
    cgi_timeout: float = DEFAULT_CGI_TIMEOUT
    shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration.

    Flags left at their defaults are reported as ``None`` so that values
    from a ``--config`` file can fill them in; see ``build_server_config``.
    """
    parser = argparse.ArgumentParser(description="Static file and CGI server")
    parser.add_argument(
        "--config",
        help=(
            "Path to a JSON configuration file "
            f"(default: ./{DEFAULT_CONFIG_FILE} if present)"
        ),
    )
    parser.add_argument("--host", help=f"Bind address (default: {DEFAULT_HOST})")
    parser.add_argument(
        "--port", type=int, help=f"Listening port (default: {DEFAULT_PORT})"
    )
    parser.add_argument(
        "--document-root",
        help=(
            "Directory whose contents may be served, relative to the base "
            f"directory (default: {DEFAULT_DOCUMENT_ROOT})"
        ),
    )
    parser.add_argument(
        "--base-directory",
        help="Directory request paths are resolved against (default: working directory)",
    )
    parser.add_argument(
        "--max-body-bytes",
        type=int,
        help="Largest accepted Content-Length in bytes",
    )
    parser.add_argument(
        "--socket-timeout",
        type=float,
        help="Client socket timeout in seconds",
    )
    parser.add_argument(
        "--cgi-timeout",
        type=float,
        help="Seconds a CGI script may run before it is killed",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=float,
        help="Grace period in seconds for in-flight connections on shutdown",
    )
    default_log_level = os.getenv("FILESERVER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("FILESERVER_LOG_DESTINATION", "stdout")
    default_log_format = os.getenv("FILESERVER_LOG_FORMAT", "json").lower()
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=default_log_format,
        choices=["json", "text"],
        type=str.lower,
    )
    return parser.parse_args(argv)


def load_config_file(path: str) -> dict[str, Any]:
    """Read a JSON configuration file into ServerConfig field names."""
    try:
        with open(path, "r", encoding="utf-8") as config_file:
            raw = json.load(config_file)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Malformed config file {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        field_name = CONFIG_FILE_KEYS.get(key)
        if field_name is not None:
            values[field_name] = value
    return values


def config_file_path(args: argparse.Namespace) -> Optional[str]:
    """Return the config file to load: --config, else ./config.json when it exists."""
    if args.config:
        return args.config
    if os.path.isfile(DEFAULT_CONFIG_FILE):
        return DEFAULT_CONFIG_FILE
    return None


def _pick(cli_value: Optional[Any], file_values: dict[str, Any], key: str, default):
    if cli_value is not None:
        return cli_value
    return file_values.get(key, default)


def build_server_config(args: argparse.Namespace) -> ServerConfig:
    """Merge CLI flags, config file values and environment defaults."""
    config_path = config_file_path(args)
    file_values = load_config_file(config_path) if config_path else {}

    host = _pick(args.host, file_values, "host", DEFAULT_HOST)
    port = _pick(args.port, file_values, "port", DEFAULT_PORT)
    document_root = _pick(
        args.document_root, file_values, "document_root", DEFAULT_DOCUMENT_ROOT
    )
    base_directory = _pick(
        args.base_directory, file_values, "base_directory", DEFAULT_BASE_DIRECTORY
    )

    if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
        raise ConfigError(f"Port must be an integer between 0 and 65535, got {port!r}")

    try:
        base = Path(base_directory).resolve(strict=True) if base_directory else Path.cwd()
        root = (base / document_root).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise ConfigError(f"Document root {document_root!r} does not exist") from exc
    if not root.is_dir():
        raise ConfigError(f"Document root {root} is not a directory")
    if not is_within(root, base):
        raise ConfigError(
            f"Document root {root} must be inside the base directory {base}"
        )

    try:
        max_body_bytes = int(
            _pick(args.max_body_bytes, file_values, "max_body_bytes", MAX_BODY_BYTES)
        )
        socket_timeout = float(
            _pick(
                args.socket_timeout, file_values, "socket_timeout", DEFAULT_SOCKET_TIMEOUT
            )
        )
        cgi_timeout = float(
            _pick(args.cgi_timeout, file_values, "cgi_timeout", DEFAULT_CGI_TIMEOUT)
        )
        shutdown_grace_seconds = float(
            _pick(
                args.shutdown_grace_seconds,
                file_values,
                "shutdown_grace_seconds",
                DEFAULT_SHUTDOWN_GRACE_SECONDS,
            )
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric setting: {exc}") from exc
    if max_body_bytes < 0:
        raise ConfigError("max_body_bytes must not be negative")

    return ServerConfig(
        host=str(host),
        port=port,
        document_root=root,
        base_directory=base,
        max_body_bytes=max_body_bytes,
        socket_timeout=socket_timeout,
        cgi_timeout=cgi_timeout,
        shutdown_grace_seconds=shutdown_grace_seconds,
    )
