"""Integration tests for startup validation and graceful shutdown."""

from __future__ import annotations

import json
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import requests

from tests.utils.http import (
    parse_http_response,
    read_until_closed,
    reserve_port,
    wait_for_port,
)

if TYPE_CHECKING:
    from tests.conftest import ServerProcessInfo

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals required"),
]


def _run_main(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, str(SERVER_ENTRYPOINT), *args],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=10,
        check=False,
    )


def test_missing_document_root_exits_nonzero(tmp_path: Path) -> None:
    """Startup fails fast when the document root does not exist."""

    result = _run_main(
        "--base-directory", str(tmp_path), "--document-root", "missing", "--port", "0"
    )

    assert result.returncode == 1
    assert "config_error" in result.stdout


def test_port_in_use_exits_nonzero(tmp_path: Path) -> None:
    """Failing to bind is reported and ends the process."""

    with socket.create_server(("127.0.0.1", 0)) as blocker:
        port = blocker.getsockname()[1]
        result = _run_main(
            "--base-directory", str(tmp_path), "--host", "127.0.0.1", "--port", str(port)
        )

    assert result.returncode == 1
    assert "bind_failed" in result.stdout


def test_config_file_drives_startup(tmp_path: Path) -> None:
    """A JSON config file with static_dir is enough to serve."""

    public = tmp_path / "public"
    public.mkdir()
    (public / "index.txt").write_text("from config")
    port = reserve_port()
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "host": "127.0.0.1",
                "port": port,
                "static_dir": "public",
                "base_directory": str(tmp_path),
            }
        )
    )

    with subprocess.Popen(
        [sys.executable, str(SERVER_ENTRYPOINT), "--config", str(config_path)],
        cwd=PROJECT_ROOT,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    ) as process:
        try:
            wait_for_port("127.0.0.1", port)
            response = requests.get(f"http://127.0.0.1:{port}/public/index.txt", timeout=5)
        finally:
            process.terminate()
            process.wait(timeout=5)

    assert response.status_code == 200
    assert response.text == "from config"


@pytest.mark.parametrize("signum", [signal.SIGTERM, signal.SIGINT])
def test_signal_stops_server_cleanly(
    server_process: "ServerProcessInfo", signum: int
) -> None:
    """SIGTERM and SIGINT both end the process with status 0."""

    process = server_process["process"]
    process.send_signal(signum)

    assert process.wait(timeout=5) == 0


def test_in_flight_request_completes_during_shutdown(
    server_process: "ServerProcessInfo", site_dir: Path
) -> None:
    """A request already being handled is answered before exit."""

    (site_dir / "slow.cgi").write_text("#!/bin/sh\nsleep 1\nprintf done\n")
    (site_dir / "slow.cgi").chmod(0o755)
    process = server_process["process"]

    with socket.create_connection(
        (server_process["host"], server_process["port"]), timeout=5
    ) as sock:
        sock.sendall(b"GET /slow.cgi HTTP/1.1\r\n\r\n")
        time.sleep(0.3)
        process.send_signal(signal.SIGTERM)
        response = parse_http_response(read_until_closed(sock))

    assert response.status_code == 200
    assert response.body == b"done"
    assert process.wait(timeout=5) == 0


def test_new_connections_refused_after_shutdown(
    server_process: "ServerProcessInfo",
) -> None:
    """Once stopped, the listening port is closed."""

    process = server_process["process"]
    process.send_signal(signal.SIGTERM)
    process.wait(timeout=5)

    with pytest.raises(OSError):
        socket.create_connection(
            (server_process["host"], server_process["port"]), timeout=1
        )
