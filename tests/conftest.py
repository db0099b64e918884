"""
pytest configuration and fixtures.
"""

import shutil
import socket
import subprocess
import threading
from pathlib import Path
from typing import Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyhttpd import FileServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/readme.txt HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def served_root(tmp_path: Path) -> Path:
    """
    A small tree to serve:

        root/
        ├── hello.txt
        ├── page.html
        ├── photo.png
        ├── archive.bin
        ├── my file+1.txt
        ├── ..hidden
        ├── site/            (has index.html)
        │   └── index.html
        └── docs/            (no index.html)
            ├── b.txt
            ├── a.txt
            ├── zeta/
            └── alpha/
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "hello.txt").write_bytes(b"hello world\n")
    (root / "page.html").write_bytes(b"<html><body>page</body></html>")
    (root / "photo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(range(256)))
    (root / "archive.bin").write_bytes(b"\x00\x01\x02\x03")
    (root / "my file+1.txt").write_bytes(b"spaces and plus")
    (root / "..hidden").write_bytes(b"dot dot hidden")

    site = root / "site"
    site.mkdir()
    (site / "index.html").write_bytes(b"<html><body>site index</body></html>")

    docs = root / "docs"
    docs.mkdir()
    (docs / "b.txt").write_bytes(b"b")
    (docs / "a.txt").write_bytes(b"a")
    (docs / "zeta").mkdir()
    (docs / "alpha").mkdir()

    return root


@pytest.fixture(scope="session")
def tls_cert(tmp_path_factory) -> Path:
    """Self-signed certificate with its key in one PEM (needs the openssl CLI)."""
    openssl = shutil.which("openssl")
    if openssl is None:
        pytest.skip("openssl CLI not available")

    directory = tmp_path_factory.mktemp("tls")
    cert, key = directory / "cert.pem", directory / "key.pem"
    subprocess.run(
        [
            openssl, "req", "-x509", "-newkey", "rsa:2048", "-nodes",
            "-keyout", str(key), "-out", str(cert),
            "-days", "1", "-subj", "/CN=localhost",
        ],
        check=True,
        capture_output=True,
    )

    bundle = directory / "server.pem"
    bundle.write_bytes(cert.read_bytes() + key.read_bytes())
    return bundle


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ServerRunner:
    """Runs a FileServer in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self.port = server.config.port
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self, timeout: float = 5.0):
        """Stop the server and wait for run() to return."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()


def make_config(root: Path, port: int, **overrides) -> ServerConfig:
    """Test config: loopback, fast shutdown polling, a read timeout."""
    options = dict(
        root_directory=str(root),
        host="127.0.0.1",
        port=port,
        timeout=5.0,
        accept_poll_interval=0.05,
        shutdown_grace_period=2.0,
    )
    options.update(overrides)
    return ServerConfig(**options)


@pytest.fixture
def running_server(served_root: Path, free_port: int) -> Generator[ServerRunner, None, None]:
    """A FileServer serving ``served_root`` on a free loopback port."""
    runner = ServerRunner(FileServer(make_config(served_root, free_port)))
    runner.start()

    yield runner

    runner.stop()


def raw_request(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send ``data`` and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def http_get(port: int, path: str, headers: str = "") -> Tuple[bytes, bytes]:
    """GET ``path``; returns (header block without the blank line, body)."""
    request = f"GET {path} HTTP/1.1\r\nHost: localhost\r\n{headers}\r\n".encode("utf-8")
    response = raw_request(port, request)
    head, _, body = response.partition(b"\r\n\r\n")
    return head, body


def header_value(head: bytes, name: str) -> Optional[str]:
    """Look up a header in a raw header block."""
    for line in head.decode("latin-1").split("\r\n")[1:]:
        key, _, value = line.partition(": ")
        if key == name:
            return value
    return None
