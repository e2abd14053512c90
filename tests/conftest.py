"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pagepool import ServerConfig, StaticServer
from pagepool.core import Connection
from pagepool.http import RouteTable


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small site root:

        pages/index.html        "hi"
        pages/404.html          "missing"
        components/button.html  "<button>ok</button>"
        src/secret.html         (reserved folder, never routed)
        notes.txt               (root file, never routed)
    """
    pages = tmp_path / "pages"
    pages.mkdir()
    (pages / "index.html").write_text("hi")
    (pages / "404.html").write_text("missing")

    components = tmp_path / "components"
    components.mkdir()
    (components / "button.html").write_text("<button>ok</button>")

    src = tmp_path / "src"
    src.mkdir()
    (src / "secret.html").write_text("secret")

    (tmp_path / "notes.txt").write_text("notes")
    return tmp_path


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def exchange(sock: socket.socket, payload: bytes, half_close: bool = True) -> bytes:
    """Send payload on a client socket and read until the server closes."""
    sock.sendall(payload)
    if half_close:
        sock.shutdown(socket.SHUT_WR)

    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def socket_pair() -> Generator[tuple, None, None]:
    """
    A connected (client socket, server Connection) pair, no network needed.
    """
    client, server = socket.socketpair()
    client.settimeout(5.0)
    conn = Connection(socket=server, address=("127.0.0.1", 50000), timeout=5.0)

    yield client, conn

    conn.close()
    client.close()


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def request(self, payload: bytes, half_close: bool = False) -> bytes:
        """Send raw bytes on a fresh connection and return the full response."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            return exchange(sock, payload, half_close=half_close)

    def get(self, path: str) -> bytes:
        return self.request(f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode())

    def stop(self):
        """Stop the server and wait for the pool to drain."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(site: Path) -> Generator[TestServer, None, None]:
    """A running server over the `site` fixture, 4 workers, OS-assigned port."""
    config = ServerConfig(
        host="127.0.0.1",
        port=0,
        workers=4,
        timeout=5.0,
        root_dir=str(site),
        log_level="WARNING",
    )
    test_srv = TestServer(StaticServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def route_table(site: Path) -> RouteTable:
    return RouteTable.from_directory(site)


@pytest.fixture
def start_server() -> Generator:
    """Factory: start_server(config) runs a server and stops it at teardown."""
    started = []

    def start(config: ServerConfig) -> TestServer:
        test_srv = TestServer(StaticServer(config))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()
