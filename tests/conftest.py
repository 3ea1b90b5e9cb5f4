"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from routelistener import HTTPListener, ListenerConfig
from routelistener.http import HTTPRequest, ResponseContext


class FakeConnection:
    """Stands in for core.Connection in writer tests: records what is sent."""

    def __init__(self, fail_after: Optional[int] = None):
        self.chunks: List[bytes] = []
        self.close_calls = 0
        self.fail_after = fail_after

    def send(self, data: bytes) -> bool:
        if self.fail_after is not None and len(self.chunks) >= self.fail_after:
            return False
        self.chunks.append(bytes(data))
        return True

    def close(self) -> None:
        self.close_calls += 1

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)

    @property
    def head(self) -> bytes:
        return self.data.split(b"\r\n\r\n", 1)[0]

    @property
    def body(self) -> bytes:
        return self.data.split(b"\r\n\r\n", 1)[1]

    @property
    def status_line(self) -> str:
        return self.head.split(b"\r\n", 1)[0].decode("latin-1")

    def header(self, name: str) -> Optional[str]:
        for line in self.head.split(b"\r\n")[1:]:
            key, _, value = line.decode("latin-1").partition(":")
            if key.lower() == name.lower():
                return value.strip()
        return None


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def response(fake_connection: FakeConnection) -> ResponseContext:
    return ResponseContext(fake_connection)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


def make_request(path: str, method: str = "GET") -> HTTPRequest:
    """Helper to create a request without going through the parser."""
    return HTTPRequest(method=method, path=path, client_address=("127.0.0.1", 50000))


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def raw_request(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes, return everything the server writes until it closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        if data:
            s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def http_get(port: int, path: str) -> Tuple[int, dict, bytes]:
    """GET ``path`` and return (status, headers, body)."""
    data = raw_request(
        port,
        f"GET {path} HTTP/1.1\r\nHost: 127.0.0.1:{port}\r\n\r\n".encode(),
    )
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


class TestServer:
    """Test server helper that runs the listener in a background thread."""

    def __init__(self, listener: HTTPListener):
        self.listener = listener
        self.port = listener.config.port
        self._thread: threading.Thread = None
        self.error: Optional[BaseException] = None

    def _run(self):
        try:
            self.listener.run()
        except BaseException as e:
            self.error = e

    def start(self):
        """Start the listener and wait until it accepts connections."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        for _ in range(50):  # 5 seconds max
            if self.listener.is_running and self.listener.is_listening:
                return
            if self.error is not None:
                raise self.error
            time.sleep(0.1)

        raise RuntimeError("Listener failed to start")

    def get(self, path: str) -> Tuple[int, dict, bytes]:
        return http_get(self.port, path)

    def send(self, data: bytes) -> bytes:
        return raw_request(self.port, data)

    def stop(self):
        """Stop the listener."""
        self.listener.request_shutdown()
        self.listener.wait_for_shutdown(timeout=5.0)

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def listener_config(free_port: int) -> ListenerConfig:
    """Test listener configuration on a free loopback port."""
    return ListenerConfig(
        host="127.0.0.1",
        port=free_port,
        timeout=2.0,
        log_level="WARNING",
    )


@pytest.fixture
def make_server(listener_config: ListenerConfig) -> Generator:
    """
    Factory fixture: ``make_server(routes)`` starts a listener with the
    given route mapping and stops it after the test.
    """
    servers = []

    def factory(routes=None, **overrides) -> TestServer:
        for key, value in overrides.items():
            setattr(listener_config, key, value)
        server = TestServer(HTTPListener(listener_config, routes))
        server.start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.stop()
