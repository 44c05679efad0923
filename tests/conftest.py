"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import http.client
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator, Dict, Generator, List, Optional, Set

from prometheus_client import CollectorRegistry

from katsubushi_exporter.client.stats_client import StatsClient
from katsubushi_exporter.metrics.gauges import GaugeRegistry
from katsubushi_exporter.network.http_server import MetricsHTTPServer
from katsubushi_exporter.protocol.stats import StatsParser


SAMPLE_REPLY = (
    b"STAT pid 4242\r\n"
    b"STAT version 1.2.3\r\n"
    b"STAT uptime 100\r\n"
    b"STAT time 1700000000\r\n"
    b"STAT curr_connections 3\r\n"
    b"STAT total_connections 17\r\n"
    b"STAT cmd_get 250\r\n"
    b"STAT get_hits 240\r\n"
    b"STAT get_misses 10\r\n"
    b"END\r\n"
)


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Fake katsubushi
# ============================================================================

class FakeKatsubushi:
    """
    In-process stand-in for a katsubushi server.

    Reads one command line per connection and answers with `reply`.
    With `hang=True` it reads the command and never answers.

    Attributes:
        reply: Bytes written back to each client
        commands: Raw command lines received, in order
        connections: Number of accepted connections
        hangups: Number of connections the client closed after the reply
    """

    def __init__(self, reply: bytes = SAMPLE_REPLY):
        self.reply = reply
        self.hang = False
        self.commands: List[bytes] = []
        self.connections = 0
        self.hangups = 0
        self.port: Optional[int] = None
        self._server: Optional[asyncio.Server] = None
        self._handlers: Set[asyncio.Task] = set()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._handlers.add(asyncio.current_task())
        self.connections += 1
        try:
            command = await reader.readline()
            self.commands.append(command)
            if self.hang:
                await asyncio.Event().wait()
            writer.write(self.reply)
            await writer.drain()
            # EOF here means the client closed its side
            await reader.read()
            self.hangups += 1
        except ConnectionResetError:
            self.hangups += 1
        finally:
            writer.close()
            self._handlers.discard(asyncio.current_task())

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, '127.0.0.1', 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        for task in list(self._handlers):
            task.cancel()
        if self._handlers:
            await asyncio.gather(*self._handlers, return_exceptions=True)
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None


@pytest_asyncio.fixture
async def katsubushi() -> AsyncGenerator[FakeKatsubushi, None]:
    """Start a fake katsubushi on a free port."""
    fake = FakeKatsubushi()
    await fake.start()

    yield fake

    await fake.stop()


@pytest.fixture
def stats_client(katsubushi: FakeKatsubushi) -> StatsClient:
    """A StatsClient pointed at the fake katsubushi with a short deadline."""
    return StatsClient(host='127.0.0.1', port=katsubushi.port, timeout=1.0)


@pytest.fixture
def unused_port() -> int:
    """A port nothing is listening on."""
    return find_free_port()


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> StatsParser:
    """Create a StatsParser instance."""
    return StatsParser()


# ============================================================================
# Metrics Fixtures
# ============================================================================

@pytest.fixture
def gauges() -> GaugeRegistry:
    """Gauges in a private registry, without process metrics."""
    return GaugeRegistry(registry=CollectorRegistry())


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def http_server(gauges: GaugeRegistry) -> Generator[MetricsHTTPServer, None, None]:
    """
    Create and start an HTTP server for testing.

    This fixture:
    1. Binds a MetricsHTTPServer on a random free port
    2. Serves it in its background thread
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = MetricsHTTPServer(gauges, host='127.0.0.1', port=0, read_timeout=0.5)
    srv.start()

    yield srv

    srv.stop()


class HTTPResponse:
    """Status, lower-cased headers and body of one response."""

    def __init__(self, status: int, headers: Dict[str, str], body: bytes):
        self.status = status
        self.headers = headers
        self.body = body

    @property
    def text(self) -> str:
        return self.body.decode()


class HTTPClient:
    """
    Helper class for testing the HTTP server.

    Usage:
        response = http_client.get("/metrics")
        assert response.status == 200
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port

    def request(self, method: str, path: str, headers: Dict[str, str] = None) -> HTTPResponse:
        conn = http.client.HTTPConnection(self.host, self.port, timeout=5.0)
        try:
            conn.request(method, path, headers=headers or {})
            response = conn.getresponse()
            return HTTPResponse(
                response.status,
                {name.lower(): value for name, value in response.getheaders()},
                response.read(),
            )
        finally:
            conn.close()

    def get(self, path: str, headers: Dict[str, str] = None) -> HTTPResponse:
        return self.request("GET", path, headers)

    def send_raw(self, raw: bytes) -> bytes:
        """Send raw bytes and read until the server closes the connection."""
        with socket.create_connection((self.host, self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def http_client(http_server: MetricsHTTPServer) -> HTTPClient:
    """Client for the running HTTP server."""
    return HTTPClient('127.0.0.1', http_server.bound_port)


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
