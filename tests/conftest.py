"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import socket
from contextlib import closing
from typing import AsyncGenerator, Generator, List

import pytest
import pytest_asyncio

from fake_memcached import FakeMemcachedServer
from mcclient.client import MemcachedClient
from mcclient.network.connection import Session
from mcclient.protocol.encoder import CommandEncoder
from mcclient.protocol.parser import ResponseParser


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Scripted socket fixtures
# ============================================================================

class ScriptedSocket:
    """
    Stand-in for a connected socket.

    Each sendall() queues the next scripted reply; recv() hands it out in
    pieces of at most the requested size. An empty queue reads as a peer close.
    """

    def __init__(self, replies: List[bytes]):
        self.replies = list(replies)
        self.sent: List[bytes] = []
        self.pending = bytearray()
        self.closed = False
        self.timeout = "unset"

    def settimeout(self, timeout) -> None:
        self.timeout = timeout

    def sendall(self, data: bytes) -> None:
        if self.closed:
            raise BrokenPipeError(32, "Broken pipe")
        self.sent.append(data)
        if self.replies:
            self.pending.extend(self.replies.pop(0))

    def recv(self, size: int) -> bytes:
        chunk = bytes(self.pending[:size])
        del self.pending[:size]
        return chunk

    def close(self) -> None:
        self.closed = True


class RecordingConnector:
    """Connector handing out one ScriptedSocket and counting open calls."""

    def __init__(self, sock: ScriptedSocket):
        self.sock = sock
        self.calls = []

    def __call__(self, address, timeout=None):
        self.calls.append((address, timeout))
        return self.sock


@pytest.fixture
def scripted():
    """
    Factory building a client wired to a scripted socket.

    Usage:
        def test_something(scripted):
            client, sock, connector = scripted(b"STORED\\r\\n")
    """
    def factory(*replies: bytes, **kwargs):
        sock = ScriptedSocket(list(replies))
        connector = RecordingConnector(sock)
        client = MemcachedClient("cache.test", 11211, session=Session(connector=connector), **kwargs)
        return client, sock, connector
    return factory


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def encoder() -> CommandEncoder:
    """Create a CommandEncoder instance."""
    return CommandEncoder()


@pytest.fixture
def parser() -> ResponseParser:
    """Create a ResponseParser instance."""
    return ResponseParser()


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[FakeMemcachedServer, None]:
    """
    Start a fake memcached daemon on a free port for the duration of a test.
    """
    srv = FakeMemcachedServer(host='127.0.0.1', port=server_port)
    await srv.start()

    yield srv

    await srv.stop()


@pytest.fixture
def client(server: FakeMemcachedServer) -> Generator[MemcachedClient, None, None]:
    """
    A client pointed at the fake daemon, closed after the test.

    The client blocks, so async tests call it through asyncio.to_thread.
    """
    c = MemcachedClient('127.0.0.1', server.port, timeout=5.0)

    yield c

    c.close()


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
