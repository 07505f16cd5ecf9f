"""
Connection Module

Session-scoped socket cache and the blocking request/response I/O.

A Session maps a connection identifier (SHA-1 of "<host>.<port>") to one
open socket. The first request to an endpoint opens the socket; every later
request within the same session reuses it. Sockets are never health-checked:
a stale socket shows up as MemcachedConnectionError on the next write or read.
"""

import hashlib
import logging
import secrets
import socket
from typing import Callable, Dict, Optional, Tuple

from ..config.settings import settings
from ..errors import MemcachedConnectionError, ProtocolError
from ..protocol.framing import Frame, frame_length

logger = logging.getLogger(__name__)

Connector = Callable[..., socket.socket]


def connection_id(host: str, port: int) -> str:
    """Deterministic identifier of an endpoint."""
    return hashlib.sha1(f"{host}.{port}".encode("utf-8")).hexdigest()


class Session:
    """
    Owns the open sockets of one client.

    Attributes:
        session_id: Opaque key of this session (generated unless given)
        connector: Callable opening a socket, same signature as
            socket.create_connection; replaceable for tests
    """

    def __init__(self, session_id: Optional[str] = None, connector: Optional[Connector] = None):
        self.session_id = session_id if session_id is not None else secrets.token_hex(20)
        self.connector = connector if connector is not None else socket.create_connection
        self._connections: Dict[str, socket.socket] = {}

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def connect(self, host: str, port: int, timeout: Optional[float] = None) -> socket.socket:
        """
        Return the socket for (host, port), opening it on first use.

        Args:
            host: Daemon host name or address
            port: Daemon port
            timeout: Connect timeout in seconds (None = block until the OS gives up)

        Raises:
            MemcachedConnectionError: if the connection can not be opened
        """
        identifier = connection_id(host, port)

        sock = self._connections.get(identifier)
        if sock is not None:
            logger.debug(f"Reusing connection {identifier[:8]} to {host}:{port}")
            return sock

        try:
            sock = self.connector((host, port), timeout)
            # The timeout only bounds the connect, reads block without deadline
            sock.settimeout(None)
        except OSError as exc:
            logger.error(f"Could not connect to {host}:{port} (UUID: {identifier}): {exc}")
            raise MemcachedConnectionError(
                f'Error "{exc.errno}: {exc.strerror or exc}" while connecting to '
                f"Memcached on host: {host}:{port} (UUID: {identifier})",
                host=host,
                port=port,
                identifier=identifier,
            ) from exc

        logger.debug(f"Opened connection {identifier[:8]} to {host}:{port}")
        self._connections[identifier] = sock
        return sock

    def discard(self, host: str, port: int) -> None:
        """Close and forget the socket for (host, port), if any."""
        sock = self._connections.pop(connection_id(host, port), None)
        if sock is not None:
            sock.close()

    def close(self) -> None:
        """Close every socket of this session."""
        while self._connections:
            _, sock = self._connections.popitem()
            try:
                sock.close()
            except OSError as exc:
                logger.debug(f"Ignoring error while closing socket: {exc}")


def send_request(sock: socket.socket, request: bytes, endpoint: Tuple[str, int]) -> None:
    """Write a whole request to the socket."""
    host, port = endpoint
    try:
        sock.sendall(request)
    except OSError as exc:
        raise MemcachedConnectionError(
            f"Failed to send command to {host}:{port}: {exc}",
            host=host,
            port=port,
            identifier=connection_id(host, port),
        ) from exc


def read_response(
        sock: socket.socket,
        endpoint: Tuple[str, int],
        chunk_size: Optional[int] = None,
) -> Frame:
    """
    Read from the socket until the buffer holds one complete frame.

    Reads chunk_size bytes at a time and blocks until the terminator line
    arrives; there is no read deadline.

    Raises:
        MemcachedConnectionError: if the peer closes the connection or the
            read fails before a terminator line arrives
        ProtocolError: if a VALUE header or payload is malformed, or bytes
            arrive after the frame
    """
    host, port = endpoint
    chunk_size = chunk_size or settings.READ_CHUNK_SIZE
    buffer = bytearray()

    while True:
        length = frame_length(bytes(buffer))
        if length is not None:
            break

        try:
            chunk = sock.recv(chunk_size)
        except OSError as exc:
            raise MemcachedConnectionError(
                f"Connection to {host}:{port} lost while reading: {exc}",
                host=host,
                port=port,
                identifier=connection_id(host, port),
            ) from exc

        # an empty recv() means the server closed the connection
        if not chunk:
            raise MemcachedConnectionError(
                f"Server {host}:{port} closed the connection unexpectedly "
                f"after {len(buffer)} bytes.",
                host=host,
                port=port,
                identifier=connection_id(host, port),
            )
        buffer.extend(chunk)

    # A single request never gets more than one reply
    if length < len(buffer):
        raise ProtocolError(
            f"Unexpected {len(buffer) - length} bytes after response frame",
            endpoint=f"{host}:{port}",
        )

    raw = bytes(buffer[:length])
    logger.debug(f"Read {len(raw)} byte frame from {host}:{port}")
    return Frame.parse(raw)
