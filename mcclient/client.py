"""
Memcached Client Module

The public client: encodes a command, writes it on the session's socket for
the configured endpoint, reads one response frame, classifies it and parses
it into a Result.

Hard failures raise (MemcachedConnectionError, ProtocolError, ...). Expected
negative outcomes (miss, not stored, exists, not found) never raise; they
come back as False / the get default, and as the code of the returned
Result.
"""

import logging
from typing import Any, Dict, Optional, Union

from .config.settings import settings
from .errors import MemcachedConnectionError, ProtocolError
from .network.connection import Session, read_response, send_request
from .protocol.commands import CommandType, ItemMetadata, ResponseCode, Result
from .protocol.encoder import CommandEncoder
from .protocol.parser import ResponseParser

logger = logging.getLogger(__name__)


class MemcachedClient:
    """
    A blocking client for the Memcached text protocol.

    Supports exactly three data operations: set, get and delete. One socket
    per (host, port) is opened lazily and reused for the lifetime of the
    client's session. Instances are not thread-safe; callers sharing one
    must serialize access.

    Usage:
        client = MemcachedClient("127.0.0.1")
        client.set("key", 523)
        client.get("key")        # -> 523
        client.delete("key")     # -> True

        # Preferred, closes the sockets automatically
        with MemcachedClient("127.0.0.1", 11211, timeout=2.0) as client:
            client.set("key", {"a": [1, 2]})

    Attributes:
        host: Daemon host
        port: Daemon port
        timeout: Connect timeout in seconds (None = no timeout)
        compression: zlib-compress large payloads
        session: The Session owning this client's sockets
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            timeout: Optional[float] = None,
            session_id: Optional[str] = None,
            compression: bool = False,
            session: Session = None,
    ):
        """
        Initialize the client. No connection is opened until the first operation.

        Args:
            host: Daemon host (default from settings)
            port: Daemon port (default from settings, 11211)
            timeout: Connect timeout in seconds (default from settings, none)
            session_id: Explicit session key for a freshly created session
            compression: Compress payloads of at least COMPRESS_MIN_LENGTH bytes
            session: Session to use instead of creating one
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.timeout = timeout if timeout is not None else settings.TIMEOUT
        self.compression = compression
        self.session = session if session is not None else Session(session_id=session_id)

        self.encoder = CommandEncoder(compression=compression)
        self.parser = ResponseParser()

        self._last_response = ResponseCode.SUCCESS

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def last_response(self) -> ResponseCode:
        """Code of the most recent operation on this client."""
        return self._last_response

    def close(self) -> None:
        """Close every socket of this client's session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def connect(self, host: str, port: int, timeout: Optional[float] = None):
        """
        Return the session's socket for (host, port), opening it if needed.

        Raises:
            MemcachedConnectionError: if the connection can not be opened
        """
        if timeout is None:
            timeout = self.timeout
        return self.session.connect(host, port, timeout)

    def send(self, command: str, request: bytes) -> Result:
        """
        Send an encoded request and parse its response.

        Args:
            command: Wire name of the command (set, get or delete)
            request: The encoded request bytes

        Returns:
            Result of the command

        Raises:
            UnsupportedCommandError: for any other command, before any I/O
            MemcachedConnectionError: if the socket can not be opened, written or read
            ProtocolError: if the daemon answers ERROR, CLIENT_ERROR or SERVER_ERROR
        """
        # Reset state, ensure clean start
        self._last_response = ResponseCode.SUCCESS

        command_type = CommandType.from_name(command)
        sock = self.connect(self.host, self.port)
        endpoint = (self.host, self.port)

        logger.debug(f"Sending {command_type.value} ({len(request)} bytes) to {self.endpoint}")
        try:
            send_request(sock, request, endpoint)
            frame = read_response(sock, endpoint)
        except (MemcachedConnectionError, ProtocolError):
            # Unread bytes may remain, the socket is out of step with the daemon now
            self.session.discard(self.host, self.port)
            self._last_response = ResponseCode.FAILURE
            raise

        code, message = self.parser.classify(frame)
        if code.is_error:
            self._last_response = code
            raise ProtocolError(message, command=command_type.value, endpoint=self.endpoint, code=code)

        result = self.parser.parse(command_type, frame)
        self._last_response = result.code
        return result

    # Result-returning operations

    def store(self, key: str, value: Any, exptime: int = 0) -> Result:
        """Store a value and return the full Result."""
        return self.send(CommandType.SET.value, self.encoder.build_set(key, value, exptime))

    def fetch(self, key: str) -> Result:
        """Fetch a key and return the full Result ({key: ItemMetadata} on a hit)."""
        return self.send(CommandType.GET.value, self.encoder.build_get(key))

    def remove(self, key: str) -> Result:
        """Delete a key and return the full Result."""
        return self.send(CommandType.DELETE.value, self.encoder.build_delete(key))

    # Public data operations

    def set(self, key: str, value: Any, exptime: int = 0) -> bool:
        """
        Store a value under key. Returns True if the daemon answered STORED.

        Args:
            key: The key
            value: str, int, float, bool, or None/bytes/lists/tuples/dicts of those
            exptime: Expiration in seconds or as a unix timestamp (0 = never)
        """
        return self.store(key, value, exptime).ok

    def get(
            self,
            key: str,
            with_metadata: bool = False,
            default: Any = None,
    ) -> Union[Any, Dict[str, ItemMetadata]]:
        """
        Get the value stored under key.

        Args:
            key: The key
            with_metadata: Return {key: ItemMetadata} instead of the bare value
            default: Returned on a miss

        Returns:
            The value, the metadata mapping, or default on a miss. Use fetch()
            or last_response to tell a stored None from a miss.
        """
        result = self.fetch(key)
        if not result.ok:
            return default
        if with_metadata:
            return result.value
        # single-key get, so the first entry is the only one
        return next(iter(result.value.values())).value

    def delete(self, key: str) -> bool:
        """Delete key. Returns True if the daemon answered DELETED."""
        return self.remove(key).ok
