"""
Command Encoder Module

Builds the exact request bytes for the three commands this client sends:

    set <key> <flags> <exptime> <bytes>\\r\\n<payload>\\r\\n
    get <key>\\r\\n
    delete <key>\\r\\n
"""

from typing import Any

from ..config.settings import settings
from ..errors import InvalidKeyError
from .commands import COMMAND_SEPARATOR, COMMAND_TERMINATOR, CommandType
from .serializer import Envelope, serialize


class CommandEncoder:
    """
    Encoder for the Memcached text protocol requests.

    Constraints:
        - Keys: 1 to MAX_KEY_LENGTH bytes of UTF-8, no whitespace or control characters
        - exptime: integer (0 = never expires, negative = expire immediately)
    """

    def __init__(self, compression: bool = False):
        self.compression = compression
        self.max_key_length = settings.MAX_KEY_LENGTH

    def validate_key(self, key: str) -> bytes:
        """
        Check a key and return its wire form.

        Raises:
            InvalidKeyError: if the key is empty, too long or contains
                whitespace/control characters
        """
        if not isinstance(key, str):
            raise InvalidKeyError(f"Key must be a str, got {type(key).__name__}")
        if not key:
            raise InvalidKeyError("Key must not be empty")

        encoded = key.encode("utf-8")
        if len(encoded) > self.max_key_length:
            raise InvalidKeyError(
                f"Key is {len(encoded)} bytes, longer than {self.max_key_length}"
            )
        if any(ch <= 0x20 or ch == 0x7F for ch in encoded):
            raise InvalidKeyError(f"Key {key!r} contains whitespace or control characters")
        return encoded

    def build(self, command: str, key: str, value: Any = None, exptime: int = 0) -> bytes:
        """
        Build a request for a command given by its wire name.

        Raises:
            UnsupportedCommandError: for anything but set, get and delete
        """
        command_type = CommandType.from_name(command)
        if command_type == CommandType.SET:
            return self.build_set(key, value, exptime)
        if command_type == CommandType.GET:
            return self.build_get(key)
        return self.build_delete(key)

    def build_set(self, key: str, value: Any, exptime: int = 0) -> bytes:
        """
        Build a set request.

        Examples:
            >>> CommandEncoder().build_set("k", "ü")
            b'set k 0 0 2\\r\\n\\xc3\\xbc\\r\\n'
        """
        envelope = self.serialize(value)
        return self.build_set_envelope(key, envelope, exptime)

    def build_set_envelope(self, key: str, envelope: Envelope, exptime: int = 0) -> bytes:
        """Build a set request for a value that is already serialized."""
        # Negative is valid on the wire, the daemon expires the item at once
        if isinstance(exptime, bool) or not isinstance(exptime, int):
            raise ValueError(f"exptime must be an integer, got {exptime!r}")

        header = COMMAND_SEPARATOR.join([
            CommandType.SET.value.encode("ascii"),
            self.validate_key(key),
            str(envelope.flags).encode("ascii"),
            str(exptime).encode("ascii"),
            str(envelope.length).encode("ascii"),
        ])
        return header + COMMAND_TERMINATOR + envelope.payload + COMMAND_TERMINATOR

    def build_get(self, key: str) -> bytes:
        """Build a get request."""
        return self._build_simple(CommandType.GET, key)

    def build_delete(self, key: str) -> bytes:
        """Build a delete request."""
        return self._build_simple(CommandType.DELETE, key)

    def serialize(self, value: Any) -> Envelope:
        """Serialize a value honouring this encoder's compression setting."""
        return serialize(value, compress=self.compression)

    def _build_simple(self, command: CommandType, key: str) -> bytes:
        return (
            command.value.encode("ascii")
            + COMMAND_SEPARATOR
            + self.validate_key(key)
            + COMMAND_TERMINATOR
        )
