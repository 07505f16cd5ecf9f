"""
Exception hierarchy for mcclient.

Expected negative outcomes (cache miss, not stored, key exists, key not
found on delete) are never raised; they are reported through ``Result``
codes and plain ``False``/default return values.
"""

from typing import Optional


class MemcachedError(Exception):
    """Base class for all mcclient errors"""


class MemcachedConnectionError(MemcachedError, ConnectionError):
    """Raised when a socket to the daemon cannot be opened, written or read"""

    def __init__(self, message: str, host: str = "", port: int = 0, identifier: str = ""):
        super().__init__(message)
        self.host = host
        self.port = port
        self.identifier = identifier


class UnsupportedCommandError(MemcachedError, ValueError):
    """Raised for any command other than set, get and delete, before any I/O"""

    def __init__(self, command: str):
        super().__init__(f'The command "{command}" is not allowed')
        self.command = command


class InvalidKeyError(MemcachedError, ValueError):
    """Raised when a key can not be sent over the text protocol"""


class SerializationError(MemcachedError, TypeError):
    """Raised when a value can not be mapped to a flag, or a payload can not be decoded"""


class ProtocolError(MemcachedError):
    """
    Raised when the daemon answers with ERROR, CLIENT_ERROR or SERVER_ERROR,
    or with a response the parser does not understand.
    """

    def __init__(self, message: str, command: str = "", endpoint: str = "", code: Optional[int] = None):
        if command:
            text = f'Error "{message}" while sending command "{command}" to host "{endpoint}"'
        else:
            text = message
        super().__init__(text)
        self.message = message
        self.command = command
        self.endpoint = endpoint
        self.code = code
