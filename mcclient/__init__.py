"""
mcclient: Memcached Text Protocol Client

A small blocking client for the Memcached classic text protocol over TCP,
supporting set, get and delete with typed values.
"""

from .client import MemcachedClient
from .errors import (
    InvalidKeyError,
    MemcachedConnectionError,
    MemcachedError,
    ProtocolError,
    SerializationError,
    UnsupportedCommandError,
)
from .network.connection import Session
from .protocol.commands import ItemMetadata, ResponseCode, Result

__version__ = "1.0.0"

__all__ = [
    "MemcachedClient",
    "Session",
    "ItemMetadata",
    "ResponseCode",
    "Result",
    "MemcachedError",
    "MemcachedConnectionError",
    "UnsupportedCommandError",
    "InvalidKeyError",
    "SerializationError",
    "ProtocolError",
]
