"""
Value Serializer Module

Maps in-process values to a (payload, flags, length) envelope and back.

Flag table, checked in this order (bool before int, since bool is an int):

    str    -> 0  UTF-8 bytes
    bool   -> 3  b"1" / b"0"
    int    -> 1  decimal ASCII
    float  -> 2  decimal ASCII (repr, so it round-trips exactly)
    other  -> 4  version byte + MessagePack

Flag 4 only accepts None, bytes, the four primitives and lists, tuples and
dicts built from them. Tuples come back as lists.

Bit 16 marks a zlib-compressed payload and may be combined with any type
flag.
"""

import logging
import zlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import msgspec

from ..config.settings import settings
from ..errors import SerializationError

logger = logging.getLogger(__name__)


class ValueFlag(IntEnum):
    """Type tag stored in the flags field of every item."""
    STRING = 0
    INTEGER = 1
    FLOAT = 2
    BOOLEAN = 3
    SERIALIZED = 4


COMPRESSED = 16

# Leading byte of every flag 4 payload
SERIALIZED_VERSION = 1

_encoder = msgspec.msgpack.Encoder()
_decoder = msgspec.msgpack.Decoder()

_SCALARS = (str, bytes, int, float, bool, type(None))
_KEY_TYPES = (str, int, float, bool)


@dataclass(frozen=True)
class Envelope:
    """A serialized value ready to go on the wire."""
    payload: bytes
    flags: int
    length: int


def _check_encodable(value: Any, path: str = "value") -> None:
    """Reject shapes the flag 4 encoding can not carry."""
    if isinstance(value, _SCALARS):
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_encodable(item, f"{path}[{index}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, _KEY_TYPES):
                raise SerializationError(
                    f"Unhandled key {key!r} of type {type(key).__name__} at {path}"
                )
            _check_encodable(item, f"{path}[{key!r}]")
        return
    raise SerializationError(
        f"Unhandled {type(value).__name__} value at {path}. Don't know how to process!"
    )


def _encode_compound(value: Any) -> bytes:
    _check_encodable(value)
    try:
        return bytes([SERIALIZED_VERSION]) + _encoder.encode(value)
    except (msgspec.EncodeError, TypeError, OverflowError, ValueError) as exc:
        raise SerializationError(f"Could not serialize value: {exc}") from exc


def _decode_compound(payload: bytes) -> Any:
    if not payload:
        raise SerializationError("Empty serialized payload")
    if payload[0] != SERIALIZED_VERSION:
        raise SerializationError(f"Unknown serialized payload version {payload[0]}")
    try:
        return _decoder.decode(payload[1:])
    except msgspec.DecodeError as exc:
        raise SerializationError(f"Could not deserialize payload: {exc}") from exc


def serialize(value: Any, compress: bool = False) -> Envelope:
    """
    Serialize a value into a wire envelope.

    Args:
        value: Any supported value
        compress: zlib-compress payloads of at least COMPRESS_MIN_LENGTH bytes

    Returns:
        Envelope with the payload bytes, the flags and the payload byte length

    Raises:
        SerializationError: if the value has no flag

    Examples:
        >>> serialize("héllo").length
        6
        >>> serialize(True).payload
        b'1'
    """
    if isinstance(value, str):
        payload, flag = value.encode("utf-8"), ValueFlag.STRING
    elif isinstance(value, bool):
        payload, flag = (b"1" if value else b"0"), ValueFlag.BOOLEAN
    elif isinstance(value, int):
        # int.__repr__ is the decimal form even for subclasses such as IntEnum
        try:
            payload, flag = int.__repr__(value).encode("ascii"), ValueFlag.INTEGER
        except ValueError as exc:
            raise SerializationError(f"Could not serialize integer: {exc}") from exc
    elif isinstance(value, float):
        payload, flag = repr(value).encode("ascii"), ValueFlag.FLOAT
    else:
        payload, flag = _encode_compound(value), ValueFlag.SERIALIZED

    flags = int(flag)
    if compress and len(payload) >= settings.COMPRESS_MIN_LENGTH:
        compressed = zlib.compress(payload)
        # Only worth the flag bit when it actually shrinks
        if len(compressed) < len(payload):
            logger.debug(f"Compressed payload from {len(payload)} to {len(compressed)} bytes")
            payload = compressed
            flags |= COMPRESSED

    return Envelope(payload=payload, flags=flags, length=len(payload))


def deserialize(payload: bytes, flags: int) -> Any:
    """
    Decode a payload back into the value it was serialized from.

    Raises:
        SerializationError: for unknown flags or payloads that do not decode
    """
    if flags & COMPRESSED:
        try:
            payload = zlib.decompress(payload)
        except zlib.error as exc:
            raise SerializationError(f"Could not decompress payload: {exc}") from exc
        flags &= ~COMPRESSED

    try:
        flag = ValueFlag(flags)
    except ValueError:
        raise SerializationError(f"Unknown flags {flags}") from None

    if flag == ValueFlag.SERIALIZED:
        return _decode_compound(payload)

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SerializationError(f"Payload with flag {flag.name} is not valid UTF-8") from exc

    if flag == ValueFlag.STRING:
        return text
    if flag == ValueFlag.BOOLEAN:
        return text not in ("", "0")

    try:
        if flag == ValueFlag.INTEGER:
            return int(text)
        return float(text)
    except ValueError as exc:
        raise SerializationError(f"Malformed {flag.name.lower()} payload {text!r}") from exc
