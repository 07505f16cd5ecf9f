"""Protocol module for mcclient."""

from .commands import CommandType, ItemMetadata, ResponseCode, ResponseKeyword, Result
from .encoder import CommandEncoder
from .framing import Frame, FrameLine, frame_length
from .parser import ResponseParser
from .serializer import COMPRESSED, Envelope, ValueFlag, deserialize, serialize

__all__ = [
    "CommandType",
    "ItemMetadata",
    "ResponseCode",
    "ResponseKeyword",
    "Result",
    "CommandEncoder",
    "Frame",
    "FrameLine",
    "frame_length",
    "ResponseParser",
    "COMPRESSED",
    "Envelope",
    "ValueFlag",
    "deserialize",
    "serialize",
]
