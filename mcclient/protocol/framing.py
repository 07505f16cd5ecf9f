"""
Response framing.

A response frame ends at the first line opening with one of the terminator
keywords (END, STORED, DELETED, ERROR, ...), matched case-insensitively.
VALUE headers are length-aware: the scanner steps over exactly the
declared number of payload bytes, so a payload holding a line such as
``END`` can not end the frame early.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from ..errors import ProtocolError
from .commands import COMMAND_SEPARATOR, COMMAND_TERMINATOR, TERMINATORS, ResponseKeyword

_TERMINATOR_HEADS = frozenset(k.value.encode("ascii") for k in TERMINATORS)
_VALUE_HEAD = ResponseKeyword.VALUE.value.encode("ascii")


class IncompleteFrame(Exception):
    """More bytes are needed before the buffer holds a complete frame."""


@dataclass(frozen=True)
class FrameLine:
    """
    One control line of a frame.

    Attributes:
        text: The line without its CRLF
        head: Upper-cased first token of the line
        payload: Data block following a VALUE header, None otherwise
    """
    text: str
    head: str
    payload: Optional[bytes] = None

    @property
    def is_terminator(self) -> bool:
        return self.head.encode("ascii", "replace") in _TERMINATOR_HEADS


@dataclass
class Frame:
    """A complete response as read from the socket."""
    raw: bytes
    lines: List[FrameLine] = field(default_factory=list)

    @classmethod
    def parse(cls, raw: bytes) -> "Frame":
        """
        Split complete response bytes into control lines.

        Raises:
            ProtocolError: if the bytes do not end on a full line
        """
        try:
            lines = [line for line, _ in iter_lines(raw)]
        except IncompleteFrame:
            raise ProtocolError(f"Truncated response frame {raw[-64:]!r}") from None
        return cls(raw=raw, lines=lines)

    @property
    def first_line(self) -> str:
        return self.lines[0].text if self.lines else ""


def _head(line: bytes) -> bytes:
    return line.split(COMMAND_SEPARATOR, 1)[0].upper()


def _value_length(line: bytes) -> int:
    parts = line.split()
    if len(parts) < 4:
        raise ProtocolError(f"Malformed VALUE header {line!r}")
    try:
        length = int(parts[3])
    except ValueError:
        raise ProtocolError(f"Malformed length in VALUE header {line!r}") from None
    if length < 0:
        raise ProtocolError(f"Negative length in VALUE header {line!r}")
    return length


def iter_lines(data: bytes) -> Iterator[tuple]:
    """
    Walk the buffer line by line.

    Yields:
        (FrameLine, position just past the line and its payload)

    Raises:
        IncompleteFrame: when the buffer ends inside a line or a payload
        ProtocolError: for a malformed VALUE header or payload trailer
    """
    pos = 0
    size = len(data)
    while pos < size:
        end = data.find(COMMAND_TERMINATOR, pos)
        if end == -1:
            raise IncompleteFrame()
        line = data[pos:end]
        pos = end + len(COMMAND_TERMINATOR)

        head = _head(line)
        payload = None
        if head == _VALUE_HEAD:
            length = _value_length(line)
            stop = pos + length
            if size < stop + len(COMMAND_TERMINATOR):
                raise IncompleteFrame()
            if data[stop:stop + len(COMMAND_TERMINATOR)] != COMMAND_TERMINATOR:
                raise ProtocolError(f"Payload for {line!r} is not followed by CRLF")
            payload = data[pos:stop]
            pos = stop + len(COMMAND_TERMINATOR)

        yield FrameLine(
            text=line.decode("utf-8", "replace"),
            head=head.decode("utf-8", "replace"),
            payload=payload,
        ), pos


def frame_length(data: bytes) -> Optional[int]:
    """
    Length of the first complete frame in the buffer, or None if the
    terminator line has not arrived yet.
    """
    try:
        for line, pos in iter_lines(data):
            if line.is_terminator:
                return pos
    except IncompleteFrame:
        return None
    return None
