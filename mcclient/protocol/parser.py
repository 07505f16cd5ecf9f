"""
Response Parser Module

Classifies a response frame and turns it into a command-specific Result:

    set     -> STORED | NOT_STORED | EXISTS | NOT_FOUND
    get     -> (VALUE <key> <flags> <bytes> [<cas>]\\r\\n<data>\\r\\n)* END
    delete  -> DELETED | NOT_FOUND

ERROR, CLIENT_ERROR and SERVER_ERROR classify as error codes; the client
raises ProtocolError for those. Every other negative answer is an ordinary
Result with a non-SUCCESS code.
"""

import logging
from typing import Dict, Tuple

from ..errors import ProtocolError
from .commands import (
    COMMAND_TERMINATOR,
    CommandType,
    ItemMetadata,
    ResponseCode,
    ResponseKeyword,
    Result,
)
from .framing import Frame, FrameLine
from .serializer import deserialize

logger = logging.getLogger(__name__)

# Checked in this order, first match wins
_ERROR_PRIORITY = (
    (ResponseKeyword.ERROR, ResponseCode.FAILURE),
    (ResponseKeyword.CLIENT_ERROR, ResponseCode.CLIENT_ERROR),
    (ResponseKeyword.SERVER_ERROR, ResponseCode.SERVER_ERROR),
)

_WRITE_NEGATIVES = {
    ResponseKeyword.NOT_STORED.value: ResponseCode.NOT_STORED,
    ResponseKeyword.EXISTS.value: ResponseCode.DATA_EXISTS,
    ResponseKeyword.NOT_FOUND.value: ResponseCode.NOT_FOUND,
}


class ResponseParser:
    """
    Parser for Memcached text protocol responses.

    Usage:
        parser = ResponseParser()
        code, message = parser.classify(frame)
        result = parser.parse(CommandType.GET, frame)
    """

    def classify(self, frame: Frame) -> Tuple[ResponseCode, str]:
        """
        Classify a frame as success or one of the error codes.

        Only control lines are scanned; VALUE payloads are never mistaken
        for error markers.

        Returns:
            (code, text of the error line or "")
        """
        for keyword, code in _ERROR_PRIORITY:
            for line in frame.lines:
                if line.head == keyword.value:
                    return code, line.text
        return ResponseCode.SUCCESS, ""

    def parse(self, command: CommandType, frame: Frame) -> Result:
        """Dispatch to the command-specific parser."""
        if command == CommandType.GET:
            return self.parse_get(frame)
        if command == CommandType.SET:
            return self.parse_set(frame)
        return self.parse_delete(frame)

    def parse_get(self, frame: Frame) -> Result:
        """
        Parse a get response into {key: ItemMetadata}.

        A frame holding no VALUE entries is a miss: NOT_FOUND with value None.

        Raises:
            ProtocolError: if a line other than VALUE or END shows up
            SerializationError: if a payload does not decode under its flags
        """
        items: Dict[str, ItemMetadata] = {}

        for line in frame.lines:
            if line.head == ResponseKeyword.END.value:
                break
            if line.head != ResponseKeyword.VALUE.value:
                raise ProtocolError(
                    f'Awaited "{ResponseKeyword.VALUE.value}" but received "{line.head}"'
                )
            item = self._parse_item(line)
            items[item.key] = item

        if not items:
            logger.debug("get returned no items")
            return Result.negative(CommandType.GET, ResponseCode.NOT_FOUND, frame.first_line)

        return Result.hit(items, frame.first_line)

    def parse_set(self, frame: Frame) -> Result:
        """Parse a set response; only an exact STORED line is a success."""
        if frame.raw == ResponseKeyword.STORED.value.encode("ascii") + COMMAND_TERMINATOR:
            return Result.success(CommandType.SET, message=frame.first_line)

        head = frame.lines[0].head if frame.lines else ""
        code = _WRITE_NEGATIVES.get(head, ResponseCode.FAILURE)
        return Result.negative(CommandType.SET, code, frame.first_line)

    def parse_delete(self, frame: Frame) -> Result:
        """Parse a delete response; DELETED is a success, NOT_FOUND a miss."""
        head = frame.lines[0].head if frame.lines else ""
        if head == ResponseKeyword.DELETED.value:
            return Result.success(CommandType.DELETE, message=frame.first_line)
        if head == ResponseKeyword.NOT_FOUND.value:
            return Result.negative(CommandType.DELETE, ResponseCode.NOT_FOUND, frame.first_line)
        return Result.negative(CommandType.DELETE, ResponseCode.FAILURE, frame.first_line)

    def _parse_item(self, line: FrameLine) -> ItemMetadata:
        parts = line.text.split()
        if len(parts) < 4:
            raise ProtocolError(f"Malformed VALUE header {line.text!r}")
        try:
            flags = int(parts[2])
            length = int(parts[3])
            cas = int(parts[4]) if len(parts) > 4 else None
        except ValueError:
            raise ProtocolError(f"Malformed VALUE header {line.text!r}") from None

        payload = line.payload if line.payload is not None else b""
        frames = payload.count(COMMAND_TERMINATOR) + 1

        return ItemMetadata(
            key=parts[1],
            value=deserialize(payload, flags),
            flags=flags,
            length=length,
            cas=cas,
            frames=frames,
        )
