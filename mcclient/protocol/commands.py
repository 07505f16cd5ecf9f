"""
Protocol Command and Response Definitions

This module defines the command names, response keywords, response codes
and result types shared by the encoder, the parser and the client.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

from ..errors import UnsupportedCommandError


COMMAND_SEPARATOR = b" "
COMMAND_TERMINATOR = b"\r\n"


class CommandType(Enum):
    """Enumeration of the commands this client is allowed to send."""
    SET = "set"
    GET = "get"
    DELETE = "delete"

    @classmethod
    def from_name(cls, name: str) -> "CommandType":
        """
        Look up a command by its wire name.

        Raises:
            UnsupportedCommandError: for anything outside set/get/delete
        """
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedCommandError(name) from None


class ResponseKeyword(str, Enum):
    """First token of the lines a daemon may answer with."""
    VALUE = "VALUE"
    END = "END"
    STORED = "STORED"
    NOT_STORED = "NOT_STORED"
    DELETED = "DELETED"
    NOT_FOUND = "NOT_FOUND"
    EXISTS = "EXISTS"
    OK = "OK"
    RESET = "RESET"
    VERSION = "VERSION"
    ERROR = "ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"


# Keywords that end a response frame when they open a line
TERMINATORS = tuple(k for k in ResponseKeyword if k is not ResponseKeyword.VALUE)


class ResponseCode(IntEnum):
    """Outcome of an operation, numbered like libmemcached's return codes."""
    SUCCESS = 0
    FAILURE = 1
    CLIENT_ERROR = 9
    SERVER_ERROR = 10
    DATA_EXISTS = 12
    NOT_STORED = 14
    NOT_FOUND = 16

    @property
    def is_error(self) -> bool:
        """True for the codes the client raises ProtocolError for."""
        return self in (ResponseCode.FAILURE, ResponseCode.CLIENT_ERROR, ResponseCode.SERVER_ERROR)


@dataclass(frozen=True)
class ItemMetadata:
    """
    One entry of a get response.

    Attributes:
        key: The key the daemon returned
        value: The decoded value
        flags: The flags stored with the value
        length: Declared payload length in bytes
        cas: The cas unique, when the daemon sent one
        frames: Number of physical lines the payload spanned
    """
    key: str
    value: Any
    flags: int
    length: int
    cas: Optional[int] = None
    frames: int = 1


@dataclass
class Result:
    """
    Tagged outcome of one operation.

    Attributes:
        command: The command that produced this result
        code: SUCCESS, an expected negative code or an error code
        value: bool for set/delete, {key: ItemMetadata} for a get hit
        message: Raw text of the first response line
    """
    command: CommandType
    code: ResponseCode = ResponseCode.SUCCESS
    value: Any = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.code == ResponseCode.SUCCESS

    @classmethod
    def success(cls, command: CommandType, value: Any = True, message: str = "") -> "Result":
        """Create a successful result."""
        return cls(command=command, code=ResponseCode.SUCCESS, value=value, message=message)

    @classmethod
    def negative(cls, command: CommandType, code: ResponseCode, message: str = "") -> "Result":
        """Create a result for an expected negative outcome (miss, not stored, ...)."""
        value = None if command == CommandType.GET else False
        return cls(command=command, code=code, value=value, message=message)

    @classmethod
    def hit(cls, items: Dict[str, ItemMetadata], message: str = "") -> "Result":
        """Create a get result carrying one or more items."""
        return cls(command=CommandType.GET, code=ResponseCode.SUCCESS, value=items, message=message)
