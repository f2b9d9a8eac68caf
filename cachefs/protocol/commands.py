"""
Protocol Command and Response Definitions

This module defines the data structures for protocol commands and responses,
plus the value codec shared by the server and RemoteStore.
"""

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

# Base64 has no representation for b"" that survives whitespace splitting
EMPTY_VALUE_TOKEN = "-"


def encode_value(value: bytes) -> str:
    """Encode raw bytes into a single whitespace-free protocol token."""
    if not value:
        return EMPTY_VALUE_TOKEN
    return base64.b64encode(value).decode("ascii")


def decode_value(token: str) -> bytes:
    """
    Decode a protocol token back into raw bytes.

    Raises:
        ValueError: If the token is not valid base64
    """
    if token == EMPTY_VALUE_TOKEN:
        return b""
    try:
        return base64.b64decode(token.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid value encoding: {exc}") from exc


class CommandType(Enum):
    """Enumeration of supported command types."""
    SET = auto()
    GET = auto()
    GETS = auto()
    CAS = auto()
    DELETE = auto()
    EXISTS = auto()
    KEYS = auto()
    QUIT = auto()
    UNKNOWN = auto()


class ResponseStatus(Enum):
    """Enumeration of response statuses."""
    OK = "OK"
    ERROR = "ERROR"


@dataclass
class Command:
    """
    Represents a parsed protocol command.

    Attributes:
        type: The type of command
        key: The key for the operation (prefix for KEYS, empty for QUIT)
        keys: All keys for DELETE (key is keys[0])
        value: Decoded value for SET and CAS
        ttl: Time-to-live in seconds for SET and CAS (0 = no expiration)
        version: Expected version for CAS
        raw: The original raw command string
    """
    type: CommandType
    key: str = ""
    keys: List[str] = field(default_factory=list)
    value: bytes = b""
    ttl: int = 0
    version: int = 0
    raw: str = ""

    def __post_init__(self):
        if self.key and not self.keys and self.type == CommandType.DELETE:
            self.keys = [self.key]
        if self.keys and not self.key:
            self.key = self.keys[0]

    @property
    def is_valid(self) -> bool:
        """Check if the command is valid for its type."""
        if self.type == CommandType.UNKNOWN:
            return False
        if self.type in (CommandType.QUIT, CommandType.KEYS):
            return True
        if self.type == CommandType.DELETE:
            return bool(self.keys)
        return bool(self.key)


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK or ERROR
        message: Response message or error description
        value: The value returned (for GET/GETS)
        version: The version returned (for GETS)
        keys: The keys returned (for KEYS)
    """
    status: ResponseStatus
    message: str = ""
    value: Optional[bytes] = None
    version: Optional[int] = None
    keys: Optional[List[str]] = None

    @property
    def is_ok(self) -> bool:
        return self.status == ResponseStatus.OK

    @classmethod
    def ok(cls, message: str = "", value: Optional[bytes] = None) -> "Response":
        """Create a successful response."""
        return cls(status=ResponseStatus.OK, message=message, value=value)

    @classmethod
    def error(cls, message: str) -> "Response":
        """Create an error response."""
        return cls(status=ResponseStatus.ERROR, message=message)

    @classmethod
    def stored(cls) -> "Response":
        return cls.ok(message="stored")

    @classmethod
    def deleted(cls) -> "Response":
        return cls.ok(message="deleted")

    @classmethod
    def key_not_found(cls) -> "Response":
        return cls.error(message="key not found")

    @classmethod
    def version_conflict(cls) -> "Response":
        """CAS refused because the key changed since it was read."""
        return cls.error(message="exists")

    @classmethod
    def exists_response(cls, exists: bool) -> "Response":
        return cls.ok(message="1" if exists else "0")

    @classmethod
    def value_response(cls, value: bytes) -> "Response":
        return cls.ok(value=value)

    @classmethod
    def versioned_value(cls, value: bytes, version: int) -> "Response":
        return cls(status=ResponseStatus.OK, value=value, version=version)

    @classmethod
    def key_list(cls, keys: List[str]) -> "Response":
        return cls(status=ResponseStatus.OK, keys=list(keys))
