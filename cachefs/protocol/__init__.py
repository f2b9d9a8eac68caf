"""Protocol module for cachefs."""

from .commands import Command, CommandType, Response, ResponseStatus, decode_value, encode_value
from .parser import ProtocolParser

__all__ = [
    "Command",
    "CommandType",
    "Response",
    "ResponseStatus",
    "ProtocolParser",
    "decode_value",
    "encode_value",
]
