"""
Protocol Parser Module

This module handles both directions of the cachefs text protocol:
- Server side: parse_request() and format_response()
- Client side: format_request() and parse_response()
"""

from typing import List

from ..config.settings import settings
from .commands import (
    Command,
    CommandType,
    Response,
    ResponseStatus,
    decode_value,
    encode_value,
)


class ProtocolParser:
    """
    Parser for the cachefs text protocol.

    Protocol Format:
        Request:  <COMMAND> [ARGS...]\n
        Response: <STATUS> [DATA]\n

    Commands:
        SET <key> <value> [ttl]            -> OK stored
        GET <key>                          -> OK <value> | ERROR key not found
        GETS <key>                         -> OK <value> <version> | ERROR key not found
        CAS <key> <value> <version> [ttl]  -> OK stored | ERROR exists
        DELETE <key> [key ...]             -> OK deleted | ERROR key not found
        EXISTS <key>                       -> OK 1 | OK 0
        KEYS [prefix]                      -> OK [key ...]
        QUIT                               -> (connection closed)

    Constraints:
        - Keys: max MAX_KEY_LENGTH characters, no whitespace
        - Values: base64 tokens ("-" for empty), max MAX_VALUE_LENGTH characters
        - TTL and version: non-negative integers
    """

    def __init__(self):
        """Initialize the parser with constraints from settings."""
        self.max_key_length = settings.MAX_KEY_LENGTH
        self.max_value_length = settings.MAX_VALUE_LENGTH

    # ------------------------------------------------------------------
    # Server side
    # ------------------------------------------------------------------

    def parse_request(self, data: str) -> Command:
        """
        Parse a raw request string into a Command object.

        Args:
            data: Raw request string (may include trailing newline)

        Returns:
            Command object representing the parsed request.
            Returns Command with type=UNKNOWN for invalid/malformed requests.

        Examples:
            >>> parser = ProtocolParser()
            >>> cmd = parser.parse_request("SET mykey aGVsbG8= 60")
            >>> cmd.type == CommandType.SET
            True
            >>> cmd.value
            b'hello'
            >>> cmd.ttl
            60
        """
        raw = data.strip()
        if not raw:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        parts = raw.split()
        command_name = parts[0].upper()

        try:
            if command_name == "SET":
                return self._parse_set(parts, raw)
            if command_name == "CAS":
                return self._parse_cas(parts, raw)
            if command_name in ("GET", "GETS", "EXISTS"):
                return self._parse_single_key(CommandType[command_name], parts, raw)
            if command_name == "DELETE":
                return self._parse_delete(parts, raw)
            if command_name == "KEYS":
                return self._parse_keys(parts, raw)
        except ValueError:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        if command_name == "QUIT" and len(parts) == 1:
            return Command(type=CommandType.QUIT, raw=raw)

        return Command(type=CommandType.UNKNOWN, raw=raw)

    def _check_key(self, key: str) -> str:
        if len(key) > self.max_key_length:
            raise ValueError(f"key longer than {self.max_key_length}")
        return key

    def _check_value(self, token: str) -> bytes:
        if len(token) > self.max_value_length:
            raise ValueError(f"value longer than {self.max_value_length}")
        return decode_value(token)

    @staticmethod
    def _non_negative(token: str) -> int:
        number = int(token)
        if number < 0:
            raise ValueError(f"negative number: {number}")
        return number

    def _parse_set(self, parts: List[str], raw: str) -> Command:
        """Format: SET <key> <value> [ttl]"""
        if len(parts) not in (3, 4):
            raise ValueError("SET takes 2 or 3 arguments")

        return Command(
            type=CommandType.SET,
            key=self._check_key(parts[1]),
            value=self._check_value(parts[2]),
            ttl=self._non_negative(parts[3]) if len(parts) == 4 else 0,
            raw=raw,
        )

    def _parse_cas(self, parts: List[str], raw: str) -> Command:
        """Format: CAS <key> <value> <version> [ttl]"""
        if len(parts) not in (4, 5):
            raise ValueError("CAS takes 3 or 4 arguments")

        return Command(
            type=CommandType.CAS,
            key=self._check_key(parts[1]),
            value=self._check_value(parts[2]),
            version=self._non_negative(parts[3]),
            ttl=self._non_negative(parts[4]) if len(parts) == 5 else 0,
            raw=raw,
        )

    def _parse_single_key(self, command_type: CommandType, parts: List[str], raw: str) -> Command:
        """Format: GET|GETS|EXISTS <key>"""
        if len(parts) != 2:
            raise ValueError(f"{command_type.name} takes exactly 1 argument")

        return Command(type=command_type, key=self._check_key(parts[1]), raw=raw)

    def _parse_delete(self, parts: List[str], raw: str) -> Command:
        """Format: DELETE <key> [key ...]"""
        if len(parts) < 2:
            raise ValueError("DELETE takes at least 1 argument")

        keys = [self._check_key(key) for key in parts[1:]]
        return Command(type=CommandType.DELETE, keys=keys, raw=raw)

    def _parse_keys(self, parts: List[str], raw: str) -> Command:
        """Format: KEYS [prefix]"""
        if len(parts) > 2:
            raise ValueError("KEYS takes at most 1 argument")

        prefix = self._check_key(parts[1]) if len(parts) == 2 else ""
        return Command(type=CommandType.KEYS, key=prefix, raw=raw)

    def format_response(self, response: Response) -> str:
        """
        Format a Response object into a protocol string.

        Returns:
            Formatted response string WITH trailing newline.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Response.stored())
            'OK stored\\n'
            >>> parser.format_response(Response.value_response(b"hello"))
            'OK aGVsbG8=\\n'
            >>> parser.format_response(Response.error("key not found"))
            'ERROR key not found\\n'
        """
        prefix = response.status.value

        if response.keys is not None:
            body = " ".join(response.keys)
        elif response.value is not None:
            body = encode_value(response.value)
            if response.version is not None:
                body = f"{body} {response.version}"
        else:
            body = response.message

        if body:
            return f"{prefix} {body}\n"
        return f"{prefix}\n"

    # ------------------------------------------------------------------
    # Client side
    # ------------------------------------------------------------------

    def format_request(self, command: Command) -> str:
        """
        Format a command for sending over the wire.

        Returns:
            Formatted request string with trailing newline
        """
        ttl = f" {command.ttl}" if command.ttl > 0 else ""

        if command.type == CommandType.SET:
            return f"SET {command.key} {encode_value(command.value)}{ttl}\n"
        if command.type == CommandType.CAS:
            return f"CAS {command.key} {encode_value(command.value)} {command.version}{ttl}\n"
        if command.type in (CommandType.GET, CommandType.GETS, CommandType.EXISTS):
            return f"{command.type.name} {command.key}\n"
        if command.type == CommandType.DELETE:
            return f"DELETE {' '.join(command.keys)}\n"
        if command.type == CommandType.KEYS:
            return f"KEYS {command.key}\n" if command.key else "KEYS\n"
        if command.type == CommandType.QUIT:
            return "QUIT\n"
        return command.raw + "\n"

    def parse_response(self, line: str, command_type: CommandType) -> Response:
        """
        Parse a response line received for a command of the given type.

        The expected shape depends on the command that was sent, since a
        GET body is an opaque value while a SET body is a status word.

        Raises:
            ValueError: If the line does not match the expected shape
        """
        parts = line.strip().split(None, 1)
        if not parts:
            raise ValueError("empty response")

        try:
            status = ResponseStatus(parts[0].upper())
        except ValueError:
            raise ValueError(f"unknown status: {parts[0]}") from None
        body = parts[1] if len(parts) > 1 else ""

        if status == ResponseStatus.ERROR:
            if body == "key not found":
                return Response.key_not_found()
            if body == "exists":
                return Response.version_conflict()
            return Response.error(body)

        if command_type == CommandType.GET:
            return Response.value_response(decode_value(body))
        if command_type == CommandType.GETS:
            token, version = body.rsplit(" ", 1)
            return Response.versioned_value(decode_value(token), int(version))
        if command_type == CommandType.EXISTS:
            if body not in ("0", "1"):
                raise ValueError(f"unexpected EXISTS body: {body}")
            return Response.exists_response(body == "1")
        if command_type == CommandType.KEYS:
            return Response.key_list(body.split())
        return Response.ok(message=body)
