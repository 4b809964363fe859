"""JSON-RPC protocol constants, the error value object and JSON helpers."""

from __future__ import annotations

import json
from typing import Any

from jsonsmd.core.errors import JsonSmdError

# Protocol versions
VERSION_1 = "1.0"
VERSION_2 = "2.0"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000  # Default for application errors


class ParseError(JsonSmdError):
    """Raised when a JSON-RPC document cannot be decoded."""


class RpcFault(JsonSmdError):
    """Raised by method handlers to report a fault with a specific code.

    The dispatcher converts it into an error response carrying ``code``,
    ``message`` and ``data`` unchanged.
    """

    def __init__(self, message: str, code: int = SERVER_ERROR, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class Error:
    """A JSON-RPC error object.

    Attributes:
        code: Integer error code. 0 is normalized to SERVER_ERROR.
        message: Human-readable error message.
        data: Optional additional error data.
    """

    def __init__(self, message: str | None = "", code: int = SERVER_ERROR, data: Any = None) -> None:
        self.message = message or ""
        self.code = code
        self.data = data

    @property
    def code(self) -> int:
        return self._code

    @code.setter
    def code(self, code: int) -> None:
        try:
            code = int(code)
        except (TypeError, ValueError):
            code = 0
        self._code = SERVER_ERROR if code == 0 else code

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form; ``data`` is always present, possibly None."""
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }

    def to_json(self) -> str:
        return encode_json(self.to_dict())

    def __str__(self) -> str:
        return self.to_json()

    def __repr__(self) -> str:
        return f"Error(code={self.code!r}, message={self.message!r})"


def encode_json(data: Any) -> str:
    """Serialize a value to compact JSON text."""
    return json.dumps(data, separators=(",", ":"))


def decode_json(text: str) -> Any:
    """Decode JSON text.

    Raises:
        ParseError: If the text is not valid JSON.
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Invalid JSON: {e}") from e
