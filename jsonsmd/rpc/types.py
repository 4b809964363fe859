"""JSON-RPC request and response envelopes."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from jsonsmd.rpc.protocol import (
    VERSION_1,
    VERSION_2,
    Error,
    ParseError,
    decode_json,
    encode_json,
)

if TYPE_CHECKING:
    from jsonsmd.rpc.smd import ServiceDescriptor

logger = logging.getLogger(__name__)

METHOD_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9\\_.]*$", re.IGNORECASE)


class Request:
    """JSON-RPC request.

    Params are stored in insertion order keyed by integer index or by name.
    The ``params`` property returns a list while every key is positional and
    a dict as soon as a named param is present.

    Attributes:
        id: Request identifier. None means notification (no response expected).
        is_method_error: True once an invalid method name was assigned.
        is_parse_error: True once load_json() was given undecodable text.
    """

    def __init__(
        self,
        method: str | None = None,
        params: Iterable[Any] | Mapping[str, Any] | None = None,
        id: Any = None,
        version: str = VERSION_1,
    ) -> None:
        self.id = id
        self.is_method_error = False
        self.is_parse_error = False
        self._method = ""
        self._params: dict[int | str, Any] = {}
        self._version = VERSION_1
        if method is not None:
            self.method = method
        if params is not None:
            self.set_params(params)
        self.version = version

    @property
    def method(self) -> str:
        """Method name, or "" when unset or rejected."""
        return self._method

    @method.setter
    def method(self, name: Any) -> None:
        if not isinstance(name, str) or not METHOD_NAME_PATTERN.match(name):
            self.is_method_error = True
            return
        self._method = name

    @property
    def version(self) -> str:
        return self._version

    @version.setter
    def version(self, version: Any) -> None:
        self._version = VERSION_2 if version == VERSION_2 else VERSION_1

    @property
    def params(self) -> list[Any] | dict[int | str, Any]:
        if self.is_associative:
            return dict(self._params)
        return list(self._params.values())

    @params.setter
    def params(self, params: Iterable[Any] | Mapping[str, Any]) -> None:
        self.set_params(params)

    @property
    def is_associative(self) -> bool:
        """True when at least one param is keyed by name."""
        return any(isinstance(key, str) for key in self._params)

    def add_param(self, value: Any, key: Any = None) -> None:
        """Add a param by name, or at the next integer index.

        Keys that are neither None, an int nor a string are ignored.
        """
        if isinstance(key, str) and key:
            self._params[key] = value
            return
        if key is None or key == "" or (isinstance(key, int) and not isinstance(key, bool)):
            self._params[len(self._params)] = value
            return
        logger.debug("Ignoring param with unusable key: %r", key)

    def add_params(self, params: Iterable[Any] | Mapping[Any, Any]) -> None:
        if isinstance(params, Mapping):
            for key, value in params.items():
                self.add_param(value, key)
            return
        for value in params:
            self.add_param(value)

    def set_params(self, params: Iterable[Any] | Mapping[Any, Any]) -> None:
        self._params = {}
        self.add_params(params)

    def get_param(self, key: int | str) -> Any:
        """Return the param stored at an index or name, or None."""
        return self._params.get(key)

    def set_options(self, options: Mapping[str, Any]) -> None:
        """Assign known fields from a decoded request object."""
        for key, value in options.items():
            if key == "method":
                self.method = value
            elif key == "id":
                self.id = value
            elif key == "params":
                if isinstance(value, (list, dict)):
                    self.set_params(value)
                else:
                    logger.debug("Ignoring params of type %s", type(value).__name__)
            elif key in ("jsonrpc", "version"):
                self.version = value

    def load_json(self, text: str) -> None:
        """Populate the request from JSON text.

        Undecodable text sets ``is_parse_error`` and never raises. A decoded
        value that is not an object leaves the request empty.
        """
        try:
            options = decode_json(text)
        except ParseError as e:
            logger.debug("Request parse error: %s", e)
            self.is_parse_error = True
            return
        if isinstance(options, dict):
            self.set_options(options)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"method": self.method}
        if self.id is not None:
            data["id"] = self.id
        if self._params:
            data["params"] = self.params
        if self.version == VERSION_2:
            data["jsonrpc"] = VERSION_2
        return data

    def to_json(self) -> str:
        return encode_json(self.to_dict())

    def __str__(self) -> str:
        return self.to_json()


class Response:
    """JSON-RPC response.

    Attributes:
        id: Request identifier from the original request.
        result: Result of the method call (suppressed on the wire by error).
        error: Error object if the call failed.
        service_map: ServiceDescriptor used for content negotiation.
    """

    def __init__(
        self,
        id: Any = None,
        result: Any = None,
        error: Error | None = None,
        version: str | None = None,
    ) -> None:
        self.id = id
        self.result = result
        self.error = error
        self._version: str | None = None
        self.version = version
        self.service_map: ServiceDescriptor | None = None

    @property
    def version(self) -> str | None:
        return self._version

    @version.setter
    def version(self, version: Any) -> None:
        self._version = VERSION_2 if version == VERSION_2 else None

    @property
    def is_error(self) -> bool:
        return isinstance(self.error, Error)

    def set_options(self, options: Mapping[Any, Any]) -> None:
        """Assign known fields from a decoded response object.

        An ``error`` mapping is converted into an Error first. Keys that are
        not strings are skipped.
        """
        for key, value in options.items():
            if not isinstance(key, str):
                continue
            if key == "error":
                if isinstance(value, Mapping):
                    code = value.get("code")
                    value = Error(
                        str(value.get("message") or ""),
                        code if isinstance(code, int) else 0,
                        value.get("data"),
                    )
                self.error = value if isinstance(value, Error) else None
            elif key == "id":
                self.id = value
            elif key == "result":
                self.result = value
            elif key in ("jsonrpc", "version"):
                self.version = value

    def load_json(self, text: str) -> None:
        """Populate the response from JSON text.

        Raises:
            ParseError: If the text is not JSON or not a JSON object.
        """
        try:
            options = decode_json(text)
        except ParseError as e:
            raise ParseError(f"json is not a valid response; object expected ({e.message})") from e
        if not isinstance(options, dict):
            raise ParseError("json is not a valid response; object expected")
        self.set_options(options)

    @classmethod
    def from_json(cls, text: str) -> Response:
        response = cls()
        response.load_json(text)
        return response

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.is_error:
            assert self.error is not None
            data["error"] = self.error.to_dict()
        else:
            data["result"] = self.result
        if self.version is not None:
            data["jsonrpc"] = self.version
        return data

    def to_json(self) -> str:
        return encode_json(self.to_dict())

    def __str__(self) -> str:
        return self.to_json()
