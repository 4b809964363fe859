"""JSON-RPC method dispatcher.

The Dispatcher owns a method table (name -> MethodSignature) and the
ServiceDescriptor built from it, and turns one Request into one Response:

    1. Parse error          -> PARSE_ERROR
    2. Missing/bad method   -> INVALID_REQUEST
    3. Unknown method       -> METHOD_NOT_FOUND
    4. Fill declared defaults for missing params
    5. Reorder named params into the callable's declaration order
       (missing required name -> INVALID_PARAMS)
    6. Invoke; handler exceptions become error responses
    7. Store the result
    8. Copy id/version from the request and attach the service map

Nothing raised while handling a request escapes handle(); only registration
errors are raised to the caller.

Example:
    dispatcher = Dispatcher()
    dispatcher.set_class(Calculator)
    response = dispatcher.handle(HttpRequest(body))
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from jsonsmd.core.errors import JsonSmdError
from jsonsmd.rpc.protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    Error,
    RpcFault,
    encode_json,
)
from jsonsmd.rpc.reflection import (
    MethodSignature,
    ParameterInfo,
    reflect_class,
    reflect_function,
)
from jsonsmd.rpc.smd import ServiceDescriptor
from jsonsmd.rpc.types import Request, Response

logger = logging.getLogger(__name__)


class RegistrationError(JsonSmdError):
    """Raised when a handler cannot be registered."""


class InvalidParamsError(JsonSmdError):
    """Raised internally when params cannot be matched to a signature."""


def _join_types(names: list[str]) -> str | list[str]:
    unique: list[str] = []
    for name in names:
        if name not in unique:
            unique.append(name)
    return unique[0] if len(unique) == 1 else unique


class Dispatcher:
    """Routes JSON-RPC requests to registered callables.

    Attributes:
        response_class: Response type created for each handled request.
    """

    def __init__(self, response_class: type[Response] = Response) -> None:
        self.response_class = response_class
        self._methods: dict[str, MethodSignature] = {}
        self._service_map: ServiceDescriptor | None = None
        self._request: Request | None = None
        self._response: Response | None = None

    # === Registration ===

    def add_function(self, function: Callable[..., Any], name: str | None = None) -> None:
        """Register a single callable.

        Args:
            function: The callable to expose.
            name: Public method name. Defaults to the callable's __name__.

        Raises:
            RegistrationError: If function is not callable or not inspectable.
        """
        if not callable(function):
            raise RegistrationError(
                f"add_function() expects a callable; received {type(function).__name__}"
            )
        try:
            signature = reflect_function(function, name)
        except TypeError as e:
            raise RegistrationError(str(e)) from e
        self._register(signature)

    def set_class(self, target: Any, *args: Any, **kwargs: Any) -> None:
        """Register every public method of a class or object.

        A class is instantiated with ``args`` and ``kwargs``. Methods whose
        names are already registered are replaced.
        """
        for signature in reflect_class(target, *args, **kwargs):
            self._register(signature)

    def load_functions(
        self, definitions: Mapping[str, MethodSignature] | Iterable[MethodSignature]
    ) -> None:
        """Register pre-built signatures, e.g. the result of get_functions().

        Raises:
            RegistrationError: If an entry is not a MethodSignature.
        """
        items = definitions.values() if isinstance(definitions, Mapping) else definitions
        for signature in items:
            if not isinstance(signature, MethodSignature):
                raise RegistrationError("Invalid definition provided to load_functions()")
            self._register(signature)

    def get_functions(self) -> dict[str, MethodSignature]:
        """Return a copy of the method table."""
        return dict(self._methods)

    def _register(self, signature: MethodSignature) -> None:
        service_info: dict[str, Any] = {
            "name": signature.name,
            "return": _join_types(signature.return_types),
            "params": [self._service_param(p) for p in signature.parameters],
        }
        service_map = self.service_map
        if service_map.get_service(signature.name) is not None:
            logger.debug("Overwriting existing method: %s", signature.name)
            service_map.remove_service(signature.name)
        service_map.add_service(service_info)
        self._methods[signature.name] = signature

    @staticmethod
    def _service_param(param: ParameterInfo) -> dict[str, Any]:
        info: dict[str, Any] = {
            "type": _join_types(param.types),
            "name": param.name,
            "optional": param.optional,
        }
        if param.has_default and param.default is not None:
            try:
                encode_json(param.default)
            except (TypeError, ValueError):
                # the callable still applies it; the SMD just leaves it out
                logger.debug("Default of %s is not JSON-encodable", param.name)
            else:
                info["default"] = param.default
        if param.description:
            info["description"] = param.description
        return info

    # === Service map delegation ===

    @property
    def service_map(self) -> ServiceDescriptor:
        """The ServiceDescriptor for registered methods (created on first use)."""
        if self._service_map is None:
            self._service_map = ServiceDescriptor()
        return self._service_map

    @property
    def target(self) -> str:
        return self.service_map.target

    @target.setter
    def target(self, value: str) -> None:
        self.service_map.target = value

    @property
    def id(self) -> str:
        return self.service_map.id

    @id.setter
    def id(self, value: str) -> None:
        self.service_map.id = value

    @property
    def description(self) -> str:
        return self.service_map.description

    @description.setter
    def description(self, value: str) -> None:
        self.service_map.description = value

    @property
    def envelope(self) -> str:
        return self.service_map.envelope

    @envelope.setter
    def envelope(self, value: str) -> None:
        self.service_map.envelope = value

    @property
    def transport(self) -> str:
        return self.service_map.transport

    @transport.setter
    def transport(self, value: str) -> None:
        self.service_map.transport = value

    @property
    def content_type(self) -> str:
        return self.service_map.content_type

    @content_type.setter
    def content_type(self, value: str) -> None:
        self.service_map.content_type = value

    @property
    def dojo_compatible(self) -> bool:
        return self.service_map.dojo_compatible

    @dojo_compatible.setter
    def dojo_compatible(self, value: bool) -> None:
        self.service_map.dojo_compatible = value

    # === Request handling ===

    @property
    def request(self) -> Request:
        """The request to handle next (an empty Request until one is set)."""
        if self._request is None:
            self._request = Request()
        return self._request

    @request.setter
    def request(self, request: Request) -> None:
        self._request = request

    @property
    def response(self) -> Response:
        """The response of the request being (or last) handled."""
        if self._response is None:
            self._response = self.response_class()
        return self._response

    @response.setter
    def response(self, response: Response) -> None:
        self._response = response

    def fault(self, message: str | None = None, code: int = SERVER_ERROR, data: Any = None) -> Error:
        """Set an error on the current response and return it."""
        error = Error(message, code, data)
        self.response.error = error
        return error

    def handle(self, request: Request | None = None, response: Response | None = None) -> Response:
        """Handle one request and return its response.

        Args:
            request: The request to handle. Defaults to the current request.
            response: Response object to populate. Defaults to a fresh
                instance of response_class.

        Returns:
            The populated response.
        """
        if request is not None:
            self._request = request
        self._response = response if response is not None else self.response_class()

        self._handle_request()
        return self._ready_response()

    def _handle_request(self) -> None:
        request = self.request

        if request.is_parse_error:
            self.fault("Parse error", PARSE_ERROR)
            return

        if request.is_method_error or not request.method:
            self.fault("Invalid Request", INVALID_REQUEST)
            return

        method = request.method
        signature = self._methods.get(method)
        if signature is None:
            logger.debug("Method not found: %s", method)
            self.fault("Method not found", METHOD_NOT_FOUND)
            return

        service = self.service_map.get_service(method)
        service_params = service.params if service is not None else []

        try:
            if request.is_associative:
                args, kwargs = self._named_arguments(
                    signature, request.params, service_params
                )
            else:
                args = self._positional_arguments(signature, request.params, service_params)
                kwargs = {}
        except InvalidParamsError as e:
            logger.debug("Invalid params for %s: %s", method, e)
            self.fault("Invalid params", INVALID_PARAMS)
            return

        logger.debug("Invoking %s with %d args", method, len(args) + len(kwargs))
        try:
            result = signature.callback(*args, **kwargs)
        except RpcFault as e:
            self.fault(e.message, e.code, e.data)
            return
        except Exception as e:
            logger.error(
                "Unexpected error invoking method '%s': %s", method, e, exc_info=True
            )
            code = getattr(e, "code", None)
            self.fault(str(e), code if isinstance(code, int) else SERVER_ERROR)
            return

        self.response.result = result

    @staticmethod
    def _positional_arguments(
        signature: MethodSignature,
        params: list[Any],
        service_params: list[dict[str, Any]],
    ) -> list[Any]:
        """Fill declared defaults after the supplied positional params."""
        defaults = {p.name: p.default for p in signature.parameters if p.has_default}
        args = list(params)
        if len(args) < len(service_params):
            for param in service_params[len(args):]:
                if "default" in param:
                    args.append(param["default"])
                elif param.get("optional"):
                    args.append(defaults.get(param.get("name")))
                else:
                    break

        if len(args) < signature.required_count:
            raise InvalidParamsError(
                f"expected at least {signature.required_count} params, got {len(args)}"
            )
        keyword_only = [
            p.name
            for p in signature.parameters
            if p.kind is inspect.Parameter.KEYWORD_ONLY and not p.optional
        ]
        if keyword_only:
            raise InvalidParamsError(
                f"keyword-only params cannot be passed by position: {', '.join(keyword_only)}"
            )
        if not signature.accepts_varargs:
            args = args[: len(signature.positional_parameters)]
        return args

    @staticmethod
    def _named_arguments(
        signature: MethodSignature,
        params: dict[int | str, Any],
        service_params: list[dict[str, Any]],
    ) -> tuple[list[Any], dict[str, Any]]:
        """Order named params by the callable's own declaration."""
        named = dict(params)
        for param in service_params:
            name = param.get("name")
            if name is None or name in named or "default" not in param:
                continue
            named[name] = param["default"]

        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for param in signature.parameters:
            if param.name in named:
                value = named[param.name]
            elif param.optional:
                value = param.default if param.has_default else None
            else:
                raise InvalidParamsError(f"missing required param: {param.name}")

            if param.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[param.name] = value
            else:
                args.append(value)
        return args, kwargs

    def _ready_response(self) -> Response:
        request = self.request
        response = self.response
        response.service_map = self.service_map

        if request.id is not None:
            response.id = request.id
        if request.version is not None:
            response.version = request.version
        return response
