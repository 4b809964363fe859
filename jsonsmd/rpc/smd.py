"""Service Mapping Description (SMD) model.

A ServiceDescriptor describes a set of remotely callable services. Each
Service records a method name, its ordered parameters and its return type,
with type names normalized to the SMD vocabulary (``string``, ``integer``,
``boolean``, ``float``, ``array``, ``object``, ``any``, ``null``).

Two serializations are supported:
    - Standard SMD 2.0 (``to_dict()``), keyed by service name.
    - Dojo-compatible SMD 0.1 (``to_dojo_dict()``), a list of methods.

Example:
    smd = ServiceDescriptor(target="/rpc", envelope=ENV_JSONRPC_2)
    smd.add_service({"name": "add", "parameters": [{"type": "int", "name": "a"}],
                     "return": "int"})
    print(smd.to_json())
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from jsonsmd.core.errors import JsonSmdError
from jsonsmd.rpc.protocol import encode_json

logger = logging.getLogger(__name__)

ENV_JSONRPC_1 = "JSON-RPC-1.0"
ENV_JSONRPC_2 = "JSON-RPC-2.0"
SMD_VERSION = "2.0"

ENVELOPE_TYPES = (ENV_JSONRPC_1, ENV_JSONRPC_2)
TRANSPORT_TYPES = ("POST",)

SERVICE_NAME_PATTERN = re.compile(r"^(?!rpc\.)[a-zA-Z_\x7f-\xff][a-zA-Z0-9_\x7f-\xff.\\]*$")
CONTENT_TYPE_PATTERN = re.compile(r"[a-z]+/[a-z][a-z-]+", re.IGNORECASE)

# Source type name -> SMD type name. Unknown names map to "object".
TYPE_MAP: dict[str, str] = {
    "any": "any",
    "Any": "any",
    "mixed": "any",
    "arr": "array",
    "array": "array",
    "list": "array",
    "tuple": "array",
    "set": "array",
    "frozenset": "array",
    "assoc": "object",
    "dict": "object",
    "hash": "object",
    "object": "object",
    "struct": "object",
    "bool": "boolean",
    "boolean": "boolean",
    "false": "boolean",
    "true": "boolean",
    "dbl": "float",
    "double": "float",
    "float": "float",
    "int": "integer",
    "integer": "integer",
    "nil": "null",
    "null": "null",
    "None": "null",
    "NoneType": "null",
    "void": "null",
    "str": "string",
    "string": "string",
}

# Param option validators; None accepts any value.
_PARAM_OPTION_TYPES: dict[str, type | None] = {
    "name": str,
    "optional": bool,
    "default": None,
    "description": str,
}


class ServiceDefinitionError(JsonSmdError):
    """Raised when a service or descriptor is given an invalid value."""


class DuplicateServiceError(ServiceDefinitionError):
    """Raised when adding a service whose name is already registered."""


def normalize_type(type_name: str, is_return: bool = False) -> str:
    """Map a source type name to its SMD type name.

    Raises:
        ServiceDefinitionError: If a parameter type normalizes to ``null``.
    """
    smd_type = TYPE_MAP.get(type_name, "object")
    if not is_return and smd_type == "null":
        raise ServiceDefinitionError(f'Invalid param type provided ("{type_name}")')
    return smd_type


def _normalize_types(type_spec: Any, is_return: bool = False) -> str | list[str]:
    if isinstance(type_spec, str):
        return normalize_type(type_spec, is_return)
    if isinstance(type_spec, (list, tuple)):
        return [normalize_type(str(t), is_return) for t in type_spec]
    kind = "return" if is_return else "param"
    raise ServiceDefinitionError(
        f"Invalid {kind} type provided ('{type(type_spec).__name__}')"
    )


class Service:
    """SMD description of a single callable method.

    Args:
        definition: Either the service name, or a mapping of options accepted by
            set_options().

    Raises:
        ServiceDefinitionError: If no valid name is provided.
    """

    def __init__(self, definition: str | Mapping[str, Any]) -> None:
        self._name = ""
        self._transport = "POST"
        self._envelope = ENV_JSONRPC_1
        self.target: str | None = None
        self._return: str | list[str] | None = None
        self._params: list[tuple[dict[str, Any], int | None]] = []

        if isinstance(definition, str):
            self.name = definition
        elif isinstance(definition, Mapping):
            self.set_options(definition)

        if not self._name:
            raise ServiceDefinitionError("SMD service description requires a name; none provided")

    def set_options(self, options: Mapping[str, Any]) -> None:
        """Assign known fields.

        Both the construction keys (``params``, ``return``) and the keys of
        to_dict() output (``parameters``, ``returns``) are accepted.
        """
        for key, value in options.items():
            if key == "name":
                self.name = value
            elif key == "transport":
                self.transport = value
            elif key == "envelope":
                self.envelope = value
            elif key == "target":
                self.target = value
            elif key in ("params", "parameters"):
                self.set_params(value)
            elif key in ("return", "returns") and value is not None:
                self.return_type = value

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, name: str) -> None:
        if not isinstance(name, str) or not SERVICE_NAME_PATTERN.match(name):
            raise ServiceDefinitionError(
                f'Invalid name "{name}" provided for service; must follow method naming conventions'
            )
        self._name = name

    @property
    def transport(self) -> str:
        return self._transport

    @transport.setter
    def transport(self, transport: str) -> None:
        if transport not in TRANSPORT_TYPES:
            raise ServiceDefinitionError(
                f'Invalid transport "{transport}"; please select one of ({", ".join(TRANSPORT_TYPES)})'
            )
        self._transport = transport

    @property
    def envelope(self) -> str:
        return self._envelope

    @envelope.setter
    def envelope(self, envelope: str) -> None:
        if envelope not in ENVELOPE_TYPES:
            raise ServiceDefinitionError(
                f'Invalid envelope type "{envelope}"; please specify one of ({", ".join(ENVELOPE_TYPES)})'
            )
        self._envelope = envelope

    @property
    def return_type(self) -> str | list[str] | None:
        return self._return

    @return_type.setter
    def return_type(self, type_spec: str | list[str]) -> None:
        self._return = _normalize_types(type_spec, is_return=True)

    def add_param(
        self,
        type_spec: str | list[str],
        options: Mapping[str, Any] | None = None,
        order: int | None = None,
    ) -> None:
        """Add a parameter.

        Args:
            type_spec: Type name, or list of type names for a union.
            options: Optional ``name``, ``optional``, ``default`` and
                ``description``. Values of the wrong type are dropped.
            order: Explicit position. Unordered params fill the slots left
                free by ordered ones, in the order they were added.
        """
        param: dict[str, Any] = {"type": _normalize_types(type_spec)}
        for key, value in (options or {}).items():
            if key not in _PARAM_OPTION_TYPES:
                continue
            expected = _PARAM_OPTION_TYPES[key]
            if expected is not None and not isinstance(value, expected):
                continue
            param[key] = value
        self._params.append((param, order))

    def add_params(self, params: Iterable[Any] | Mapping[Any, Any]) -> None:
        """Add several params given as option mappings.

        A mapping of params is consumed in sorted key order. Entries that are
        not mappings or have no ``type`` are skipped.
        """
        if isinstance(params, Mapping):
            items = [params[key] for key in sorted(params)]
        else:
            items = list(params)
        for options in items:
            if not isinstance(options, Mapping) or "type" not in options:
                continue
            order = options.get("order")
            self.add_param(options["type"], options, order if isinstance(order, int) else None)

    def set_params(self, params: Iterable[Any] | Mapping[Any, Any]) -> None:
        self._params = []
        self.add_params(params)

    @property
    def params(self) -> list[dict[str, Any]]:
        """Params in their resolved order."""
        slots: dict[int, dict[str, Any]] = {}
        for param, order in self._params:
            if order is not None:
                slots[order] = param
        index = 0
        for param, order in self._params:
            if order is not None:
                continue
            while index in slots:
                index += 1
            slots[index] = param
            index += 1
        return [slots[key] for key in sorted(slots)]

    def to_dict(self, envelope: str | None = None) -> dict[str, Any]:
        """Return the SMD form of this service.

        Args:
            envelope: Envelope to report instead of the service's own, used
                when rendering inside a descriptor.
        """
        data: dict[str, Any] = {"envelope": envelope or self.envelope}
        if self.target:
            data["target"] = self.target
        data["transport"] = self.transport
        data["name"] = self.name
        data["parameters"] = self.params
        data["returns"] = self.return_type
        return data

    def to_json(self) -> str:
        return encode_json({self.name: self.to_dict()})

    def __str__(self) -> str:
        return self.to_json()

    def __repr__(self) -> str:
        return f"Service(name={self.name!r})"


class ServiceDescriptor:
    """Service Mapping Description for a set of services."""

    def __init__(self, **options: Any) -> None:
        self._transport = "POST"
        self._envelope = ENV_JSONRPC_1
        self._content_type = "application/json"
        self.description = ""
        self.target = ""
        self.id = ""
        self.dojo_compatible = False
        self._services: dict[str, Service] = {}
        if options:
            self.set_options(options)

    def set_options(self, options: Mapping[str, Any]) -> None:
        """Assign known fields from wire keys or attribute names.

        Accepts the output of to_dict(); ``SMDVersion`` and the ``methods``
        alias of ``services`` are ignored.
        """
        for key, value in options.items():
            if key == "transport":
                self.transport = value
            elif key == "envelope":
                self.envelope = value
            elif key in ("contentType", "content_type"):
                self.content_type = value
            elif key == "description":
                self.description = value
            elif key == "target":
                self.target = value
            elif key == "id":
                self.id = value
            elif key in ("dojoCompatible", "dojo_compatible"):
                self.dojo_compatible = bool(value)
            elif key == "services":
                self.set_services(value.values() if isinstance(value, Mapping) else value)

    @property
    def transport(self) -> str:
        return self._transport

    @transport.setter
    def transport(self, transport: str) -> None:
        if transport not in TRANSPORT_TYPES:
            raise ServiceDefinitionError(f"Invalid transport '{transport}' specified")
        self._transport = transport

    @property
    def envelope(self) -> str:
        return self._envelope

    @envelope.setter
    def envelope(self, envelope: str) -> None:
        if envelope not in ENVELOPE_TYPES:
            raise ServiceDefinitionError(f"Invalid envelope type '{envelope}'")
        self._envelope = envelope

    @property
    def content_type(self) -> str:
        return self._content_type

    @content_type.setter
    def content_type(self, content_type: str) -> None:
        if not isinstance(content_type, str) or not CONTENT_TYPE_PATTERN.search(content_type):
            raise ServiceDefinitionError(f"Invalid content type '{content_type}' specified")
        self._content_type = content_type

    def add_service(self, service: Service | Mapping[str, Any]) -> None:
        """Register a service.

        Raises:
            ServiceDefinitionError: If service is neither a Service nor a mapping.
            DuplicateServiceError: If a service with the same name exists.
        """
        if isinstance(service, Mapping):
            service = Service(service)
        if not isinstance(service, Service):
            raise ServiceDefinitionError("Invalid service passed to add_service()")
        if service.name in self._services:
            raise DuplicateServiceError(
                f"Attempt to register a service already registered: {service.name}"
            )
        self._services[service.name] = service

    def add_services(self, services: Iterable[Service | Mapping[str, Any]]) -> None:
        for service in services:
            self.add_service(service)

    def set_services(self, services: Iterable[Service | Mapping[str, Any]]) -> None:
        self._services = {}
        self.add_services(services)

    def get_service(self, name: str) -> Service | None:
        return self._services.get(name)

    def get_services(self) -> dict[str, Service]:
        return dict(self._services)

    def remove_service(self, name: str) -> bool:
        if name not in self._services:
            return False
        del self._services[name]
        return True

    def to_dict(self) -> dict[str, Any]:
        """Return the SMD document, or the Dojo form when dojo_compatible."""
        if self.dojo_compatible:
            return self.to_dojo_dict()

        data: dict[str, Any] = {
            "transport": self.transport,
            "envelope": self.envelope,
            "contentType": self.content_type,
            "SMDVersion": SMD_VERSION,
            "description": self.description,
            "target": self.target,
            "id": self.id,
        }
        if not self._services:
            return data

        services = {
            name: service.to_dict(envelope=self.envelope)
            for name, service in self._services.items()
        }
        data["services"] = services
        data["methods"] = services
        return data

    def to_dojo_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"SMDVersion": ".1", "serviceType": "JSON-RPC"}
        if not self._services:
            return data

        methods = []
        for name, service in self._services.items():
            method: dict[str, Any] = {"name": name, "serviceURL": self.target}
            params = [
                {"name": param.get("name", param["type"]), "type": param["type"]}
                for param in service.params
            ]
            if params:
                method["parameters"] = params
            methods.append(method)
        data["methods"] = methods
        return data

    def to_json(self) -> str:
        return encode_json(self.to_dict())

    def __str__(self) -> str:
        return self.to_json()
