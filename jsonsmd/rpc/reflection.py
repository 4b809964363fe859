"""Signature discovery for registered handlers.

Builds explicit MethodSignature records from functions, classes and objects
using ``inspect`` and ``typing.get_type_hints``. The dispatcher only ever
consumes these records, so handlers can also be described by hand and loaded
with Dispatcher.load_functions().
"""

from __future__ import annotations

import inspect
import logging
import re
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Google-style "name: description" or "name (type): description" lines
_ARG_LINE = re.compile(r"^\s*\*{0,2}(\w+)(?:\s*\([^)]*\))?\s*:\s*(.*)$")


@dataclass
class ParameterInfo:
    """A single declared parameter.

    Attributes:
        name: Parameter name.
        types: Admissible type names, e.g. ["int"] or ["int", "str"].
        optional: True when the caller may omit the parameter.
        default: Declared default value (only meaningful if has_default).
        has_default: True when the parameter declares a default.
        description: Text from the handler docstring's Args section.
        kind: The inspect.Parameter kind of the parameter.
    """

    name: str
    types: list[str] = field(default_factory=lambda: ["any"])
    optional: bool = False
    default: Any = None
    has_default: bool = False
    description: str = ""
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD


@dataclass
class MethodSignature:
    """Everything the dispatcher needs to know about one handler.

    Attributes:
        name: Public method name.
        callback: The callable invoked for this method.
        parameters: Declared parameters in declaration order.
        return_types: Admissible return type names.
        accepts_varargs: True when the callable takes ``*args``.
    """

    name: str
    callback: Callable[..., Any]
    parameters: list[ParameterInfo] = field(default_factory=list)
    return_types: list[str] = field(default_factory=lambda: ["any"])
    accepts_varargs: bool = False

    @property
    def required_count(self) -> int:
        """Number of leading parameters that must be supplied."""
        return sum(1 for p in self.positional_parameters if not p.optional)

    @property
    def positional_parameters(self) -> list[ParameterInfo]:
        return [
            p
            for p in self.parameters
            if p.kind
            in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        ]


def type_names(annotation: Any) -> list[str]:
    """Return the type names an annotation admits, deduplicated in order."""
    if annotation is inspect.Parameter.empty or annotation is typing.Any:
        return ["any"]
    if annotation is None or annotation is type(None):
        return ["None"]
    if isinstance(annotation, str):
        return [annotation]

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        names: list[str] = []
        for arg in typing.get_args(annotation):
            for name in type_names(arg):
                if name not in names:
                    names.append(name)
        return names
    if origin is not None:
        annotation = origin
    return [getattr(annotation, "__name__", str(annotation))]


def _param_descriptions(func: Callable[..., Any]) -> dict[str, str]:
    """Parse the Args section of a Google-style docstring."""
    doc = inspect.getdoc(func)
    if not doc:
        return {}

    descriptions: dict[str, str] = {}
    in_args = False
    current: str | None = None
    for line in doc.splitlines():
        stripped = line.strip()
        if stripped in ("Args:", "Arguments:", "Parameters:"):
            in_args = True
            continue
        if not in_args:
            continue
        if not stripped:
            current = None
            continue
        if stripped.endswith(":") and not line.startswith((" ", "\t")):
            break  # Next section
        match = _ARG_LINE.match(line)
        if match and line.startswith((" ", "\t")) and (
            len(line) - len(line.lstrip()) <= 4
        ):
            current = match.group(1)
            descriptions[current] = match.group(2).strip()
        elif current is not None:
            descriptions[current] = f"{descriptions[current]} {stripped}".strip()
    return descriptions


def _resolve_hints(func: Callable[..., Any]) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except Exception as e:
        # Unresolvable forward references fall back to the raw annotations
        logger.debug("Could not resolve type hints for %r: %s", func, e)
        return dict(getattr(func, "__annotations__", {}) or {})


def reflect_function(func: Callable[..., Any], name: str | None = None) -> MethodSignature:
    """Build a MethodSignature for a callable.

    Args:
        func: Function, bound method or other callable.
        name: Public name. Defaults to the callable's ``__name__``.

    Raises:
        TypeError: If func is not callable or has no inspectable signature.
    """
    if not callable(func):
        raise TypeError(f"Expected a callable, got {type(func).__name__}")

    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise TypeError(f"Cannot inspect signature of {func!r}: {e}") from e

    hints = _resolve_hints(func)
    descriptions = _param_descriptions(func)

    parameters: list[ParameterInfo] = []
    accepts_varargs = False
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            accepts_varargs = True
            continue
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            continue

        annotation = hints.get(param.name, param.annotation)
        # None in a parameter union only signals optionality
        names = [n for n in type_names(annotation) if n not in ("None", "NoneType")] or ["any"]
        has_default = param.default is not inspect.Parameter.empty
        parameters.append(
            ParameterInfo(
                name=param.name,
                types=names,
                optional=has_default,
                default=param.default if has_default else None,
                has_default=has_default,
                description=descriptions.get(param.name, ""),
                kind=param.kind,
            )
        )

    return_annotation = hints.get("return", signature.return_annotation)
    return MethodSignature(
        name=name or getattr(func, "__name__", type(func).__name__),
        callback=func,
        parameters=parameters,
        return_types=type_names(return_annotation),
        accepts_varargs=accepts_varargs,
    )


def reflect_class(target: Any, *args: Any, **kwargs: Any) -> list[MethodSignature]:
    """Build MethodSignatures for every public method of a class or object.

    When target is a class it is instantiated with ``args``/``kwargs`` and the
    bound methods of the instance are reflected. Names starting with an
    underscore are skipped.
    """
    instance = target(*args, **kwargs) if inspect.isclass(target) else target

    signatures = []
    for attr_name, member in inspect.getmembers(instance, callable):
        if attr_name.startswith("_") or inspect.isclass(member):
            continue
        signatures.append(reflect_function(member, attr_name))
    logger.debug(
        "Reflected %d methods from %s", len(signatures), type(instance).__name__
    )
    return signatures
