"""Typed exception hierarchy for jsonsmd."""

from __future__ import annotations


class JsonSmdError(Exception):
    """Base class for all jsonsmd errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(JsonSmdError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class LoadError(JsonSmdError):
    """Raised when a JSON document on disk cannot be read or decoded."""

    pass
