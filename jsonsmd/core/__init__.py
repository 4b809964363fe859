"""Core error types shared across jsonsmd."""

from jsonsmd.core.errors import ConfigError, JsonSmdError, LoadError

__all__ = [
    "JsonSmdError",
    "ConfigError",
    "LoadError",
]
