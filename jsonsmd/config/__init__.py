"""Configuration models and loading."""

from jsonsmd.config.loader import load_config
from jsonsmd.config.schema import Config, ServerConfig, SmdConfig

__all__ = ["Config", "ServerConfig", "SmdConfig", "load_config"]
