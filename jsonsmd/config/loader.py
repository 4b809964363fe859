"""Configuration loading with fail-fast behavior.

An explicit path must exist. Without one, ``jsonsmd.json`` in the working
directory is used when present; otherwise pydantic defaults apply.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from jsonsmd.config.load_utils import load_json_file, load_json_file_optional
from jsonsmd.config.schema import Config
from jsonsmd.core.errors import ConfigError, LoadError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "jsonsmd.json"


def load_config(path: Path | None = None, cwd: Path | None = None) -> Config:
    """Load and validate configuration.

    Args:
        path: Explicit config file path. Must exist when given.
        cwd: Directory searched for jsonsmd.json. Defaults to Path.cwd().

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If a config file is missing (explicit path only),
            contains invalid JSON, or fails validation.
    """
    if path is not None:
        try:
            data = load_json_file(path, error_context="config")
        except LoadError as e:
            raise ConfigError(e.message) from e
        source = path
    else:
        source = (cwd or Path.cwd()) / CONFIG_FILENAME
        try:
            found = load_json_file_optional(source, error_context="config")
        except LoadError as e:
            raise ConfigError(e.message) from e
        if found is None:
            logger.debug("No config file found, using defaults")
            return Config()
        data = found

    logger.info("Config loaded from: %s", source)
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed for {source}: {e}") from e
