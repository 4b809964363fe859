"""Implementations of the ``smd`` and ``call`` subcommands.

Each command returns a process exit code. Results go to stdout as JSON and
diagnostics go to stderr.
"""

from __future__ import annotations

import importlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from jsonsmd.client import ClientError, HttpError, JsonRpcClient, RemoteError
from jsonsmd.cli.output import print_error, print_info, print_json
from jsonsmd.config.loader import load_config
from jsonsmd.config.schema import Config
from jsonsmd.core.errors import JsonSmdError, LoadError
from jsonsmd.rpc.bootstrap import build_dispatcher
from jsonsmd.rpc.cache import load_or_save_smd
from jsonsmd.rpc.protocol import encode_json

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "JSONSMD_CONFIG"


def load_target(target_name: str) -> Any:
    """Resolve ``module:attribute`` (attribute may be dotted) to an object.

    Raises:
        LoadError: If the module or attribute cannot be found.
    """
    module_name, sep, attr_path = target_name.partition(":")
    if not sep or not module_name or not attr_path:
        raise LoadError(f"Target must look like module:attribute, got {target_name!r}")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise LoadError(f"Cannot import module {module_name!r}: {e}") from e

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise LoadError(f"{module_name!r} has no attribute {attr_path!r}") from e
    return target


def resolve_config(path: Path | None) -> Config:
    """Load config from an explicit path, $JSONSMD_CONFIG or the working directory."""
    if path is None and os.environ.get(CONFIG_ENV_VAR):
        path = Path(os.environ[CONFIG_ENV_VAR])
    return load_config(path)


def cmd_smd(targets: list[str], config_path: Path | None = None, dojo: bool = False) -> int:
    """Print the SMD document for the given targets."""
    try:
        config = resolve_config(config_path)
        dispatcher = build_dispatcher(config.smd, [load_target(t) for t in targets])
    except JsonSmdError as e:
        print_error(e.message)
        return 1

    if dojo:
        print_json(encode_json(dispatcher.service_map.to_dojo_dict()))
        return 0

    document: str | None = None
    if config.smd_cache is not None:
        document = load_or_save_smd(config.smd_cache, dispatcher)
        if document is None:
            print_info(f"SMD cache unavailable: {config.smd_cache}")
    print_json(document or dispatcher.service_map.to_json())
    return 0


def _parse_params(raw: str | None) -> list[Any] | dict[str, Any] | None:
    if raw is None:
        return None
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ClientError(f"Params are not valid JSON: {e}") from e
    if not isinstance(params, (list, dict)):
        raise ClientError("Params must be a JSON array or object")
    return params


async def cmd_call(
    url: str,
    method: str,
    params: str | None = None,
    version: str = "2.0",
    timeout: float = 30.0,
) -> int:
    """Call a remote method and print its result."""
    try:
        parsed = _parse_params(params)
        async with JsonRpcClient(url, timeout=timeout, version=version) as client:
            result = await client.call(method, parsed)
    except RemoteError as e:
        print_error(str(e))
        return 2
    except HttpError as e:
        print_error(e.message)
        return 3
    except ClientError as e:
        print_error(e.message)
        return 1

    print_json(encode_json(result))
    return 0
