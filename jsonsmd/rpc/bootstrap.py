"""Server component bootstrap for jsonsmd.

Wires a Dispatcher from configuration and registration targets, and sets up
logging for the server process.

Usage:
    configure_server_logging(logging.INFO, Path(".jsonsmd/logs"))
    dispatcher = build_dispatcher(config.smd, [Calculator])
    await run_http_server(dispatcher, config.server.port)
"""

from __future__ import annotations

import inspect
import logging
import sys
from collections.abc import Iterable
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jsonsmd.rpc.dispatcher import Dispatcher
from jsonsmd.rpc.http import HttpResponse

if TYPE_CHECKING:
    from jsonsmd.config.schema import SmdConfig

logger = logging.getLogger(__name__)

LOGGER_NAME = "jsonsmd"


def configure_server_logging(
    level: int = logging.INFO,
    log_dir: Path | None = None,
    console_level: int = logging.WARNING,
) -> Path | None:
    """Configure logging for the jsonsmd namespace.

    Console output always goes to stderr. When log_dir is given, records are
    also written to ``{log_dir}/server.log`` with rotation (max 5MB per file,
    3 backup files).

    Args:
        level: Logging level for file output (default INFO).
        log_dir: Directory for server.log. Created if it doesn't exist.
        console_level: Logging level for console output (default WARNING).

    Returns:
        Path to the server.log file, or None when only console logging is set up.
    """
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)

    root = logging.getLogger(LOGGER_NAME)
    # Remove any existing handlers to avoid duplicates on reconfigure
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console_handler)
    root.propagate = False

    log_file: Path | None = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "server.log"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        root.setLevel(min(level, console_level))
    else:
        root.setLevel(console_level)

    logger.info("Server logging configured: %s", log_file or "console")
    return log_file


def register_target(dispatcher: Dispatcher, target: Any) -> None:
    """Register a function, class or object on the dispatcher."""
    if inspect.isroutine(target):
        dispatcher.add_function(target)
    else:
        dispatcher.set_class(target)


def build_dispatcher(smd: SmdConfig | None = None, targets: Iterable[Any] = ()) -> Dispatcher:
    """Create a Dispatcher for HTTP serving.

    Args:
        smd: Service map settings applied before registration.
        targets: Functions, classes or objects to register, in order.

    Returns:
        A Dispatcher producing HttpResponse objects.
    """
    dispatcher = Dispatcher(response_class=HttpResponse)
    if smd is not None:
        dispatcher.envelope = smd.envelope
        dispatcher.content_type = smd.content_type
        dispatcher.dojo_compatible = smd.dojo_compatible
        if smd.target is not None:
            dispatcher.target = smd.target
        if smd.id is not None:
            dispatcher.id = smd.id
        if smd.description is not None:
            dispatcher.description = smd.description

    for target in targets:
        register_target(dispatcher, target)

    logger.debug("Dispatcher built with %d methods", len(dispatcher.get_functions()))
    return dispatcher
