"""File cache for SMD documents.

Every function reports failure through its return value (False or None)
instead of raising, so a broken cache never takes the server down.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jsonsmd.rpc.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


def save_smd(path: Path | str, dispatcher: Dispatcher) -> bool:
    """Write the dispatcher's SMD document to path.

    Returns:
        True if a non-empty document was written, False otherwise.
    """
    path = Path(path)
    if not path.exists() and not os.access(path.parent, os.W_OK):
        logger.debug("SMD cache directory not writable: %s", path.parent)
        return False

    try:
        written = path.write_text(dispatcher.service_map.to_json(), encoding="utf-8")
    except (OSError, TypeError, ValueError) as e:
        logger.debug("Failed to write SMD cache %s: %s", path, e)
        return False
    return written > 0


def get_smd(path: Path | str) -> str | None:
    """Read a cached SMD document.

    Returns:
        The document text, or None if missing or unreadable.
    """
    path = Path(path)
    if not path.is_file():
        return None

    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.debug("Failed to read SMD cache %s: %s", path, e)
        return None


def delete_smd(path: Path | str) -> bool:
    """Delete a cached SMD document.

    Returns:
        True if the file existed and was removed.
    """
    path = Path(path)
    try:
        path.unlink()
    except OSError:
        return False
    return True


def load_or_save_smd(path: Path | str, dispatcher: Dispatcher) -> str | None:
    """Return the cached SMD document, writing it first if absent."""
    cached = get_smd(path)
    if cached is not None:
        logger.debug("Using cached SMD: %s", path)
        return cached
    if not save_smd(path, dispatcher):
        return None
    return get_smd(path)
