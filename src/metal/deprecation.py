"""Deprecation notices, logged once per distinct message.

Usage::

    deprecate({"prev": "Class.create", "next": "Class.extend", "url": "/docs#extend"})
    # WARNING metal.deprecation: Deprecation warning: Class.create is going to be
    # removed in the future. Please use Class.extend instead. See: /docs#extend

Notices go to the ``metal.deprecation`` logger at WARNING level. Configure
or silence them through ``logging`` like any other library logger.

Pure Python. No third-party dependencies.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Messages already emitted in this process
_cache: set[str] = set()
_cache_lock = threading.Lock()


def format_message(previous: Any, replacement: Any, url: Optional[str] = None) -> str:
    """Build the standard "X is going to be removed" message."""
    message = (
        f"{previous} is going to be removed in the future. "
        f"Please use {replacement} instead."
    )
    if url:
        message += f" See: {url}"
    return message


def deprecate(message: Any, test: Any = None) -> None:
    """Log a deprecation notice unless the same notice was already logged.

    Args:
        message: The notice, or a mapping with ``prev``, ``next`` and an
            optional ``url`` formatted with ``format_message``.
        test: When truthy, nothing is logged or remembered.
    """
    if test:
        return

    if isinstance(message, Mapping):
        message = format_message(message.get("prev"), message.get("next"), message.get("url"))
    message = str(message)

    with _cache_lock:
        if message in _cache:
            return
        _cache.add(message)
    logger.warning("Deprecation warning: %s", message)
