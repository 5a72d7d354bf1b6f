"""MetalError: an exception that carries a help URL and a clean stack.

``MetalError`` is itself a metal class, so applications derive their own
errors with ``MetalError.extend(...)`` or a class statement and can
``mixin`` behaviour onto them like any other class.

Pure Python. No third-party dependencies.
"""

import traceback
from collections.abc import Mapping
from pathlib import Path

from metal.klass import ClassMeta

# ── Constants ──

# Option keys copied onto the error; anything else in options is ignored
ERROR_FIELDS = ("description", "file_name", "line_number", "name", "message", "number")

# Frames from files under this directory are left out of captured stacks
_PACKAGE_DIR = str(Path(__file__).resolve().parent)


# ── Exceptions ──


class MetalError(Exception, metaclass=ClassMeta):
    """Base error with an optional help URL.

    Usage::

        raise MetalError("Index out of range", {"url": "/errors#range"})
        # MetalError: Index out of range See: http://github.com/thejameskyle/metal.js/errors#range

    Args:
        message: Description of the error, or a mapping used as ``options``.
        options: Mapping with optional ``message``, ``url`` and any of
            ``ERROR_FIELDS``.

    Attributes:
        message: Description of the error.
        name: Name used when rendering. Defaults to the class name.
        url: ``url_root`` joined with ``options["url"]``. Only set when
            a url was given.
        stack: Stack at construction time, without metal's own frames.
    """

    url_root = "http://github.com/thejameskyle/metal.js"

    def __init__(self, message=None, options=None):
        if options is None:
            options = {}
        if isinstance(message, Mapping):
            options = message
            message = options.get("message")

        self._super(message)
        self.name = type(self).__name__
        self.message = message
        for field in ERROR_FIELDS:
            if field in options:
                setattr(self, field, options[field])

        self.capture_stack_trace()

        if options.get("url"):
            self.url = self.url_root + options["url"]

    def capture_stack_trace(self):
        """Record the current stack on ``self.stack``, skipping frames inside metal."""
        frames = [
            frame for frame in traceback.extract_stack()
            if not frame.filename.startswith(_PACKAGE_DIR)
        ]
        self.stack = traceback.StackSummary.from_list(frames)

    def __str__(self):
        rendered = f"{self.name}: {self.message}"
        url = getattr(self, "url", None)
        if url:
            rendered += f" See: {url}"
        return rendered
