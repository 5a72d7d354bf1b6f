"""Dispatch wrapper: super-reference binding for overriding members.

An override that mentions ``_super`` is wrapped together with the
implementation it shadows. For the duration of one call, ``self._super``
(or ``cls._super`` for static members) resolves to that shadowed
implementation, bound to the same receiver.

The binding is call-local: it lives in a context variable keyed by
receiver identity rather than on the instance, so threads and asyncio
tasks calling into the same object never see each other's binding.

Pure Python. No third-party dependencies.
"""

import functools
import inspect
import logging
import re
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

# ── Constants ──

# Name an override uses to reach the implementation it shadows
SUPER_TOKEN = "_super"

# Whole-word match, so `supervisor` or `self._superb` do not count
_SUPER_PATTERN = re.compile(r"\b%s\b" % re.escape(SUPER_TOKEN))

_NO_BINDINGS: Mapping[int, Any] = MappingProxyType({})

# receiver id -> shadowed implementation, for the calls active in this context
_super_bindings: ContextVar[Mapping[int, Any]] = ContextVar(
    "metal_super_bindings", default=_NO_BINDINGS
)


# ── Binding ──


def bind(value: Any, receiver: Any) -> Any:
    """Bind a table value to ``receiver`` the way attribute access would.

    Plain functions and other descriptors become bound methods of the
    receiver; ``classmethod``/``staticmethod`` objects resolve against the
    receiver's class (or the receiver itself when it is a class). Classes
    and callables without ``__get__`` are returned unchanged.
    """
    if value is None:
        return None
    if isinstance(value, (classmethod, staticmethod)):
        owner = receiver if isinstance(receiver, type) else type(receiver)
        return value.__get__(None, owner)
    if isinstance(value, type):
        return value
    getter = getattr(type(value), "__get__", None)
    if getter is None:
        return value
    return getter(value, receiver, type(receiver))


def binds_to_receiver(value: Any) -> bool:
    """Whether attribute access passes the receiver to ``value`` as its first argument.

    True for functions and other method descriptors. False for classes,
    ``staticmethod``/``classmethod`` objects and callables without
    ``__get__`` such as builtins and callable instances.
    """
    if isinstance(value, (type, staticmethod, classmethod)):
        return False
    return getattr(type(value), "__get__", None) is not None


def current_super(receiver: Any) -> Any:
    """Return the raw implementation currently shadowed for ``receiver``, or None."""
    return _super_bindings.get().get(id(receiver))


class SuperSlot:
    """Read-only ``_super`` attribute.

    Installed on the root of every metal class hierarchy (instance level)
    and on the metaclass (class level, for static members). Reads return the
    receiver's current super reference, bound to the receiver, or None
    outside a wrapped call.
    """

    def __get__(self, obj: Any, owner: Optional[type] = None) -> Any:
        if obj is None:
            return self
        return bind(current_super(obj), obj)

    def __set__(self, obj: Any, value: Any) -> None:
        raise AttributeError(f"{SUPER_TOKEN} is managed by the dispatch wrapper")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {SUPER_TOKEN}>"


# ── Wrapper ──


def wrap(method: Callable, super_method: Callable) -> Callable:
    """Wrap ``method`` so that ``receiver._super`` is ``super_method`` while it runs.

    The returned function keeps ``method``'s name, docstring and signature.
    The previous binding is restored when the call ends, whether it returns
    or raises, so nested and recursive super chains unwind in order.

    Args:
        method: The overriding implementation. Called as ``method(receiver, ...)``.
        super_method: The implementation ``method`` shadows.

    Returns:
        The wrapping function.
    """

    @functools.wraps(method)
    def wrapper(receiver, *args, **kwargs):
        bindings = dict(_super_bindings.get())
        bindings[id(receiver)] = super_method
        token = _super_bindings.set(MappingProxyType(bindings))
        try:
            return method(receiver, *args, **kwargs)
        finally:
            _super_bindings.reset(token)

    return wrapper


# ── Heuristic ──


def has_super_reference(candidate: Any) -> bool:
    """Decide whether ``candidate`` needs wrapping.

    Non-callables never do. For callables the source text is searched for
    the ``_super`` token as a whole word. When no source is available
    (builtins, ``exec``-generated functions, callable instances) the answer
    is True.
    """
    if not callable(candidate):
        return False
    try:
        source = inspect.getsource(candidate)
    except (OSError, TypeError):
        logger.debug("No source for %r, assuming it references %s", candidate, SUPER_TOKEN)
        return True
    return _SUPER_PATTERN.search(source) is not None
