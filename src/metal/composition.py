"""Composition: merging member bags onto instance and static tables.

``wrap_all`` is shared by class creation, ``mixin`` and ``include``. It
copies members onto a destination table, wrapping an incoming member only
when it mentions ``_super`` and both it and the member it replaces are
callable.

Pure Python. No third-party dependencies.
"""

import logging
import threading
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Optional

from metal.dispatch import binds_to_receiver, has_super_reference, wrap

logger = logging.getLogger(__name__)

# Serialises every merge. Lookups are never locked.
composition_lock = threading.RLock()


# ── Exceptions ──


class CompositionError(TypeError):
    """Raised for a malformed member bag or class declaration."""


# ── Instance tables ──


def _lookup(mro: tuple, key: str) -> Any:
    for klass in mro:
        namespace = vars(klass)
        if key in namespace:
            return namespace[key]
    raise KeyError(key)


def _keys(mro: tuple, seen: set) -> Iterator[str]:
    for klass in mro:
        for key in vars(klass):
            if key not in seen:
                seen.add(key)
                yield key


class InstanceMembers(MutableMapping):
    """Mutable mapping view over a class's instance members.

    Reads walk the class's MRO, so a child falls back to its parent for
    anything it does not define itself. Writes and deletes only ever touch
    the class itself.

    Args:
        cls: The class whose members are viewed.
    """

    def __init__(self, cls: type) -> None:
        self._cls = cls

    @property
    def owner(self) -> type:
        """The class this view writes to."""
        return self._cls

    def __getitem__(self, key: str) -> Any:
        return _lookup(self._cls.__mro__, key)

    def __setitem__(self, key: str, value: Any) -> None:
        setattr(self._cls, key, value)
        set_name = getattr(type(value), "__set_name__", None)
        if set_name is not None:
            set_name(value, self._cls, key)

    def __delitem__(self, key: str) -> None:
        if key not in vars(self._cls):
            raise KeyError(key)
        delattr(self._cls, key)

    def __iter__(self) -> Iterator[str]:
        return _keys(self._cls.__mro__, set())

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"InstanceMembers({self._cls.__qualname__})"


class PendingMembers(MutableMapping):
    """Instance table of a class that has not been created yet.

    Writes go to the namespace that will be handed to ``type()``; reads
    check that namespace, then the parent's MRO.

    Args:
        namespace: The class namespace being assembled.
        parent: The future base class.
    """

    def __init__(self, namespace: dict, parent: type) -> None:
        self._namespace = namespace
        self._parent = parent

    def __getitem__(self, key: str) -> Any:
        if key in self._namespace:
            return self._namespace[key]
        return _lookup(self._parent.__mro__, key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._namespace[key] = value

    def __delitem__(self, key: str) -> None:
        del self._namespace[key]

    def __iter__(self) -> Iterator[str]:
        seen = set(self._namespace)
        yield from self._namespace
        yield from _keys(self._parent.__mro__, seen)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"PendingMembers({self._parent.__qualname__} subclass)"


# ── Merge ──


def check_members(members: Optional[Mapping], what: str = "members") -> None:
    """Reject anything that is neither None nor a mapping.

    Raises:
        CompositionError: If ``members`` is not a mapping.
    """
    if members is not None and not isinstance(members, Mapping):
        raise CompositionError(
            f"{what} must be a mapping of name to value, got {type(members).__name__}"
        )


def wrap_all(dest: MutableMapping, source: Optional[Mapping]) -> MutableMapping:
    """Merge ``source`` onto ``dest`` in place, wrapping super-referencing overrides.

    For every key, the member already installed in ``dest`` (if any) is the
    one an incoming ``_super`` call reaches. When there is nothing callable
    to reach, or the incoming member is not called with a receiver (builtins,
    callable instances, ``staticmethod`` objects), it is installed as-is.

    Args:
        dest: The table to update. A dict for static members or an
            InstanceMembers/PendingMembers view for instance members.
        source: Members to merge. None or an empty mapping changes nothing.

    Returns:
        ``dest``, for chaining.

    Raises:
        CompositionError: If ``source`` is not a mapping.
    """
    check_members(source)
    if not source:
        return dest

    with composition_lock:
        for name, method in source.items():
            super_method = dest.get(name)
            if (
                has_super_reference(method)
                and binds_to_receiver(method)
                and callable(method)
                and callable(super_method)
            ):
                dest[name] = wrap(method, super_method)
                logger.debug("Wrapped %s over its previous implementation", name)
            else:
                dest[name] = method
                logger.debug("Installed %s", name)
    return dest
