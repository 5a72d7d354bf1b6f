"""Classes and mixins: single inheritance with super-dispatch.

Every metal class is built by ``ClassMeta`` and owns two member tables:

- instance members, held in the class namespace and falling back to the
  parent through the MRO;
- static members, a per-class dict copied from the parent when the class
  is created. Static functions are bound to the class on access.

New classes come from ``Parent.extend(...)`` or from an ordinary ``class``
statement; both merge their members with ``wrap_all`` so overrides can
reach the member they replace through ``_super``. ``mixin`` and
``include`` merge more members onto a class that already exists.

Usage::

    Animal = Class.extend({"speak": lambda self: "..."})

    class Dog(Animal):
        def speak(self):
            return "Woof " + self._super()

    Dog().speak()  # 'Woof ...'

Pure Python. No third-party dependencies.
"""

import logging
import sys
from collections.abc import Mapping
from typing import Any, Optional

from metal.composition import (
    CompositionError,
    InstanceMembers,
    PendingMembers,
    check_members,
    composition_lock,
    wrap_all,
)
from metal.dispatch import SuperSlot, bind

logger = logging.getLogger(__name__)

# ── Constants ──

# Namespace keys handed to type() as-is instead of being merged
_RESERVED_NAMESPACE_KEYS = frozenset({
    "__module__",
    "__qualname__",
    "__doc__",
    "__classcell__",
    "__slots__",
    "__init_subclass__",
    "__class_getitem__",
    "__statics__",
    "__superclass__",
})

# Composition methods that instance members of the same name never hide
_CLASS_API = frozenset({"extend", "mixin", "include"})


def _caller_module() -> Optional[str]:
    """Module name of whoever called the function that calls this one."""
    try:
        return sys._getframe(2).f_globals.get("__name__")
    except ValueError:
        return None


# ── Metaclass ──


class ClassMeta(type):
    """Metaclass of every metal class.

    Class statements pass their body through ``wrap_all`` against the
    parent, and may pass static members with the ``statics`` keyword::

        class Registry(Class, statics={"default": None}):
            ...

    Raises:
        CompositionError: If the class statement names more than one base,
            or ``statics`` is not a mapping.
    """

    _super = SuperSlot()

    def __new__(mcls, name, bases, namespace, *, statics=None, **kwargs):
        if len(bases) > 1:
            raise CompositionError(
                f"{name}: metal classes have a single base, got {len(bases)}"
            )
        check_members(statics, "statics")
        parent = bases[0] if bases else object

        class_namespace = {k: v for k, v in namespace.items() if k in _RESERVED_NAMESPACE_KEYS}
        members = {k: v for k, v in namespace.items() if k not in _RESERVED_NAMESPACE_KEYS}
        class_namespace["__statics__"] = dict(getattr(parent, "__statics__", {}))
        class_namespace["__superclass__"] = bases[0] if bases else None
        if not isinstance(parent, ClassMeta):
            class_namespace["_super"] = SuperSlot()

        # type() must receive the merged body: __init_subclass__,
        # __set_name__ and the __eq__/__hash__ rule all read it.
        with composition_lock:
            wrap_all(class_namespace["__statics__"], statics)
            wrap_all(PendingMembers(class_namespace, parent), members)
            cls = super().__new__(mcls, name, bases, class_namespace, **kwargs)
        logger.debug("Created class %s (parent %s)", name, parent.__name__)
        return cls

    def __init__(cls, name, bases, namespace, **kwargs):
        super().__init__(name, bases, namespace)

    def __getattribute__(cls, name):
        if not name.startswith("__"):
            statics = type.__getattribute__(cls, "__statics__")
            if name in statics:
                return bind(statics[name], cls)
            if name in _CLASS_API:
                metaclass = type(cls)
                return getattr(metaclass, name).__get__(cls, metaclass)
        return type.__getattribute__(cls, name)

    @property
    def superclass(cls) -> Optional[type]:
        """The class this one extends, or None for the root."""
        return cls.__superclass__

    @property
    def instance_members(cls) -> InstanceMembers:
        """Live view of the instance member table."""
        return InstanceMembers(cls)

    @property
    def static_members(cls) -> dict:
        """The live static member table."""
        return cls.__statics__

    def extend(cls, instance_members=None, static_members=None, *, name=None, module=None):
        """Create a subclass.

        The subclass's static table starts as a copy of this class's; its
        instance lookups fall back to this class. A supplied ``__init__``
        that calls ``self._super(...)`` can run this class's initialiser;
        one that does not replaces it. Without ``__init__`` the subclass
        initialises exactly as this class does.

        Args:
            instance_members: Mapping of instance members for the subclass.
            static_members: Mapping of static members for the subclass.
            name: Class name. Defaults to this class's name.
            module: Value for ``__module__``. Defaults to the calling module.

        Returns:
            The new class.

        Raises:
            CompositionError: If either member bag is not a mapping.
        """
        check_members(instance_members, "instance_members")
        namespace = {"__module__": module or _caller_module() or cls.__module__}
        namespace.update(instance_members or {})
        return ClassMeta(name or cls.__name__, (cls,), namespace, statics=static_members)

    def mixin(cls, instance_members):
        """Merge members onto the instance table of this class. Returns the class."""
        wrap_all(InstanceMembers(cls), instance_members)
        return cls

    def include(cls, static_members):
        """Merge members onto the static table of this class. Returns the class."""
        wrap_all(cls.__statics__, static_members)
        return cls


# ── Root class ──


class Class(metaclass=ClassMeta):
    """Root of the metal class hierarchy.

    Construction forwards every argument to ``initialize``, which does
    nothing unless a subclass or mixin provides it.
    """

    def __init__(self, *args, **kwargs):
        self.initialize(*args, **kwargs)

    def initialize(self, *args, **kwargs):
        """Called with the constructor arguments. Override freely."""


# ── Mixin ──


class Mixin(dict):
    """A reusable bag of members.

    Any mapping works with ``mixin``/``include``; this type just names the
    intent and makes ``is_mixin`` possible::

        Serializable = Mixin(to_dict=lambda self: dict(vars(self)))
        Point.mixin(Serializable)
    """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict.__repr__(self)})"


# ── Library surface ──


def create_type(
    parent: Optional[type] = None,
    instance_members: Optional[Mapping] = None,
    static_members: Optional[Mapping] = None,
    *,
    name: Optional[str] = None,
) -> type:
    """Create a metal class extending ``parent``.

    ``parent`` defaults to ``Class``. Any single Python class works,
    e.g. ``Exception``; the result is a metal class either way.
    """
    if parent is None:
        parent = Class
    return ClassMeta.extend(
        parent, instance_members, static_members, name=name, module=_caller_module()
    )


def apply_instance_mixin(cls: type, members: Optional[Mapping]) -> type:
    """Merge ``members`` onto the instance table of ``cls``."""
    return ClassMeta.mixin(cls, members)


def apply_static_mixin(cls: type, members: Optional[Mapping]) -> type:
    """Merge ``members`` onto the static table of ``cls``."""
    return ClassMeta.include(cls, members)


def instantiate(cls: type, *args: Any, **kwargs: Any) -> Any:
    """Create an instance of ``cls``."""
    return cls(*args, **kwargs)


def is_class(value: Any) -> bool:
    """Whether ``value`` is a ``Class`` instance or a class derived from ``Class``.

    ``Class`` itself, and metal classes built over other bases such as
    ``MetalError``, are not.
    """
    if isinstance(value, Class):
        return True
    return isinstance(value, type) and issubclass(value, Class) and value is not Class


def is_mixin(value: Any) -> bool:
    """Whether ``value`` is a ``Mixin``."""
    return isinstance(value, Mixin)
