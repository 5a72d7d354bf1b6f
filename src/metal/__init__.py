"""metal: classes, mixins and super-dispatch composed at runtime."""

from metal.composition import (
    CompositionError,
    InstanceMembers,
    wrap_all,
)
from metal.deprecation import deprecate, format_message
from metal.dispatch import (
    SUPER_TOKEN,
    has_super_reference,
    wrap,
)
from metal.errors import MetalError
from metal.klass import (
    Class,
    ClassMeta,
    Mixin,
    apply_instance_mixin,
    apply_static_mixin,
    create_type,
    instantiate,
    is_class,
    is_mixin,
)

__version__ = "0.1.0"

__all__ = [
    # Classes
    "Class",
    "ClassMeta",
    "Mixin",
    "create_type",
    "apply_instance_mixin",
    "apply_static_mixin",
    "instantiate",
    "is_class",
    "is_mixin",
    # Composition
    "wrap_all",
    "InstanceMembers",
    "CompositionError",
    # Dispatch
    "wrap",
    "has_super_reference",
    "SUPER_TOKEN",
    # Errors
    "MetalError",
    # Deprecation
    "deprecate",
    "format_message",
]
