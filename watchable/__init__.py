"""
Watchable - Observable Value Cells
==================================

A ``Watchable`` holds one value and synchronously notifies listeners whenever
it is replaced. Cells serialize to JSON and MessagePack while keeping the
runtime type of their value.
"""

from .cell import Watchable, watch
from .exceptions import (
    InvalidArgument,
    ListenerDispatchError,
    SerializationError,
    TypeResolutionError,
    WatchableError,
)
from .listener import ChangeListener, ComposedListener, and_then
from .notifier import ChangeNotifier, DispatchPolicy
from .registry import (
    TypeDescriptor,
    TypeRegistry,
    _reset_type_registry,
    default_registry,
    qualified_name,
    register_builtin_types,
    register_type,
)

__all__ = [
    # Cell
    "Watchable",
    "watch",
    # Listeners
    "ChangeListener",
    "ComposedListener",
    "and_then",
    "ChangeNotifier",
    "DispatchPolicy",
    # Type registry
    "TypeDescriptor",
    "TypeRegistry",
    "default_registry",
    "register_type",
    "register_builtin_types",
    "qualified_name",
    # Exceptions
    "WatchableError",
    "InvalidArgument",
    "TypeResolutionError",
    "SerializationError",
    "ListenerDispatchError",
    # Testing utilities (internal use)
    "_reset_type_registry",
]
