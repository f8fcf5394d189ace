"""
Watchable Listeners - Change Callbacks and Composition
======================================================

A change listener is any callable taking ``(old_value, new_value)``. Listeners
are plain functions in the common case; ``ComposedListener`` lets two of them be
chained into a single value that can be registered once.

Example:
    ```python
    log = []
    first = lambda old, new: log.append(("first", old, new))
    second = lambda old, new: log.append(("second", old, new))

    both = and_then(first, second)
    both(1, 2)
    # log == [("first", 1, 2), ("second", 1, 2)]
    ```
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Protocol, TypeVar, runtime_checkable

from .exceptions import InvalidArgument

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


@runtime_checkable
class ChangeListener(Protocol[T_contra]):
    """Protocol for callables notified with the previous and the new value."""

    def __call__(self, old_value: T_contra, new_value: T_contra) -> Any: ...


def ensure_listener(listener: Any, role: str = "listener") -> Callable[[Any, Any], Any]:
    """Reject absent or non-callable listeners with ``InvalidArgument``."""
    if listener is None:
        raise InvalidArgument(f"{role} must not be None")
    if not callable(listener):
        raise InvalidArgument(f"{role} must be callable, got {type(listener).__name__}")
    return listener


@dataclass(frozen=True)
class ComposedListener(Generic[T]):
    """
    A listener that runs ``first`` and then ``second`` with the same pair.

    Instances are immutable values. They are not attached to any cell until
    passed to ``Watchable.watch``.
    """

    first: Callable[[T, T], Any]
    second: Callable[[T, T], Any]

    def __call__(self, old_value: T, new_value: T) -> None:
        self.first(old_value, new_value)
        self.second(old_value, new_value)

    def and_then(self, after: Callable[[T, T], Any]) -> "ComposedListener[T]":
        return and_then(self, after)


def and_then(
    first: Callable[[T, T], Any], second: Callable[[T, T], Any]
) -> ComposedListener[T]:
    """
    Chain two listeners into one.

    Args:
        first: Invoked first with ``(old_value, new_value)``.
        second: Invoked afterwards with the same arguments.

    Returns:
        A new ``ComposedListener``; neither input is modified.

    Raises:
        InvalidArgument: If either listener is ``None`` or not callable.
    """
    ensure_listener(first, "first listener")
    ensure_listener(second, "second listener")
    return ComposedListener(first, second)
