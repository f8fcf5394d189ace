"""
Watchable Exceptions
====================

Every error raised by the package derives from ``WatchableError`` so callers can
catch the whole family at once. The more specific classes also inherit from the
closest builtin exception, which keeps ``except ValueError`` style handlers working.
"""

from typing import Any, List, Optional


class WatchableError(Exception):
    """Base class for all watchable errors."""

    pass


class InvalidArgument(WatchableError, ValueError):
    """A required listener or argument was missing or unusable."""

    pass


class TypeResolutionError(WatchableError, LookupError):
    """An envelope's type name could not be resolved to a registered type."""

    def __init__(self, type_name: str, message: Optional[str] = None) -> None:
        self.type_name = type_name
        super().__init__(message or f"Unknown type name: {type_name!r}")


class SerializationError(WatchableError):
    """A value could not be rendered to, or parsed from, its wire string."""

    pass


class ListenerDispatchError(WatchableError):
    """
    One or more listeners raised while a new value was being dispatched.

    The value change itself is already committed when this is raised. ``errors``
    holds the listener exceptions in the order they occurred.
    """

    def __init__(
        self, errors: List[BaseException], old_value: Any, new_value: Any
    ) -> None:
        self.errors = list(errors)
        self.old_value = old_value
        self.new_value = new_value
        count = len(self.errors)
        noun = "listener" if count == 1 else "listeners"
        super().__init__(
            f"{count} {noun} failed while dispatching {old_value!r} -> {new_value!r}"
        )
