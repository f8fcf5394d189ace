"""
Watchable - Observable Single-Value Cell
========================================

``Watchable`` holds exactly one value and notifies its listeners synchronously
every time the value is replaced.

Key Features:
- ``get``/``set`` plus a ``value`` property
- Listeners called in registration order with ``(old_value, new_value)``
- ``set`` is mutually exclusive with itself across threads
- Configurable behaviour when a listener raises (see ``DispatchPolicy``)

Example:
    ```python
    count = Watchable.of(5)
    log = []
    count.watch(lambda old, new: log.append((old, new)))

    count.set(10)
    # count.get() == 10, log == [(5, 10)]
    ```

Thread Safety:
``set`` holds a re-entrant lock across the swap and the whole dispatch, so two
``set`` calls never interleave. A listener may call ``set`` on the same cell from
the dispatching thread. ``get`` reads a single attribute and always sees either
the previous or the new value.
"""

import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from .notifier import ChangeNotifier, DispatchPolicy

T = TypeVar("T")


class Watchable(Generic[T]):
    """
    A generic container for one value with change notification.

    Args:
        initial_value: The starting value; ``None`` creates an empty cell.
        policy: Listener failure policy for this cell. Defaults to
            ``Watchable.default_policy``.
    """

    default_policy: DispatchPolicy = DispatchPolicy.CONTINUE

    def __init__(
        self,
        initial_value: Optional[T] = None,
        *,
        policy: Optional[DispatchPolicy] = None,
    ) -> None:
        self._value: Optional[T] = initial_value
        self._notifier = ChangeNotifier()
        self._lock = threading.RLock()
        self._policy = policy

    @classmethod
    def of(cls, value: T) -> "Watchable[T]":
        """Create a cell holding ``value``."""
        return cls(value)

    @property
    def policy(self) -> DispatchPolicy:
        return self._policy if self._policy is not None else type(self).default_policy

    def get(self) -> Optional[T]:
        """Return the current value."""
        return self._value

    def set(self, value: Optional[T]) -> None:
        """
        Replace the value and notify every listener.

        The listeners registered when dispatch starts are called in order on the
        calling thread; this method returns once all of them have run.

        Raises:
            ListenerDispatchError: If a listener raised. The new value is kept.
        """
        with self._lock:
            old_value = self._value
            self._value = value
            self._notifier.dispatch(old_value, value, self.policy)

    @property
    def value(self) -> Optional[T]:
        return self.get()

    @value.setter
    def value(self, new_value: Optional[T]) -> None:
        self.set(new_value)

    def watch(self, listener: Callable[[Optional[T], Optional[T]], Any]) -> "Watchable[T]":
        """
        Register a listener to be called on every ``set``.

        Duplicate registrations are kept and each one is invoked.

        Raises:
            InvalidArgument: If ``listener`` is ``None`` or not callable.
        """
        self._notifier.add(listener)
        return self

    on = watch

    @property
    def listener_count(self) -> int:
        return len(self._notifier)

    def is_empty(self) -> bool:
        return self._value is None

    def __repr__(self) -> str:
        return f"Watchable({self._value!r})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> Any:
        # Lets fields annotated Watchable[X] be decoded from envelopes by pydantic
        from .codecs.text import watchable_core_schema

        return watchable_core_schema(source_type, handler)


def watch(value: Optional[T] = None) -> Watchable[T]:
    """Shorthand for ``Watchable(value)``."""
    return Watchable(value)
