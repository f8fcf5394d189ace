"""
Watchable Notifier - Ordered Listener Storage and Dispatch
==========================================================

``ChangeNotifier`` keeps the listeners of one cell in registration order and
multicasts ``(old_value, new_value)`` pairs to them.

The listener list is copy-on-write: ``add`` publishes a fresh tuple, so a
dispatch iterates over the tuple that was current when it started. Listeners
added while a dispatch is running are only seen by the next dispatch.

Dispatch Policies:
- ``CONTINUE``: call every listener, collect failures, raise one
  ``ListenerDispatchError`` at the end.
- ``FAIL_FAST``: stop at the first failing listener and raise immediately.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, List, Tuple

from .exceptions import ListenerDispatchError
from .listener import ensure_listener


class DispatchPolicy(Enum):
    """What ``dispatch`` does when a listener raises."""

    CONTINUE = "continue"
    FAIL_FAST = "fail_fast"


class ChangeNotifier:
    """Ordered, duplicate-permitting listener list for a single cell."""

    __slots__ = ("_listeners", "_lock")

    def __init__(self) -> None:
        self._listeners: Tuple[Callable[[Any, Any], Any], ...] = ()
        self._lock = threading.Lock()

    def add(self, listener: Callable[[Any, Any], Any]) -> None:
        """Append a listener; the same callable may be added more than once."""
        ensure_listener(listener)
        with self._lock:
            self._listeners = self._listeners + (listener,)

    def __len__(self) -> int:
        return len(self._listeners)

    def dispatch(
        self,
        old_value: Any,
        new_value: Any,
        policy: DispatchPolicy = DispatchPolicy.CONTINUE,
    ) -> None:
        """
        Invoke every listener registered at call time, in order.

        Raises:
            ListenerDispatchError: If any listener raised. Under ``FAIL_FAST``
                the remaining listeners are skipped.
        """
        listeners = self._listeners
        errors: List[Exception] = []

        for listener in listeners:
            try:
                listener(old_value, new_value)
            except Exception as e:
                logging.error(f"Listener {listener!r} failed on {old_value!r} -> {new_value!r}: {e}")
                if policy is DispatchPolicy.FAIL_FAST:
                    raise ListenerDispatchError([e], old_value, new_value) from e
                errors.append(e)

        if errors:
            raise ListenerDispatchError(errors, old_value, new_value) from errors[0]
