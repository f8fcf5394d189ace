"""
Shared pytest fixtures and configuration for watchable tests.
"""

import pytest

from watchable import TypeRegistry, _reset_type_registry, register_builtin_types


@pytest.fixture(autouse=True)
def reset_type_registry():
    """Reset the process-wide type registry before each test to prevent state leakage."""
    _reset_type_registry()
    yield
    _reset_type_registry()


@pytest.fixture
def registry():
    """Provide a private registry populated with the built-in types."""
    return register_builtin_types(TypeRegistry())


@pytest.fixture
def change_log():
    """An append-only log plus a listener factory that writes tagged pairs to it."""
    log = []

    def listener(tag=None):
        if tag is None:
            return lambda old, new: log.append((old, new))
        return lambda old, new: log.append((tag, old, new))

    return log, listener
