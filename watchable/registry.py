"""
Watchable Type Registry - Name to Type Resolution
=================================================

Encoded cells carry the fully-qualified name of their value's runtime type
(``builtins.int``, ``decimal.Decimal``, ``myapp.models.Point``). At decode time
that name is looked up here to find a ``TypeDescriptor``, which knows how to turn
the envelope's ``value`` string back into an object of the right type.

Unless a type brings its own ``dump``/``load``, values are rendered and parsed
with a pydantic ``TypeAdapter`` for the registered class, so field types of
dataclasses and models survive the trip.

The registry is process-wide and read-mostly. Lookups read an immutable mapping
without locking; registrations take a lock and publish a new mapping
(copy-on-write), so concurrent decodes never see a half-updated registry.

Example:
    ```python
    @register_type
    @dataclass
    class Point:
        x: int
        y: int

    default_registry().resolve("myapp.Point").parse('{"x": 1, "y": 2}')
    # Point(x=1, y=2)
    ```
"""

import base64
import datetime
import decimal
import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Type

from pydantic import TypeAdapter, ValidationError

from .exceptions import InvalidArgument, SerializationError, TypeResolutionError

Dump = Callable[[Any], str]
Load = Callable[[str], Any]

NoneType = type(None)


def qualified_name(python_type: type) -> str:
    """Return ``module.QualName`` for a class."""
    return f"{python_type.__module__}.{python_type.__qualname__}"


# ============================================================================
# GENERIC SERIALIZER
# ============================================================================

_JSON_SCALARS = (str, int, float, bool, NoneType)


def require_json_native(value: Any) -> None:
    """
    Reject contents that JSON cannot carry without changing their type.

    Only the outermost container's type is recorded in an envelope, so nested
    values must already be JSON-native: scalars, lists, and dicts with string
    keys. Anything else (an int key, a nested tuple or dataclass) would come
    back as a different type.
    """
    stack = [value] if type(value) is dict else list(value)
    while stack:
        item = stack.pop()
        item_type = type(item)
        if item_type in _JSON_SCALARS:
            continue
        if item_type is list:
            stack.extend(item)
        elif item_type is dict:
            for key, nested in item.items():
                if type(key) is not str:
                    raise TypeError(f"dict key {key!r} is not a string")
                stack.append(nested)
        else:
            raise TypeError(f"nested {item_type.__name__} value {item!r} would not round trip")


class PydanticSerializer:
    """
    Render and parse one type through a pydantic ``TypeAdapter``.

    The adapter is built on first use, so types with custom serializers never
    need a pydantic schema.
    """

    def __init__(
        self,
        python_type: type,
        *,
        strict: bool = False,
        check: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self._python_type = python_type
        self._strict = strict
        self._check = check
        self._adapter: Optional[TypeAdapter] = None

    @property
    def adapter(self) -> TypeAdapter:
        if self._adapter is None:
            self._adapter = TypeAdapter(None if self._python_type is NoneType else self._python_type)
        return self._adapter

    def dump(self, value: Any) -> str:
        if self._check is not None:
            self._check(value)
        return self.adapter.dump_json(value).decode("utf-8")

    def load(self, text: str) -> Any:
        return self.adapter.validate_json(text, strict=self._strict)


# ============================================================================
# DESCRIPTORS
# ============================================================================


@dataclass(frozen=True)
class TypeDescriptor:
    """Everything needed to render and parse values of one registered type."""

    name: str
    python_type: type
    dump: Dump
    load: Load

    def render(self, value: Any) -> str:
        try:
            return self.dump(value)
        except SerializationError:
            raise
        except (TypeError, ValueError, ArithmeticError) as e:
            raise SerializationError(f"Cannot render {self.name} value {value!r}: {e}") from e

    def parse(self, text: Any) -> Any:
        if not isinstance(text, str):
            raise SerializationError(
                f"Expected a string payload for {self.name}, got {type(text).__name__}"
            )
        try:
            return self.load(text)
        except SerializationError:
            raise
        except ValidationError as e:
            raise SerializationError(
                f"Cannot parse {text!r} as {self.name}: {e.error_count()} validation error(s)"
            ) from e
        except (TypeError, ValueError, ArithmeticError) as e:
            raise SerializationError(f"Cannot parse {text!r} as {self.name}: {e}") from e


class TypeRegistry:
    """
    Thread-safe mapping from qualified type names to ``TypeDescriptor``.

    ``resolve`` never blocks; ``register`` serializes writers and swaps in a new
    snapshot of the tables.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_name: Mapping[str, TypeDescriptor] = MappingProxyType({})
        self._by_type: Mapping[type, TypeDescriptor] = MappingProxyType({})

    def register(
        self,
        python_type: type,
        *,
        name: Optional[str] = None,
        dump: Optional[Dump] = None,
        load: Optional[Load] = None,
        strict: bool = False,
    ) -> TypeDescriptor:
        """
        Register ``python_type`` so values of it can be decoded.

        Re-registering the same type is allowed and replaces its serializers.
        Without ``dump``/``load`` the type goes through a pydantic
        ``TypeAdapter``, so dataclasses (including nested ones), typed
        collections and pydantic models round trip with their field types.
        ``strict`` disables pydantic's lax coercions when parsing.

        Raises:
            InvalidArgument: If ``python_type`` is not a class, or ``name`` is
                already bound to a different type.
        """
        if not isinstance(python_type, type):
            raise InvalidArgument(f"Expected a class, got {python_type!r}")

        type_name = name or qualified_name(python_type)
        if dump is None or load is None:
            serializer = PydanticSerializer(python_type, strict=strict)
            dump = dump or serializer.dump
            load = load or serializer.load
        descriptor = TypeDescriptor(type_name, python_type, dump, load)

        with self._lock:
            existing = self._by_name.get(type_name)
            if existing is not None and existing.python_type is not python_type:
                raise InvalidArgument(
                    f"Type name {type_name!r} is already registered for {existing.python_type!r}"
                )
            by_name: Dict[str, TypeDescriptor] = dict(self._by_name)
            by_type: Dict[type, TypeDescriptor] = dict(self._by_type)
            by_name[type_name] = descriptor
            by_type[python_type] = descriptor
            self._by_name = MappingProxyType(by_name)
            self._by_type = MappingProxyType(by_type)

        logging.debug(f"Registered type {type_name!r}")
        return descriptor

    def resolve(self, name: str) -> TypeDescriptor:
        """
        Look up a descriptor by qualified name.

        Raises:
            TypeResolutionError: If nothing is registered under ``name``.
        """
        descriptor = self._by_name.get(name)
        if descriptor is None:
            raise TypeResolutionError(name)
        return descriptor

    def descriptor_for(self, value: Any) -> TypeDescriptor:
        """
        Return the descriptor for ``type(value)``.

        Unregistered types get an ad-hoc pydantic descriptor so they can still
        be encoded; decoding them requires registering the type first.
        """
        python_type = type(value)
        descriptor = self._by_type.get(python_type)
        if descriptor is not None:
            return descriptor
        serializer = PydanticSerializer(python_type)
        return TypeDescriptor(
            qualified_name(python_type), python_type, serializer.dump, serializer.load
        )

    def is_registered(self, name: str) -> bool:
        return name in self._by_name

    def names(self) -> list:
        return sorted(self._by_name)

    def __contains__(self, item: Any) -> bool:
        if isinstance(item, type):
            return item in self._by_type
        return item in self._by_name


# ============================================================================
# BUILT-IN TYPES
# ============================================================================


def _b64_dump(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _b64_load(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"), validate=True)


def _identity(text: str) -> str:
    return text


def _check_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected str, got {type(value).__name__}")
    return value


def register_builtin_types(registry: "TypeRegistry") -> "TypeRegistry":
    """Register the scalar and collection types every codec supports."""
    for python_type in (NoneType, bool, int, float):
        serializer = PydanticSerializer(python_type, strict=True)
        registry.register(python_type, dump=serializer.dump, load=serializer.load)
    for python_type in (list, tuple, dict, set, frozenset):
        serializer = PydanticSerializer(python_type, strict=True, check=require_json_native)
        registry.register(python_type, dump=serializer.dump, load=serializer.load)
    registry.register(str, dump=_check_str, load=_identity)
    registry.register(bytes, dump=_b64_dump, load=_b64_load)
    registry.register(decimal.Decimal, dump=str, load=decimal.Decimal)
    registry.register(
        datetime.datetime,
        dump=datetime.datetime.isoformat,
        load=datetime.datetime.fromisoformat,
    )
    registry.register(
        datetime.date, dump=datetime.date.isoformat, load=datetime.date.fromisoformat
    )
    return registry


# ============================================================================
# PROCESS-WIDE REGISTRY
# ============================================================================

_default_registry: Optional[TypeRegistry] = None
_default_registry_lock = threading.Lock()


def default_registry() -> TypeRegistry:
    """Get or create the process-wide registry, pre-populated with built-ins."""
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = register_builtin_types(TypeRegistry())
    return _default_registry


def register_type(
    python_type: Optional[type] = None,
    *,
    name: Optional[str] = None,
    dump: Optional[Dump] = None,
    load: Optional[Load] = None,
    strict: bool = False,
) -> Any:
    """
    Register a type with the process-wide registry.

    Usable directly (``register_type(Point)``) or as a class decorator, with or
    without arguments. Returns the class so decorated classes are unchanged.
    """

    def decorator(cls: Type[Any]) -> Type[Any]:
        default_registry().register(cls, name=name, dump=dump, load=load, strict=strict)
        return cls

    if python_type is None:
        return decorator
    return decorator(python_type)


def _reset_type_registry() -> None:
    """Drop the process-wide registry (for testing)."""
    global _default_registry
    with _default_registry_lock:
        _default_registry = None
