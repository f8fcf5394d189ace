"""
Shared plumbing for the type-preserving cell codecs.

Both wire formats carry the same two-field envelope::

    {"type": "<module.QualName of the value's class>", "value": "<rendered value>"}

``CellCodec`` builds and resolves envelopes against a ``TypeRegistry``; the
concrete codecs only decide how the envelope is laid out on the wire.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar, get_args, get_origin

from ..cell import Watchable
from ..exceptions import SerializationError, TypeResolutionError
from ..registry import NoneType, TypeRegistry, default_registry

T = TypeVar("T")

TYPE_FIELD = "type"
VALUE_FIELD = "value"


@dataclass(frozen=True)
class Envelope:
    """The ``{type, value}`` record written by every codec."""

    type: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {TYPE_FIELD: self.type, VALUE_FIELD: self.value}

    @classmethod
    def from_mapping(cls, data: Any) -> "Envelope":
        if not isinstance(data, dict):
            raise SerializationError(f"Envelope must be an object, got {type(data).__name__}")
        if set(data) != {TYPE_FIELD, VALUE_FIELD}:
            raise SerializationError(
                f"Envelope must have exactly the fields 'type' and 'value', got {sorted(data)}"
            )
        type_name, value = data[TYPE_FIELD], data[VALUE_FIELD]
        if not isinstance(type_name, str) or not isinstance(value, str):
            raise SerializationError("Envelope fields 'type' and 'value' must be strings")
        return cls(type_name, value)


def is_envelope(data: Any) -> bool:
    """True for a mapping shaped exactly like an encoded cell."""
    return (
        isinstance(data, dict)
        and len(data) == 2
        and isinstance(data.get(TYPE_FIELD), str)
        and isinstance(data.get(VALUE_FIELD), str)
    )


class CellCodec(Generic[T]):
    """
    Base class for codecs that convert ``Watchable`` cells to envelopes.

    A codec may be bound to a value type, either explicitly
    (``BinaryCellCodec(value_type=int)``), by subscription
    (``BinaryCellCodec[int]()``) or by subclassing
    (``class IntCodec(BinaryCellCodec[int])``). A bound codec refuses to decode
    envelopes naming any other type.
    """

    def __init__(
        self,
        value_type: Optional[Any] = None,
        *,
        registry: Optional[TypeRegistry] = None,
    ) -> None:
        self._value_type = value_type
        self._registry = registry

    @property
    def registry(self) -> TypeRegistry:
        return self._registry if self._registry is not None else default_registry()

    @property
    def value_type(self) -> Optional[Any]:
        """The type argument this codec was bound to, or ``None``."""
        if self._value_type is not None:
            return self._value_type
        # Set by typing after __init__ when created as Codec[X]()
        orig_class = getattr(self, "__orig_class__", None)
        if orig_class is not None:
            bound = _concrete_arg(orig_class)
            if bound is not None:
                return bound
        for klass in type(self).__mro__:
            for base in klass.__dict__.get("__orig_bases__", ()):
                origin = get_origin(base)
                if isinstance(origin, type) and issubclass(origin, CellCodec):
                    bound = _concrete_arg(base)
                    if bound is not None:
                        return bound
        return None

    @property
    def handled_type(self) -> Any:
        """The cell type this codec handles, e.g. ``Watchable[int]``."""
        value_type = self.value_type
        if value_type is None:
            return Watchable
        return Watchable[value_type]

    def to_envelope(self, cell: Watchable[Any]) -> Envelope:
        """
        Describe ``cell``'s current value as an envelope.

        An empty cell produces the ``builtins.NoneType`` / ``"null"`` marker.
        """
        value = cell.get()
        descriptor = self.registry.descriptor_for(value)
        return Envelope(descriptor.name, descriptor.render(value))

    def from_envelope(self, envelope: Envelope) -> Watchable[Any]:
        """
        Build a fresh cell, with no listeners, from ``envelope``.

        Raises:
            TypeResolutionError: Unknown type name, or a type this codec is not
                bound to.
            SerializationError: ``value`` does not parse as the resolved type.
        """
        descriptor = self.registry.resolve(envelope.type)
        expected = self.value_type
        if expected is not None:
            expected_class = get_origin(expected) or expected
            if (
                isinstance(expected_class, type)
                and descriptor.python_type is not NoneType
                and not issubclass(descriptor.python_type, expected_class)
            ):
                raise TypeResolutionError(
                    envelope.type,
                    f"Codec for {self.handled_type!r} cannot decode type {envelope.type!r}",
                )
        return Watchable(descriptor.parse(envelope.value))


def _concrete_arg(alias: Any) -> Optional[Any]:
    args = get_args(alias)
    if len(args) == 1 and not isinstance(args[0], TypeVar):
        return args[0]
    return None
