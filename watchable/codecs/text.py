"""
Watchable Text Codec - JSON Envelopes
=====================================

Encodes a cell as a JSON object with two string properties::

    {"type": "builtins.str", "value": "hello"}

``TextCellCodec`` converts single cells. ``dumps`` writes cells nested anywhere
inside a document through ``WatchableJSONEncoder``.

Decoding is type-directed: ``loads(text, into=...)`` validates the parsed
document with pydantic, and only positions declared as ``Watchable[X]`` are
read as envelopes. Ordinary objects that happen to have ``type`` and ``value``
keys are left alone:

    ```python
    @dataclass
    class Profile:
        name: Watchable[str]
        role: dict

    text = dumps({"name": Watchable("Ada"), "role": {"type": "admin", "value": "root"}})
    profile = loads(text, into=Profile)
    profile.name.get()  # "Ada"
    profile.role        # {"type": "admin", "value": "root"}
    ```

For schema-less documents, ``loads(text, envelopes=True)`` (or
``watchable_object_hook``) instead treats every object whose only keys are the
string fields ``type`` and ``value`` as a cell, which also captures user data
shaped that way.
"""

import dataclasses
import json
from typing import Any, Mapping, Optional, get_args

from pydantic import TypeAdapter, ValidationError
from pydantic_core import core_schema

from ..cell import Watchable
from ..exceptions import SerializationError
from ..registry import TypeRegistry
from .base import CellCodec, Envelope, T, is_envelope

REGISTRY_CONTEXT_KEY = "watchable_registry"


class TextCellCodec(CellCodec[T]):
    """Convert cells to and from JSON envelope objects."""

    def encode(self, cell: Watchable[T]) -> dict:
        """Return ``{"type": ..., "value": ...}`` for ``cell``."""
        return self.to_envelope(cell).to_dict()

    def decode(self, envelope: Mapping[str, Any]) -> Watchable[T]:
        """
        Recover a cell from an envelope mapping.

        Raises:
            TypeResolutionError: If ``envelope["type"]`` is not registered.
            SerializationError: If the envelope is malformed or its value does
                not parse.
        """
        if isinstance(envelope, Mapping):
            envelope = dict(envelope)
        return self.from_envelope(Envelope.from_mapping(envelope))

    def to_json(self, cell: Watchable[T], **kwargs: Any) -> str:
        return json.dumps(self.encode(cell), **kwargs)

    def from_json(self, text: str) -> Watchable[T]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Invalid JSON envelope: {e}") from e
        return self.decode(data)


class WatchableJSONEncoder(json.JSONEncoder):
    """
    ``json.JSONEncoder`` that writes every ``Watchable`` as an envelope.

    Dataclass instances are written as objects of their fields, so cells held
    by a dataclass are encoded too.
    """

    def __init__(self, *, codec: Optional[TextCellCodec] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.codec = codec or TextCellCodec()

    def default(self, o: Any) -> Any:
        if isinstance(o, Watchable):
            return self.codec.encode(o)
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return {field.name: getattr(o, field.name) for field in dataclasses.fields(o)}
        return super().default(o)


# ============================================================================
# PYDANTIC INTEGRATION
# ============================================================================


def watchable_core_schema(source_type: Any, handler: Any) -> core_schema.CoreSchema:
    """
    Core schema for ``Watchable[X]`` annotations.

    Validation accepts an existing cell or an envelope mapping, which is decoded
    by a codec bound to ``X``. The registry is taken from the validation context
    under ``REGISTRY_CONTEXT_KEY``. Serialization produces the envelope.
    """
    args = get_args(source_type)
    value_type = args[0] if args else None

    def validate(data: Any, info: core_schema.ValidationInfo) -> Watchable[Any]:
        if isinstance(data, Watchable):
            return data
        registry = (info.context or {}).get(REGISTRY_CONTEXT_KEY)
        return TextCellCodec(value_type, registry=registry).decode(data)

    def serialize(cell: Watchable[Any]) -> dict:
        return TextCellCodec().encode(cell)

    return core_schema.with_info_plain_validator_function(
        validate,
        serialization=core_schema.plain_serializer_function_ser_schema(serialize),
    )


def validate_document(
    into: Any, data: Any, *, registry: Optional[TypeRegistry] = None
) -> Any:
    """
    Validate parsed JSON ``data`` as the type ``into``.

    Raises:
        SerializationError: If ``data`` does not match ``into``.
        TypeResolutionError: If a declared cell names an unknown type.
    """
    adapter = TypeAdapter(into)
    try:
        return adapter.validate_python(data, context={REGISTRY_CONTEXT_KEY: registry})
    except ValidationError as e:
        raise SerializationError(f"Document does not match {into!r}: {e}") from e


# ============================================================================
# JSON MODULE HELPERS
# ============================================================================


def make_object_hook(codec: Optional[TextCellCodec] = None):
    """Build an ``object_hook`` that turns every envelope-shaped object into a cell."""
    codec = codec or TextCellCodec()

    def hook(obj: dict) -> Any:
        if is_envelope(obj):
            return codec.decode(obj)
        return obj

    return hook


watchable_object_hook = make_object_hook()


def dumps(obj: Any, *, registry: Optional[TypeRegistry] = None, **kwargs: Any) -> str:
    """``json.dumps`` with cells encoded as envelopes."""
    codec = TextCellCodec(registry=registry)
    return json.dumps(obj, cls=WatchableJSONEncoder, codec=codec, **kwargs)


def loads(
    text: str,
    into: Any = None,
    *,
    registry: Optional[TypeRegistry] = None,
    envelopes: bool = False,
    **kwargs: Any,
) -> Any:
    """
    ``json.loads`` with cell decoding.

    Args:
        text: The JSON document.
        into: Target type; fields declared ``Watchable[X]`` become cells.
        registry: Registry used to resolve envelope types.
        envelopes: Decode every envelope-shaped object without a target type.

    Without ``into`` or ``envelopes`` this is plain ``json.loads``.
    """
    hook = make_object_hook(TextCellCodec(registry=registry)) if envelopes else None
    try:
        data = json.loads(text, object_hook=hook, **kwargs)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON document: {e}") from e
    if into is None:
        return data
    return validate_document(into, data, registry=registry)
