"""
Watchable Binary Codec - Framed MessagePack Envelopes
=====================================================

Writes a cell as one MessagePack map with a fixed field order::

    map header (2 entries) -> "type": str -> "value": str

``BinaryDocumentWriter`` and ``BinaryDocumentReader`` expose that framing as
explicit begin / field / end operations over a msgpack ``Packer`` and
``Unpacker``. The map header carries the entry count, so the end of a document
is reached once every announced entry has been consumed.

Decoding always consumes exactly one MessagePack object. The reader takes the
whole map when a document starts, so a missing, misnamed or mistyped field, or
an object that is not a map at all, leaves the stream at the following
document.

Nested use goes through msgpack's extension types:

    ```python
    data = packb({"count": Watchable(3), "tags": Watchable(["a", "b"])})
    unpackb(data)["count"].get()  # 3
    ```
"""

from io import BytesIO
from typing import Any, BinaryIO, Callable, List, Optional, Tuple, Union

import msgpack

from ..cell import Watchable
from ..exceptions import SerializationError
from ..registry import TypeRegistry
from .base import TYPE_FIELD, VALUE_FIELD, CellCodec, Envelope, T

WATCHABLE_EXT_CODE = 7

ENVELOPE_FIELD_COUNT = 2


# ============================================================================
# DOCUMENT FRAMING
# ============================================================================


class BinaryDocumentWriter:
    """Ordered field writer producing MessagePack maps."""

    def __init__(self, stream: Optional[BinaryIO] = None) -> None:
        self._stream = stream if stream is not None else BytesIO()
        self._packer = msgpack.Packer(use_bin_type=True)
        self._remaining: Optional[int] = None

    def getvalue(self) -> bytes:
        """Bytes written so far (only for the default in-memory stream)."""
        return self._stream.getvalue()

    def start_document(self, field_count: int) -> None:
        if self._remaining is not None:
            raise SerializationError("A document is already open")
        self._stream.write(self._packer.pack_map_header(field_count))
        self._remaining = field_count

    def write_string(self, name: str, value: str) -> None:
        if self._remaining is None:
            raise SerializationError(f"Cannot write field {name!r} outside a document")
        if self._remaining == 0:
            raise SerializationError(f"Field {name!r} exceeds the announced field count")
        if not isinstance(value, str):
            raise SerializationError(f"Field {name!r} must be a string, got {type(value).__name__}")
        self._stream.write(self._packer.pack(name))
        self._stream.write(self._packer.pack(value))
        self._remaining -= 1

    def end_document(self) -> None:
        if self._remaining is None:
            raise SerializationError("No document is open")
        if self._remaining:
            raise SerializationError(f"Document closed with {self._remaining} field(s) unwritten")
        self._remaining = None


class BinaryDocumentReader:
    """
    Ordered field reader over a MessagePack stream.

    ``source`` may be bytes, a binary file object, or an existing
    ``msgpack.Unpacker``. ``tell()`` reports how many bytes have been consumed.
    """

    def __init__(
        self,
        source: Union[bytes, bytearray, BinaryIO, msgpack.Unpacker],
        *,
        ext_hook: Optional[Callable[[int, bytes], Any]] = None,
    ) -> None:
        if isinstance(source, msgpack.Unpacker):
            self._unpacker = source
        elif isinstance(source, (bytes, bytearray, memoryview)):
            self._unpacker = self._new_unpacker(None, ext_hook)
            self._unpacker.feed(source)
        else:
            self._unpacker = self._new_unpacker(source, ext_hook)
        self._entries: Optional[List[Tuple[Any, Any]]] = None

    @staticmethod
    def _new_unpacker(file_like: Optional[BinaryIO], ext_hook) -> msgpack.Unpacker:
        # Documents from other writers may carry non-string keys
        if ext_hook is None:
            return msgpack.Unpacker(file_like, raw=False, strict_map_key=False)
        return msgpack.Unpacker(file_like, raw=False, strict_map_key=False, ext_hook=ext_hook)

    def tell(self) -> int:
        return self._unpacker.tell()

    def _next(self) -> Any:
        try:
            return self._unpacker.unpack()
        except msgpack.OutOfData as e:
            raise SerializationError("Unexpected end of binary document") from e
        except (msgpack.UnpackException, ValueError) as e:
            raise SerializationError(f"Malformed binary document: {e}") from e

    def read_start_document(self) -> int:
        """
        Consume the next object and open it as a document.

        Raises:
            SerializationError: If the object is not a map. The object is
                consumed either way.
        """
        if self._entries is not None:
            raise SerializationError("A document is already being read")
        document = self._next()
        if not isinstance(document, dict):
            raise SerializationError(
                f"Expected a document start, found {type(document).__name__}"
            )
        self._entries = list(document.items())
        self._entries.reverse()
        return len(self._entries)

    def read_string(self, name: str) -> str:
        if self._entries is None:
            raise SerializationError(f"Cannot read field {name!r} outside a document")
        if not self._entries:
            raise SerializationError(f"Missing field {name!r}")
        key, value = self._entries.pop()
        if key != name:
            raise SerializationError(f"Expected field {name!r}, found {key!r}")
        if not isinstance(value, str):
            raise SerializationError(f"Field {name!r} must be a string, got {type(value).__name__}")
        return value

    def skip_remaining(self) -> None:
        """Discard the unread entries of the current document and close it."""
        self._entries = None

    def read_end_document(self) -> None:
        if self._entries is None:
            raise SerializationError("No document is being read")
        leftover = len(self._entries)
        self.skip_remaining()
        if leftover:
            raise SerializationError(f"Document has {leftover} unexpected extra field(s)")


# ============================================================================
# CODEC
# ============================================================================


class BinaryCellCodec(CellCodec[T]):
    """Convert cells to and from framed MessagePack envelopes."""

    def encode(self, writer: BinaryDocumentWriter, cell: Watchable[T]) -> None:
        envelope = self.to_envelope(cell)
        writer.start_document(ENVELOPE_FIELD_COUNT)
        writer.write_string(TYPE_FIELD, envelope.type)
        writer.write_string(VALUE_FIELD, envelope.value)
        writer.end_document()

    def decode(self, reader: BinaryDocumentReader) -> Watchable[T]:
        """
        Read one envelope from ``reader`` and build a cell from it.

        Raises:
            TypeResolutionError: If the envelope's type is not registered, or
                not the type this codec is bound to.
            SerializationError: If the framing or the value is malformed.
        """
        reader.read_start_document()
        try:
            type_name = reader.read_string(TYPE_FIELD)
            value = reader.read_string(VALUE_FIELD)
        except SerializationError:
            reader.skip_remaining()
            raise
        reader.read_end_document()
        return self.from_envelope(Envelope(type_name, value))

    def to_bytes(self, cell: Watchable[T]) -> bytes:
        writer = BinaryDocumentWriter()
        self.encode(writer, cell)
        return writer.getvalue()

    def from_bytes(self, data: bytes) -> Watchable[T]:
        reader = BinaryDocumentReader(data)
        cell = self.decode(reader)
        if reader.tell() != len(data):
            raise SerializationError(f"{len(data) - reader.tell()} trailing byte(s) after envelope")
        return cell


# ============================================================================
# MSGPACK ADAPTER
# ============================================================================


def make_default(codec: Optional[BinaryCellCodec] = None) -> Callable[[Any], Any]:
    """Build a msgpack ``default`` hook that packs cells as extension types."""
    codec = codec or BinaryCellCodec()

    def default(obj: Any) -> Any:
        if isinstance(obj, Watchable):
            return msgpack.ExtType(WATCHABLE_EXT_CODE, codec.to_bytes(obj))
        raise TypeError(f"Cannot serialize {type(obj).__name__} with msgpack")

    return default


def make_ext_hook(codec: Optional[BinaryCellCodec] = None) -> Callable[[int, bytes], Any]:
    """Build a msgpack ``ext_hook`` that unpacks cell extension types."""
    codec = codec or BinaryCellCodec()

    def ext_hook(code: int, data: bytes) -> Any:
        if code == WATCHABLE_EXT_CODE:
            return codec.from_bytes(data)
        return msgpack.ExtType(code, data)

    return ext_hook


def packb(obj: Any, *, registry: Optional[TypeRegistry] = None) -> bytes:
    """``msgpack.packb`` with cells packed as envelopes."""
    codec = BinaryCellCodec(registry=registry)
    try:
        return msgpack.packb(obj, default=make_default(codec), use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise SerializationError(f"Cannot pack {type(obj).__name__}: {e}") from e


def unpackb(data: bytes, *, registry: Optional[TypeRegistry] = None) -> Any:
    """``msgpack.unpackb`` with cell extension types decoded into cells."""
    codec = BinaryCellCodec(registry=registry)
    try:
        return msgpack.unpackb(data, ext_hook=make_ext_hook(codec), raw=False)
    except (msgpack.UnpackException, ValueError) as e:
        raise SerializationError(f"Cannot unpack document: {e}") from e
