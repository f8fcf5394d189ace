"""
Watchable Codecs
================

Type-preserving encoders for ``Watchable`` cells:

- ``TextCellCodec``: JSON envelopes, plus ``dumps``/``loads`` helpers and
  pydantic validation of documents with ``Watchable[X]`` fields
- ``BinaryCellCodec``: framed MessagePack envelopes, plus ``packb``/``unpackb``
"""

from .base import Envelope, CellCodec, is_envelope
from .binary import (
    WATCHABLE_EXT_CODE,
    BinaryCellCodec,
    BinaryDocumentReader,
    BinaryDocumentWriter,
    make_default,
    make_ext_hook,
    packb,
    unpackb,
)
from .text import (
    TextCellCodec,
    WatchableJSONEncoder,
    dumps,
    loads,
    make_object_hook,
    validate_document,
    watchable_core_schema,
    watchable_object_hook,
)

__all__ = [
    "Envelope",
    "CellCodec",
    "is_envelope",
    # Text
    "TextCellCodec",
    "WatchableJSONEncoder",
    "watchable_object_hook",
    "make_object_hook",
    "dumps",
    "loads",
    "validate_document",
    "watchable_core_schema",
    # Binary
    "BinaryCellCodec",
    "BinaryDocumentReader",
    "BinaryDocumentWriter",
    "WATCHABLE_EXT_CODE",
    "make_default",
    "make_ext_hook",
    "packb",
    "unpackb",
]
