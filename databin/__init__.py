"""databin — streaming binary records with typed, keyed values.

A databin stream is a flat sequence of ``tag key payload`` records.
Containers are open/close marker records, so arbitrarily nested data can
be written and read back one record at a time without ever building a
tree in memory.

Quick start:
    >>> from databin import BufferTransport, Codec, TAG_INT32
    >>> out = BufferTransport()
    >>> codec = Codec(out)
    >>> codec.open_container(1)
    >>> codec.append(2, 1234, TAG_INT32)
    >>> codec.append_string(3, "hello")
    >>> codec.close_container()
    >>> reader = Codec(BufferTransport(out.getvalue()))
    >>> reader.enter_container()
    1
    >>> reader.read(TAG_INT32)
    (2, 1234)
    >>> reader.read_string()
    (3, b'hello')

Byte order is the host's native order.  Streams written on a
little-endian machine are not readable on a big-endian one.
"""

from __future__ import annotations

from ._constants import (
    MAX_KEY,
    MAX_STRING_LEN,
    PAYLOAD_SIZES,
    STRING_LEN_AUTO,
    TAG_BYTE,
    TAG_CONTAINER,
    TAG_CONTAINER_CLOSE,
    TAG_FLOAT32,
    TAG_FLOAT64,
    TAG_INT16,
    TAG_INT32,
    TAG_INT64,
    TAG_NAMES,
    TAG_STRING,
    TAG_UINT16,
    TAG_UINT32,
    TAG_UINT64,
)
from ._core import Codec, Value, tag_name
from ._errors import (
    ERR_END_OF_STREAM,
    ERR_INVALID_ARG,
    ERR_INVALID_VALUE,
    ERR_MALFORMED_TAG,
    ERR_SHORT_TRANSFER,
    ERR_TRANSPORT,
    ERR_TYPE_MISMATCH,
    ERR_UNBALANCED,
    ERR_UNEXPECTED_END,
    DatabinError,
    is_clean_end,
)
from ._io import BufferTransport, FdTransport, FileTransport, Transport, open_file
from ._walk import Record, decode_records, encode_records, iter_records

__version__ = "0.1.0"

__all__ = [
    # Codec
    "Codec",
    "Value",
    "Record",
    "tag_name",
    # Transports
    "Transport",
    "FileTransport",
    "FdTransport",
    "BufferTransport",
    "open_file",
    # Walking / convenience
    "iter_records",
    "encode_records",
    "decode_records",
    # Tags and limits
    "TAG_CONTAINER",
    "TAG_CONTAINER_CLOSE",
    "TAG_STRING",
    "TAG_BYTE",
    "TAG_INT16",
    "TAG_UINT16",
    "TAG_INT32",
    "TAG_UINT32",
    "TAG_INT64",
    "TAG_UINT64",
    "TAG_FLOAT32",
    "TAG_FLOAT64",
    "TAG_NAMES",
    "PAYLOAD_SIZES",
    "STRING_LEN_AUTO",
    "MAX_KEY",
    "MAX_STRING_LEN",
    # Exception
    "DatabinError",
    "is_clean_end",
    # Error codes
    "ERR_TRANSPORT",
    "ERR_END_OF_STREAM",
    "ERR_UNEXPECTED_END",
    "ERR_MALFORMED_TAG",
    "ERR_TYPE_MISMATCH",
    "ERR_SHORT_TRANSFER",
    "ERR_INVALID_ARG",
    "ERR_INVALID_VALUE",
    "ERR_UNBALANCED",
]
