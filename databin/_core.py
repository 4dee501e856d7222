"""databin core — the record codec.

A stream is a flat sequence of records, each ``tag(1) key(2) payload``.
:class:`Codec` writes and reads those records one at a time over a
:class:`~databin._io.Transport`.  Its only state is:

    _peek      the tag byte of the next record, once peeked
    _pending   string bytes announced by a length but not yet transferred

Peeking reads the tag byte exactly once; every typed read then checks the
cached tag before touching the rest of the record, so a caller can ask
"what comes next?" and dispatch on the answer without losing bytes.

Payload layout by tag (native byte order, no padding):

    ( )          nothing
    y            u8
    n q          i16 / u16
    i u f        i32 / u32 / f32
    x t d        i64 / u64 / f64
    s            u16 length L, then L raw bytes

Containers are plain marker records.  The codec never counts nesting;
see :mod:`databin._walk` for depth tracking on the consumer side.
"""

from __future__ import annotations

import struct
from typing import Any, NamedTuple, Optional, Tuple, Union

from ._constants import (
    CLOSE_KEY,
    CONTAINER_TAGS,
    FLOAT_TAGS,
    INT_RANGES,
    KEY_STRUCT,
    KNOWN_TAGS,
    LEN_STRUCT,
    MAX_KEY,
    MAX_STRING_LEN,
    PAYLOAD_SIZES,
    PAYLOAD_STRUCTS,
    STRING_LEN_AUTO,
    TAG_CONTAINER,
    TAG_CONTAINER_CLOSE,
    TAG_NAMES,
    TAG_STRING,
)
from ._errors import (
    ERR_END_OF_STREAM,
    ERR_INVALID_ARG,
    ERR_INVALID_VALUE,
    ERR_MALFORMED_TAG,
    ERR_TYPE_MISMATCH,
    ERR_UNEXPECTED_END,
    DatabinError,
)
from ._io import Transport

StringLike = Union[bytes, bytearray, memoryview, str]


def tag_name(tag: int) -> str:
    """Display name for *tag*, falling back to its hex value."""
    return TAG_NAMES.get(tag, "0x{:02x}".format(tag))


class Value(NamedTuple):
    """A decoded (or to-be-encoded) record payload.

    ``data`` is None for container markers, int for the integer kinds,
    float for f32/f64 and bytes for strings.
    """

    tag: int
    data: Any = None

    @property
    def name(self) -> str:
        return tag_name(self.tag)


# ── Packing helpers ──────────────────────────────────────────

def _pack_header(tag: int, key: int) -> bytes:
    # bool is an int subclass and is not a key.
    if isinstance(key, bool) or not isinstance(key, int):
        raise DatabinError(ERR_INVALID_ARG,
                           "key must be an int, got {}".format(type(key).__name__))
    if key < 0 or key > MAX_KEY:
        raise DatabinError(ERR_INVALID_ARG, "key {} outside 0..{}".format(key, MAX_KEY))
    return bytes((tag,)) + KEY_STRUCT.pack(key)


def _pack_payload(tag: int, value: Any) -> bytes:
    if tag in CONTAINER_TAGS:
        return b""

    if isinstance(value, bool):
        raise DatabinError(ERR_INVALID_VALUE,
                           "bool is not a valid {} value".format(tag_name(tag)))

    if tag in FLOAT_TAGS:
        if not isinstance(value, (int, float)):
            raise DatabinError(ERR_INVALID_VALUE,
                               "{} value must be a number, got {}".format(
                                   tag_name(tag), type(value).__name__))
        try:
            return PAYLOAD_STRUCTS[tag].pack(value)
        except (struct.error, OverflowError) as exc:
            raise DatabinError(ERR_INVALID_VALUE,
                               "{} out of {} range".format(value, tag_name(tag))) from exc

    if not isinstance(value, int):
        raise DatabinError(ERR_INVALID_VALUE,
                           "{} value must be an int, got {}".format(
                               tag_name(tag), type(value).__name__))
    lo, hi = INT_RANGES[tag]
    if value < lo or value > hi:
        raise DatabinError(ERR_INVALID_VALUE,
                           "{} outside {} range {}..{}".format(value, tag_name(tag), lo, hi))
    return PAYLOAD_STRUCTS[tag].pack(value)


def _as_bytes(data: StringLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return data
    if isinstance(data, memoryview):
        return data.tobytes()
    raise DatabinError(ERR_INVALID_VALUE,
                       "string data must be bytes-like or str, got {}".format(
                           type(data).__name__))


def _check_fixed_size_tag(tag: int) -> None:
    if tag == TAG_STRING:
        raise DatabinError(ERR_INVALID_ARG,
                           "strings have no fixed size; use the string protocol")
    if tag not in PAYLOAD_SIZES:
        raise DatabinError(ERR_INVALID_ARG, "unknown tag {!r}".format(tag))


# ── Codec ────────────────────────────────────────────────────

class Codec:
    """Sequential record encoder/decoder bound to one transport.

    The codec never owns the transport: ``close()`` forgets it but does
    not close it.  Close the transport yourself, before or after.

    Not thread-safe.  The peek cache and the transport cursor are shared
    mutable state.
    """

    def __init__(self, transport: Transport) -> None:
        self._io: Optional[Transport] = transport
        self._peek: Optional[int] = None
        self._pending_write = 0
        self._pending_read = 0

    @property
    def transport(self) -> Transport:
        if self._io is None:
            raise DatabinError(ERR_INVALID_ARG, "codec is closed")
        return self._io

    def close(self) -> None:
        """Detach from the transport.

        Raises ERR_INVALID_ARG if a streamed string is still missing
        bytes.  The codec is detached either way.
        """
        owed = self._pending_write
        self._release()
        if owed:
            raise DatabinError(ERR_INVALID_ARG,
                               "closed with {} string bytes still owed".format(owed))

    def _release(self) -> None:
        self._peek = None
        self._pending_write = 0
        self._pending_read = 0
        self._io = None

    def __enter__(self) -> "Codec":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Leave an in-flight exception alone.
        if exc_type is None:
            self.close()
        else:
            self._release()

    # ── transport access ──

    def _write(self, data: bytes) -> None:
        self.transport.write(data)

    def _read_exact(self, size: int) -> bytes:
        """Read mid-record: a clean end here means a truncated record."""
        try:
            return self.transport.read(size)
        except DatabinError as exc:
            if exc.code == ERR_END_OF_STREAM:
                raise DatabinError(ERR_UNEXPECTED_END,
                                   "stream ended inside a record") from exc
            raise

    def _skip_exact(self, size: int) -> None:
        try:
            self.transport.skip(size)
        except DatabinError as exc:
            if exc.code == ERR_END_OF_STREAM:
                raise DatabinError(ERR_UNEXPECTED_END,
                                   "stream ended inside a record") from exc
            raise

    def _read_key(self) -> int:
        return KEY_STRUCT.unpack(self._read_exact(KEY_STRUCT.size))[0]

    def _check_no_pending_write(self) -> None:
        if self._pending_write:
            raise DatabinError(ERR_INVALID_ARG,
                               "{} string bytes still owed to the previous record".format(
                                   self._pending_write))

    # ── lookahead ──

    def peek_type(self) -> Optional[int]:
        """Return the tag of the next record without consuming it.

        Reads one byte from the transport the first time and caches it;
        further calls return the cached tag.  Returns None on a clean end
        of stream (no bytes left at a record boundary).
        """
        if self._pending_read:
            raise DatabinError(ERR_INVALID_ARG,
                               "{} string bytes of the current record are unread".format(
                                   self._pending_read))
        if self._peek is None:
            try:
                raw = self.transport.read(1)
            except DatabinError as exc:
                if exc.code == ERR_END_OF_STREAM:
                    return None
                raise
            tag = raw[0]
            if tag not in KNOWN_TAGS:
                raise DatabinError(ERR_MALFORMED_TAG, "unknown tag 0x{:02x}".format(tag))
            self._peek = tag
        return self._peek

    def _expect(self, tag: int) -> None:
        actual = self.peek_type()
        if actual is None:
            raise DatabinError(ERR_END_OF_STREAM)
        if actual != tag:
            raise DatabinError(ERR_TYPE_MISMATCH,
                               "expected {} record, found {}".format(
                                   tag_name(tag), tag_name(actual)))

    # ── fixed-size records ──

    def append(self, key: int, value: Any, tag: int) -> None:
        """Write one fixed-size record.

        Container markers ignore *value*.  Strings are rejected here; use
        :meth:`append_string`.
        """
        _check_fixed_size_tag(tag)
        self._check_no_pending_write()
        record = _pack_header(tag, key) + _pack_payload(tag, value)
        self._write(record)
        self._peek = None

    def read(self, tag: int, skip: bool = False) -> Tuple[int, Any]:
        """Read one fixed-size record of kind *tag*; return ``(key, value)``.

        If the next record is of a different kind, raise ERR_TYPE_MISMATCH
        and leave it unread.  With ``skip=True`` the payload is stepped
        over and the returned value is None.
        """
        _check_fixed_size_tag(tag)
        self._expect(tag)
        key = self._read_key()
        size = PAYLOAD_SIZES[tag]
        value = None
        if size:
            if skip:
                self._skip_exact(size)
            else:
                value = PAYLOAD_STRUCTS[tag].unpack(self._read_exact(size))[0]
        self._peek = None
        return key, value

    # ── strings ──

    def begin_string(self, key: int, length: int) -> None:
        """Write a string header announcing *length* bytes.

        The bytes themselves follow through one or more
        :meth:`write_string_data` calls.
        """
        self._check_no_pending_write()
        if isinstance(length, bool) or not isinstance(length, int):
            raise DatabinError(ERR_INVALID_VALUE, "string length must be an int")
        if length < 0 or length > MAX_STRING_LEN:
            raise DatabinError(ERR_INVALID_VALUE,
                               "string length {} outside 0..{}".format(length, MAX_STRING_LEN))
        self._write(_pack_header(TAG_STRING, key) + LEN_STRUCT.pack(length))
        self._pending_write = length
        self._peek = None

    def write_string_data(self, chunk: StringLike) -> None:
        data = _as_bytes(chunk)
        if len(data) > self._pending_write:
            raise DatabinError(ERR_INVALID_VALUE,
                               "{} bytes overflow the {} remaining in the string".format(
                                   len(data), self._pending_write))
        if data:
            self._write(data)
        self._pending_write -= len(data)

    def append_string(self, key: int, data: StringLike,
                      length: int = STRING_LEN_AUTO) -> None:
        """Write a string record.

        With the default ``STRING_LEN_AUTO`` the string ends at the first
        zero byte (or at the end of *data*).  An explicit *length* takes
        that many bytes verbatim, zero bytes included.
        """
        raw = _as_bytes(data)
        if isinstance(length, bool) or not isinstance(length, int):
            raise DatabinError(ERR_INVALID_VALUE, "string length must be an int")
        if length == STRING_LEN_AUTO:
            end = raw.find(b"\x00")
            length = len(raw) if end < 0 else end
        elif length < 0 or length > len(raw):
            raise DatabinError(ERR_INVALID_VALUE,
                               "string length {} exceeds the {} bytes given".format(
                                   length, len(raw)))
        self.begin_string(key, length)
        self.write_string_data(raw[:length])

    def read_string_length(self) -> Tuple[int, int]:
        """Read a string header; return ``(key, length)``.

        The *length* bytes must then be consumed with
        :meth:`read_string_data` before the next record.
        """
        self._expect(TAG_STRING)
        key = self._read_key()
        length = LEN_STRUCT.unpack(self._read_exact(LEN_STRUCT.size))[0]
        self._peek = None
        self._pending_read = length
        return key, length

    def read_string_data(self, size: Optional[int] = None,
                         skip: bool = False) -> Optional[bytes]:
        """Read (or skip) *size* bytes of the current string.

        *size* defaults to everything that is left.
        """
        if size is None:
            size = self._pending_read
        elif isinstance(size, bool) or not isinstance(size, int):
            raise DatabinError(ERR_INVALID_ARG, "string read size must be an int")
        if size < 0 or size > self._pending_read:
            raise DatabinError(ERR_INVALID_ARG,
                               "cannot read {} bytes; {} remain in the string".format(
                                   size, self._pending_read))
        data = None
        if skip:
            self._skip_exact(size)
        else:
            data = self._read_exact(size)
        self._pending_read -= size
        return data

    def read_string(self, skip: bool = False) -> Tuple[int, Optional[bytes]]:
        """Read a whole string record; return ``(key, data)``.

        *data* is a new bytes object, or None when ``skip=True``.
        """
        key, length = self.read_string_length()
        return key, self.read_string_data(length, skip=skip)

    # ── tagged values ──

    def append_value(self, key: int, value: Value) -> None:
        if value.tag == TAG_STRING:
            raw = _as_bytes(value.data)
            # Explicit length keeps embedded zeros; b"" auto-scans to 0.
            self.append_string(key, raw, len(raw))
        else:
            self.append(key, value.data, value.tag)

    def read_value(self, skip: bool = False) -> Tuple[int, Value]:
        """Read whatever record comes next; return ``(key, Value)``.

        Raises ERR_END_OF_STREAM if the stream ended cleanly.
        """
        tag = self.peek_type()
        if tag is None:
            raise DatabinError(ERR_END_OF_STREAM)
        if tag == TAG_STRING:
            key, data = self.read_string(skip=skip)
        else:
            key, data = self.read(tag, skip=skip)
        return key, Value(tag, data)

    # ── containers ──

    def open_container(self, key: int) -> None:
        self.append(key, None, TAG_CONTAINER)

    def close_container(self) -> None:
        self.append(CLOSE_KEY, None, TAG_CONTAINER_CLOSE)

    def enter_container(self) -> int:
        """Consume a container-open record and return its key."""
        key, _ = self.read(TAG_CONTAINER)
        return key

    def exit_container(self) -> None:
        self.read(TAG_CONTAINER_CLOSE)
