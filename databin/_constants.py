"""databin constants — record tags, payload sizes, struct formats, limits.

Every record on the wire is ``tag(1) key(2) payload``.  Tags are single
ASCII characters so a hex dump of a stream stays somewhat readable.
"""

from __future__ import annotations

import struct
from typing import Dict

# ── Record tags (single byte each) ───────────────────────────
# Stored as ints (the character's code point) so they compare directly
# against bytes indexing: ``buf[0] == TAG_STRING``.
TAG_CONTAINER: int = ord("(")
TAG_CONTAINER_CLOSE: int = ord(")")
TAG_STRING: int = ord("s")
TAG_BYTE: int = ord("y")      # unsigned 8-bit; there is no signed byte kind
TAG_INT16: int = ord("n")
TAG_UINT16: int = ord("q")
TAG_INT32: int = ord("i")
TAG_UINT32: int = ord("u")
TAG_INT64: int = ord("x")
TAG_UINT64: int = ord("t")
TAG_FLOAT32: int = ord("f")
TAG_FLOAT64: int = ord("d")

TAG_NAMES: Dict[int, str] = {
    TAG_CONTAINER: "container",
    TAG_CONTAINER_CLOSE: "close",
    TAG_STRING: "string",
    TAG_BYTE: "byte",
    TAG_INT16: "i16",
    TAG_UINT16: "u16",
    TAG_INT32: "i32",
    TAG_UINT32: "u32",
    TAG_INT64: "i64",
    TAG_UINT64: "u64",
    TAG_FLOAT32: "f32",
    TAG_FLOAT64: "f64",
}

KNOWN_TAGS = frozenset(TAG_NAMES)

# ── Native-order struct formats ──────────────────────────────
# "=" means native byte order with standard sizes and no alignment.
# Streams are NOT portable between hosts of different endianness; the
# format has no byte-order marker and never normalizes.
KEY_STRUCT = struct.Struct("=H")
LEN_STRUCT = struct.Struct("=H")

# Fixed-size payload codecs.  Strings are deliberately absent: their
# payload is a 2-byte length followed by that many raw bytes, handled by
# the string protocol rather than the fixed-size path.
PAYLOAD_STRUCTS: Dict[int, struct.Struct] = {
    TAG_BYTE: struct.Struct("=B"),
    TAG_INT16: struct.Struct("=h"),
    TAG_UINT16: struct.Struct("=H"),
    TAG_INT32: struct.Struct("=i"),
    TAG_UINT32: struct.Struct("=I"),
    TAG_INT64: struct.Struct("=q"),
    TAG_UINT64: struct.Struct("=Q"),
    TAG_FLOAT32: struct.Struct("=f"),
    TAG_FLOAT64: struct.Struct("=d"),
}

PAYLOAD_SIZES: Dict[int, int] = {tag: s.size for tag, s in PAYLOAD_STRUCTS.items()}
PAYLOAD_SIZES[TAG_CONTAINER] = 0
PAYLOAD_SIZES[TAG_CONTAINER_CLOSE] = 0

CONTAINER_TAGS = frozenset((TAG_CONTAINER, TAG_CONTAINER_CLOSE))
FLOAT_TAGS = frozenset((TAG_FLOAT32, TAG_FLOAT64))

# Inclusive (min, max) per integer tag.  Python ints are unbounded, so
# range checks happen before packing.
INT_RANGES: Dict[int, tuple] = {
    TAG_BYTE: (0, 0xFF),
    TAG_INT16: (-(2**15), 2**15 - 1),
    TAG_UINT16: (0, 0xFFFF),
    TAG_INT32: (-(2**31), 2**31 - 1),
    TAG_UINT32: (0, 0xFFFFFFFF),
    TAG_INT64: (-(2**63), 2**63 - 1),
    TAG_UINT64: (0, 2**64 - 1),
}

HEADER_SIZE: int = 1 + KEY_STRUCT.size   # tag + key

# ── Limits ───────────────────────────────────────────────────
MAX_KEY: int = 0xFFFF
MAX_STRING_LEN: int = 0xFFFF

# Placeholder key written on container-close records.
CLOSE_KEY: int = 0

# Passing this as the string length means "up to the first zero byte".
# A genuinely empty string therefore cannot be requested explicitly; the
# auto scan of b"" yields length 0 anyway.
STRING_LEN_AUTO: int = 0

# Discard buffer size for skipping on non-seekable transports.
SKIP_CHUNK_SIZE: int = 65_536
