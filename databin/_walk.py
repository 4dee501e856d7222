"""databin record walking with consumer-side depth tracking.

The codec has no notion of nesting; a container is just an open marker,
some records, and a close marker.  This module layers the usual
consumer bookkeeping on top: a counter bumped on open and dropped on
close, reported with every record.

Strict mode turns that counter into a balance check, which the codec
itself never performs:

  - a close with nothing open          -> ERR_UNBALANCED
  - a clean end with containers open   -> ERR_UNBALANCED

Without strict mode a stray close is reported at depth 0 and otherwise
ignored.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, NamedTuple, Tuple

from ._constants import TAG_CONTAINER, TAG_CONTAINER_CLOSE
from ._core import Codec, Value
from ._errors import ERR_END_OF_STREAM, ERR_UNBALANCED, DatabinError
from ._io import BufferTransport


class Record(NamedTuple):
    depth: int
    key: int
    value: Value


def iter_records(codec: Codec, strict: bool = False) -> Iterator[Record]:
    """Yield every remaining record in *codec* until a clean end of stream.

    An open marker and its matching close are reported at the same depth;
    records inside the container are one level deeper.
    """
    depth = 0
    while True:
        try:
            key, value = codec.read_value()
        except DatabinError as exc:
            if exc.code != ERR_END_OF_STREAM:
                raise
            if strict and depth:
                raise DatabinError(ERR_UNBALANCED,
                                   "stream ended with {} container(s) open".format(depth))
            return

        if value.tag == TAG_CONTAINER:
            yield Record(depth, key, value)
            depth += 1
        elif value.tag == TAG_CONTAINER_CLOSE:
            if depth:
                depth -= 1
            elif strict:
                raise DatabinError(ERR_UNBALANCED, "container close with no open container")
            yield Record(depth, key, value)
        else:
            yield Record(depth, key, value)


def encode_records(records: Iterable[Tuple[int, Value]]) -> bytes:
    """Encode ``(key, Value)`` pairs into a complete stream."""
    transport = BufferTransport()
    codec = Codec(transport)
    for key, value in records:
        codec.append_value(key, value)
    return transport.getvalue()


def decode_records(data: bytes, strict: bool = False) -> List[Record]:
    """Decode a complete stream held in memory."""
    codec = Codec(BufferTransport(data))
    return list(iter_records(codec, strict=strict))
