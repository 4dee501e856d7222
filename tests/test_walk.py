"""Tests for record walking, depth tracking and the convenience API."""

from __future__ import annotations

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from databin import (
    BufferTransport,
    Codec,
    DatabinError,
    ERR_MALFORMED_TAG,
    ERR_UNBALANCED,
    Record,
    TAG_BYTE,
    TAG_CONTAINER,
    TAG_CONTAINER_CLOSE,
    TAG_FLOAT64,
    TAG_INT32,
    TAG_STRING,
    TAG_UINT64,
    Value,
    decode_records,
    encode_records,
    is_clean_end,
    iter_records,
)

OPEN = Value(TAG_CONTAINER)
CLOSE = Value(TAG_CONTAINER_CLOSE)

SCENARIO = [
    (0, OPEN),
    (1, Value(TAG_BYTE, ord("B"))),
    (2, OPEN),
    (3, Value(TAG_INT32, 1234)),
    (4, Value(TAG_UINT64, 18446744073709551603)),
    (0, CLOSE),
    (5, OPEN),
    (6, Value(TAG_STRING, b"abc")),
    (7, Value(TAG_STRING, b"abc123")),
    (0, CLOSE),
    (0, CLOSE),
]


class TestIterRecords(unittest.TestCase):
    def test_depths(self):
        records = decode_records(encode_records(SCENARIO))
        self.assertEqual([r.depth for r in records], [0, 1, 1, 2, 2, 1, 1, 2, 2, 1, 0])
        self.assertEqual([(r.key, r.value) for r in records], SCENARIO)

    def test_open_and_close_share_depth(self):
        records = decode_records(encode_records([(9, OPEN), (0, CLOSE)]))
        self.assertEqual(records, [Record(0, 9, OPEN), Record(0, 0, CLOSE)])

    def test_flat_stream(self):
        data = encode_records([(1, Value(TAG_FLOAT64, 0.5)), (2, Value(TAG_BYTE, 3))])
        self.assertEqual(decode_records(data), [
            Record(0, 1, Value(TAG_FLOAT64, 0.5)),
            Record(0, 2, Value(TAG_BYTE, 3)),
        ])

    def test_empty_stream(self):
        self.assertEqual(decode_records(b""), [])
        self.assertEqual(encode_records([]), b"")

    def test_is_lazy(self):
        src = BufferTransport(encode_records(SCENARIO))
        walker = iter_records(Codec(src))
        first = next(walker)
        self.assertEqual(first, Record(0, 0, OPEN))
        self.assertEqual(src.position, 3)

    def test_error_propagates(self):
        data = encode_records([(1, Value(TAG_BYTE, 3))]) + b"Z"
        walker = iter_records(Codec(BufferTransport(data)))
        next(walker)
        with self.assertRaises(DatabinError) as ctx:
            next(walker)
        self.assertEqual(ctx.exception.code, ERR_MALFORMED_TAG)


class TestStrictBalance(unittest.TestCase):
    def test_balanced_ok(self):
        records = decode_records(encode_records(SCENARIO), strict=True)
        self.assertEqual(len(records), len(SCENARIO))

    def test_stray_close_lenient(self):
        records = decode_records(encode_records([(0, CLOSE), (1, Value(TAG_BYTE, 1))]))
        self.assertEqual(records, [Record(0, 0, CLOSE), Record(0, 1, Value(TAG_BYTE, 1))])

    def test_stray_close_strict(self):
        with self.assertRaises(DatabinError) as ctx:
            decode_records(encode_records([(0, OPEN), (0, CLOSE), (0, CLOSE)]), strict=True)
        self.assertEqual(ctx.exception.code, ERR_UNBALANCED)

    def test_unclosed_lenient(self):
        records = decode_records(encode_records([(0, OPEN), (1, OPEN)]))
        self.assertEqual([r.depth for r in records], [0, 1])

    def test_unclosed_strict(self):
        with self.assertRaises(DatabinError) as ctx:
            decode_records(encode_records([(0, OPEN), (1, OPEN), (0, CLOSE)]), strict=True)
        self.assertEqual(ctx.exception.code, ERR_UNBALANCED)


class TestHelpers(unittest.TestCase):
    def test_is_clean_end(self):
        codec = Codec(BufferTransport(b""))
        try:
            codec.read_value()
        except DatabinError as e:
            self.assertTrue(is_clean_end(e))
        else:
            self.fail("read_value on an empty stream should raise")
        self.assertFalse(is_clean_end(DatabinError(ERR_UNBALANCED)))
        self.assertFalse(is_clean_end(ValueError()))

    def test_error_message_defaults_to_description(self):
        self.assertEqual(str(DatabinError(ERR_UNBALANCED)), "unbalanced container")
        self.assertEqual(str(DatabinError(ERR_UNBALANCED, "custom")), "custom")


if __name__ == "__main__":
    unittest.main()
