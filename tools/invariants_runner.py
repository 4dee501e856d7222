#!/usr/bin/env python3
# tools/invariants_runner.py
#
# Stream invariants (property tests) for the databin codec.
#
# This runner:
# - generates random, well-formed record sequences (scalars, strings,
#   nested containers) within the format's limits
# - checks round trip, re-encode stability, skip alignment and peek
#   idempotence for each one
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import os, sys, random
from typing import List, Tuple

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from databin import (
    BufferTransport, Codec, Value, decode_records, encode_records,
    TAG_BYTE, TAG_CONTAINER, TAG_CONTAINER_CLOSE, TAG_FLOAT32, TAG_FLOAT64,
    TAG_INT16, TAG_INT32, TAG_INT64, TAG_STRING, TAG_UINT16, TAG_UINT32,
    TAG_UINT64, MAX_KEY,
)
from databin._constants import INT_RANGES

SEED = int(os.environ.get("DATABIN_SEED", "1337"))
TRIALS = int(os.environ.get("DATABIN_TRIALS", "2000"))
MAX_GEN_DEPTH = int(os.environ.get("DATABIN_GEN_MAX_DEPTH", "6"))
MAX_CHILDREN = int(os.environ.get("DATABIN_GEN_MAX_CHILDREN", "6"))
MAX_STR = int(os.environ.get("DATABIN_GEN_MAX_STR", "64"))

random.seed(SEED)

INT_TAGS = [TAG_BYTE, TAG_INT16, TAG_UINT16, TAG_INT32, TAG_UINT32, TAG_INT64, TAG_UINT64]

Stream = List[Tuple[int, Value]]


def rand_key() -> int:
    # Mostly small keys, occasionally the extremes.
    r = random.random()
    if r < 0.05:
        return MAX_KEY
    if r < 0.10:
        return 0
    return random.randint(0, 64)

def rand_string() -> bytes:
    n = random.randint(0, MAX_STR)
    # Embedded zeros are fine: the codec always writes explicit lengths here.
    return bytes(random.getrandbits(8) for _ in range(n))

def rand_scalar() -> Value:
    r = random.random()
    if r < 0.25:
        return Value(TAG_STRING, rand_string())
    if r < 0.35:
        # Exactly representable in f32: small dyadic rationals.
        return Value(TAG_FLOAT32, random.randint(-4096, 4096) / 64.0)
    if r < 0.45:
        return Value(TAG_FLOAT64, random.uniform(-1e12, 1e12))
    tag = random.choice(INT_TAGS)
    lo, hi = INT_RANGES[tag]
    if random.random() < 0.2:
        return Value(tag, random.choice((lo, hi)))
    return Value(tag, random.randint(lo, hi))

def gen_stream(depth: int, out: Stream) -> None:
    for _ in range(random.randint(0, MAX_CHILDREN)):
        if depth < MAX_GEN_DEPTH and random.random() < 0.3:
            out.append((rand_key(), Value(TAG_CONTAINER)))
            gen_stream(depth + 1, out)
            out.append((0, Value(TAG_CONTAINER_CLOSE)))
        else:
            out.append((rand_key(), rand_scalar()))

def fail(label: str, trial: int, stream: Stream) -> int:
    print("INVARIANT FAIL:", label)
    print("TRIAL:", trial, "SEED:", SEED)
    print("STREAM:", repr(stream)[:2000])
    return 1

def main() -> int:
    for t in range(TRIALS):
        stream: Stream = []
        gen_stream(0, stream)

        # (1) Round trip: same keys, tags and values in the same order.
        data = encode_records(stream)
        decoded = [(r.key, r.value) for r in decode_records(data, strict=True)]
        if decoded != stream:
            return fail("round trip", t, stream)

        # (2) Re-encode stability.
        if encode_records(decoded) != data:
            return fail("re-encode stability", t, stream)

        # (3) Skip alignment: a skip-only walk visits every record and
        #     ends exactly at the end of the data.
        src = BufferTransport(data)
        codec = Codec(src)
        tags = []
        while codec.peek_type() is not None:
            _, value = codec.read_value(skip=True)
            tags.append(value.tag)
        if tags != [v.tag for _, v in stream] or src.position != len(data):
            return fail("skip alignment", t, stream)

        # (4) Peek idempotence: any number of peeks costs one byte.
        src = BufferTransport(data)
        codec = Codec(src)
        for _ in stream:
            before = src.position
            for _ in range(random.randint(1, 4)):
                codec.peek_type()
            if src.position != before + 1:
                return fail("peek idempotence", t, stream)
            codec.read_value()

    print(f"OK: invariants passed for TRIALS={TRIALS} seed={SEED}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
