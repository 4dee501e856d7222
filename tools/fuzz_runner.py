#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Mutation fuzzing for the databin decoder.
#
# Takes valid streams, damages them, and decodes the result.  Three
# mutation categories:
#   A) truncation at a random offset
#   B) random byte overwrites (tags, keys, lengths, payloads alike)
#   C) random byte insertions / deletions
#
# Every decode must either succeed or raise DatabinError.  Any other
# exception prints a minimal repro payload and exits non-zero.

import os, sys, random
from collections import Counter
from typing import Dict, List, Tuple

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from databin import (
    DatabinError, Value, decode_records, encode_records,
    TAG_BYTE, TAG_CONTAINER, TAG_CONTAINER_CLOSE, TAG_FLOAT64, TAG_INT32,
    TAG_STRING, TAG_UINT64,
)

SEED = int(os.environ.get("DATABIN_SEED", "4242"))
ROUNDS = int(os.environ.get("DATABIN_FUZZ_ROUNDS", "5000"))

random.seed(SEED)

def seed_streams() -> List[bytes]:
    scenario = [
        (0, Value(TAG_CONTAINER)),
        (1, Value(TAG_BYTE, ord("B"))),
        (2, Value(TAG_CONTAINER)),
        (3, Value(TAG_INT32, 1234)),
        (4, Value(TAG_UINT64, 2**64 - 13)),
        (0, Value(TAG_CONTAINER_CLOSE)),
        (5, Value(TAG_CONTAINER)),
        (6, Value(TAG_STRING, b"abc")),
        (7, Value(TAG_STRING, b"abc123")),
        (0, Value(TAG_CONTAINER_CLOSE)),
        (0, Value(TAG_CONTAINER_CLOSE)),
    ]
    flat = [(k, Value(TAG_FLOAT64, k / 3.0)) for k in range(8)]
    strings = [(k, Value(TAG_STRING, bytes(range(k * 7 % 256)))) for k in range(6)]
    return [encode_records(s) for s in (scenario, flat, strings)]

def mutate(data: bytes) -> Tuple[str, bytes]:
    r = random.random()
    buf = bytearray(data)
    if r < 0.33 or not buf:
        return "A", bytes(buf[:random.randint(0, len(buf))])
    if r < 0.66:
        for _ in range(random.randint(1, 3)):
            buf[random.randrange(len(buf))] = random.getrandbits(8)
        return "B", bytes(buf)
    for _ in range(random.randint(1, 3)):
        if random.random() < 0.5 and buf:
            del buf[random.randrange(len(buf))]
        else:
            buf.insert(random.randint(0, len(buf)), random.getrandbits(8))
    return "C", bytes(buf)

def main() -> int:
    seeds = seed_streams()
    outcomes: Dict[str, Counter] = {"A": Counter(), "B": Counter(), "C": Counter()}
    for i in range(ROUNDS):
        cat, payload = mutate(random.choice(seeds))
        strict = random.random() < 0.5
        try:
            decode_records(payload, strict=strict)
            outcomes[cat]["ok"] += 1
        except DatabinError as e:
            outcomes[cat][e.code] += 1
        except Exception as e:  # anything else is a decoder bug
            print("CRASH:", type(e).__name__, e)
            print("ROUND:", i, "CATEGORY:", cat, "STRICT:", strict)
            print("INPUT_HEX:", payload.hex())
            return 1

    for cat in sorted(outcomes):
        summary = ", ".join("{}={}".format(k, v) for k, v in sorted(outcomes[cat].items()))
        print("{}: {}".format(cat, summary))
    print(f"OK: {ROUNDS} mutated streams decoded or failed cleanly (seed={SEED})")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
