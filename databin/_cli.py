"""databin command-line interface.

Usage:
    python3 -m databin dump FILE [--strict]
    python3 -m databin version

``dump`` prints one line per record, indented two spaces per open
container.  Close markers are not printed.  Exit status is 0 when the
stream ends cleanly at a record boundary and 1 on any usage or read error.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, NoReturn, Optional

from . import (
    Codec,
    DatabinError,
    Record,
    Value,
    __version__,
    iter_records,
    open_file,
)
from ._constants import (
    FLOAT_TAGS,
    PAYLOAD_SIZES,
    TAG_CONTAINER,
    TAG_CONTAINER_CLOSE,
    TAG_STRING,
)

PROG = "databin"


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that exits 1 on usage errors instead of 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, "{}: error: {}\n".format(self.prog, message))


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog=PROG,
        description="databin — streaming typed binary records",
    )
    sub = parser.add_subparsers(dest="command")

    # ── dump ──
    dump_p = sub.add_parser("dump", help="Print the records of a databin file")
    dump_p.add_argument("file", metavar="FILE", help="databin file to read")
    dump_p.add_argument("--strict", action="store_true",
                        help="Fail on unbalanced container open/close markers")

    # ── version ──
    sub.add_parser("version", help="Print version and exit")

    return parser


def format_value(value: Value) -> str:
    """Render one value the way ``dump`` prints it (without key/indent)."""
    if value.tag == TAG_CONTAINER:
        return "container:"
    if value.tag == TAG_STRING:
        text = value.data.decode("utf-8", errors="backslashreplace")
    elif value.tag in FLOAT_TAGS:
        text = "{:f}".format(value.data)
    else:
        # Hex shows the raw bit pattern, so negatives print as two's complement.
        mask = (1 << (8 * PAYLOAD_SIZES[value.tag])) - 1
        text = "{} (0x{:x})".format(value.data, value.data & mask)
    return "{:>9}: {}".format(value.name, text)


def format_record(record: Record) -> str:
    return "{}{: 3d}: {}".format("  " * record.depth, record.key, format_value(record.value))


def dump(codec: Codec, strict: bool = False) -> None:
    for record in iter_records(codec, strict=strict):
        if record.value.tag == TAG_CONTAINER_CLOSE:
            continue
        print(format_record(record))


def _cmd_dump(args: argparse.Namespace) -> None:
    with open_file(args.file, "rb") as transport:
        with Codec(transport) as codec:
            dump(codec, strict=args.strict)


def _fail(err: DatabinError) -> NoReturn:
    sys.stdout.flush()
    print(f"{PROG}: error [{err.code}]: {err}", file=sys.stderr)
    sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help(sys.stderr)
        sys.exit(1)

    if args.command == "version":
        print(f"{PROG} {__version__}")
        return

    try:
        if args.command == "dump":
            _cmd_dump(args)
    except DatabinError as e:
        _fail(e)


if __name__ == "__main__":
    main()
