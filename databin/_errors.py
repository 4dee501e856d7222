"""databin error codes and exception class.

Every failure surfaces as a single exception type, :class:`DatabinError`,
whose ``.code`` attribute tells callers what went wrong.  Nothing in the
codec retries or resynchronizes: after any error the stream position is
indeterminate and the stream should be abandoned.

The one code that is not really a failure is ``ERR_END_OF_STREAM``: it
means the stream ended exactly at a record boundary with nothing consumed.
``Codec.peek_type()`` turns it into ``None``; consumers that call a typed
read at that point get the exception instead.
"""

from __future__ import annotations

from typing import Dict

# ── Error codes ──────────────────────────────────────────────

ERR_TRANSPORT: str = "ERR_TRANSPORT"              # OS-level I/O failure
ERR_END_OF_STREAM: str = "ERR_END_OF_STREAM"      # clean end at a boundary
ERR_UNEXPECTED_END: str = "ERR_UNEXPECTED_END"    # end inside a record
ERR_MALFORMED_TAG: str = "ERR_MALFORMED_TAG"      # unknown tag byte
ERR_TYPE_MISMATCH: str = "ERR_TYPE_MISMATCH"      # known tag, not the expected one
ERR_SHORT_TRANSFER: str = "ERR_SHORT_TRANSFER"    # partial read or write
ERR_INVALID_ARG: str = "ERR_INVALID_ARG"          # API misuse
ERR_INVALID_VALUE: str = "ERR_INVALID_VALUE"      # value doesn't fit its tag
ERR_UNBALANCED: str = "ERR_UNBALANCED"            # strict walk: bad nesting

_DESCRIPTIONS: Dict[str, str] = {
    ERR_TRANSPORT: "transport failure",
    ERR_END_OF_STREAM: "end of stream",
    ERR_UNEXPECTED_END: "unexpected end of stream",
    ERR_MALFORMED_TAG: "malformed tag",
    ERR_TYPE_MISMATCH: "type mismatch",
    ERR_SHORT_TRANSFER: "short transfer",
    ERR_INVALID_ARG: "invalid argument",
    ERR_INVALID_VALUE: "invalid value",
    ERR_UNBALANCED: "unbalanced container",
}


class DatabinError(Exception):
    """Exception for databin encode/decode errors.

    The `.code` attribute is one of the ERR_* strings above.
    """

    def __init__(self, code: str, msg: str = "") -> None:
        super().__init__(msg or _DESCRIPTIONS.get(code, code))
        self.code = code


def is_clean_end(exc: BaseException) -> bool:
    """True if *exc* signals a clean end of stream rather than a failure."""
    return isinstance(exc, DatabinError) and exc.code == ERR_END_OF_STREAM
