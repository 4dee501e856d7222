"""databin transports: the byte-stream abstraction the codec runs over.

A transport moves exact-size blocks of bytes.  There is no partial
success: a request either completes in full or raises ``DatabinError``.
Reads tell three failures apart:

    ERR_END_OF_STREAM   nothing at all was available (clean end)
    ERR_SHORT_TRANSFER  some, but not all, of the bytes were available
    ERR_TRANSPORT       the underlying stream raised OSError or is closed

The codec decides whether a clean end is acceptable (at a record
boundary) or not (mid-record); transports only report what happened.

Three implementations ship here:

    FileTransport    binary file objects (files, BytesIO, socket.makefile)
    FdTransport      raw OS file descriptors
    BufferTransport  an in-memory bytearray, handy for tests
"""

from __future__ import annotations

import abc
import io
import os
import stat
from typing import BinaryIO, Optional, Union

from ._constants import SKIP_CHUNK_SIZE
from ._errors import (
    ERR_END_OF_STREAM,
    ERR_SHORT_TRANSFER,
    ERR_TRANSPORT,
    DatabinError,
)

BytesLike = Union[bytes, bytearray, memoryview]


def _check_count(got: int, size: int) -> None:
    """Classify a transfer that moved *got* of *size* requested bytes."""
    if got == size:
        return
    if got == 0:
        raise DatabinError(ERR_END_OF_STREAM)
    raise DatabinError(ERR_SHORT_TRANSFER,
                       "short transfer: {} of {} bytes".format(got, size))


def _fault(exc: OSError) -> DatabinError:
    return DatabinError(ERR_TRANSPORT, "transport failure: {}".format(exc))


class Transport(abc.ABC):
    """Exact-size byte stream.

    Subclasses provide ``_read_some`` (one underlying read that may come
    back short) and ``write``.  ``read`` and ``skip`` are built on top of
    ``_read_some``; seekable transports override ``skip``.
    """

    closed = False

    @abc.abstractmethod
    def _read_some(self, size: int) -> bytes:
        """Read at most *size* bytes; empty bytes means end of stream."""

    @abc.abstractmethod
    def write(self, data: BytesLike) -> None:
        """Write all of *data* or raise."""

    def read(self, size: int) -> bytes:
        """Read exactly *size* bytes."""
        self._check_open()
        if size == 0:
            return b""
        chunks = []
        remaining = size
        while remaining:
            chunk = self._read_some(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        _check_count(len(data), size)
        return data

    def skip(self, size: int) -> None:
        """Advance past *size* bytes without keeping them."""
        self._check_open()
        consumed = 0
        while consumed < size:
            chunk = self._read_some(min(size - consumed, SKIP_CHUNK_SIZE))
            if not chunk:
                break
            consumed += len(chunk)
        _check_count(consumed, size)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    def _check_open(self) -> None:
        if self.closed:
            raise DatabinError(ERR_TRANSPORT, "transport is closed")

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FileTransport(Transport):
    """Transport over a binary file-like object.

    The file object stays owned by the caller unless ``owns=True``, in
    which case ``close()`` closes it as well.
    """

    def __init__(self, fp: BinaryIO, owns: bool = False) -> None:
        self._fp = fp
        self._owns = owns
        try:
            self._seekable = fp.seekable()
        except (AttributeError, OSError, ValueError):
            self._seekable = False

    def _check_open(self) -> None:
        super()._check_open()
        if getattr(self._fp, "closed", False):
            raise DatabinError(ERR_TRANSPORT, "file object is closed")

    def _read_some(self, size: int) -> bytes:
        try:
            return self._fp.read(size) or b""
        except OSError as exc:
            raise _fault(exc) from exc

    def skip(self, size: int) -> None:
        if not self._seekable:
            super().skip(size)
            return
        self._check_open()
        if size == 0:
            return
        try:
            pos = self._fp.tell()
            end = self._fp.seek(0, io.SEEK_END)
            self._fp.seek(min(pos + size, end))
        except OSError as exc:
            raise _fault(exc) from exc
        _check_count(min(max(end - pos, 0), size), size)

    def write(self, data: BytesLike) -> None:
        self._check_open()
        try:
            written = self._fp.write(data)
        except OSError as exc:
            raise _fault(exc) from exc
        # Some file-likes return None from write(); they are all-or-raise.
        if written is not None and written != len(data):
            raise DatabinError(ERR_SHORT_TRANSFER,
                               "short write: {} of {} bytes".format(written, len(data)))

    def flush(self) -> None:
        self._check_open()
        flush = getattr(self._fp, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except OSError as exc:
            raise _fault(exc) from exc

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._owns:
                self._fp.close()
            elif not getattr(self._fp, "closed", False):
                self.flush()
        except OSError as exc:
            raise _fault(exc) from exc
        finally:
            super().close()


class FdTransport(Transport):
    """Transport over a raw OS file descriptor (pipe, socket, file)."""

    def __init__(self, fd: int, owns: bool = False) -> None:
        self._fd = fd
        self._owns = owns
        # Only regular files have an end offset to seek against.
        try:
            self._seekable = stat.S_ISREG(os.fstat(fd).st_mode)
        except OSError:
            self._seekable = False

    def _read_some(self, size: int) -> bytes:
        try:
            return os.read(self._fd, size)
        except OSError as exc:
            raise _fault(exc) from exc

    def skip(self, size: int) -> None:
        if not self._seekable:
            super().skip(size)
            return
        self._check_open()
        if size == 0:
            return
        try:
            pos = os.lseek(self._fd, 0, os.SEEK_CUR)
            end = os.lseek(self._fd, 0, os.SEEK_END)
            os.lseek(self._fd, min(pos + size, end), os.SEEK_SET)
        except OSError as exc:
            raise _fault(exc) from exc
        _check_count(min(max(end - pos, 0), size), size)

    def write(self, data: BytesLike) -> None:
        self._check_open()
        try:
            written = os.write(self._fd, data)
        except OSError as exc:
            raise _fault(exc) from exc
        if written != len(data):
            raise DatabinError(ERR_SHORT_TRANSFER,
                               "short write: {} of {} bytes".format(written, len(data)))

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._owns:
                os.close(self._fd)
        except OSError as exc:
            raise _fault(exc) from exc
        finally:
            super().close()


class BufferTransport(Transport):
    """In-memory transport.

    Writes append to an internal buffer; reads consume from a cursor that
    starts at the beginning of *data*.  ``getvalue()`` returns everything
    written (or supplied) so far.
    """

    def __init__(self, data: BytesLike = b"") -> None:
        self._buf = bytearray(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def _read_some(self, size: int) -> bytes:
        chunk = bytes(self._buf[self._pos:self._pos + size])
        self._pos += len(chunk)
        return chunk

    def skip(self, size: int) -> None:
        self._check_open()
        n = min(size, len(self._buf) - self._pos)
        self._pos += n
        _check_count(n, size)

    def write(self, data: BytesLike) -> None:
        self._check_open()
        self._buf += data


def open_file(path: Union[str, "os.PathLike[str]"], mode: str = "rb",
              buffering: Optional[int] = None) -> FileTransport:
    """Open *path* in binary mode and return a transport that owns it."""
    if "b" not in mode:
        mode += "b"
    try:
        if buffering is None:
            fp = open(path, mode)
        else:
            fp = open(path, mode, buffering=buffering)
    except OSError as exc:
        raise _fault(exc) from exc
    return FileTransport(fp, owns=True)
