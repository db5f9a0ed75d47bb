# decode.py -- Streaming decoder for loose git objects
# Copyright (C) 2025 The plain authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# plain is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Streaming decoder for loose git objects.

A loose object is a zlib stream whose decompressed bytes are
``<kind> <size>\\0<payload>``. The pieces here are layered:

* :class:`ZlibReader` decompresses a compressed byte source on demand.
* :class:`HeaderScanner` parses the header from a decompressed stream and
  hands out a :class:`PayloadReader` bounded to the declared size.
* :class:`ObjectDecoder` composes both and can be reset onto a new
  compressed source, so a single instance can walk many objects.

None of these classes are safe for concurrent use.
"""

__all__ = [
    "DecoderState",
    "HeaderScanner",
    "ObjectDecoder",
    "PayloadReader",
    "ScannerState",
    "ZlibReader",
]

import io
import sys
import zlib
from enum import Enum
from types import TracebackType
from typing import BinaryIO

if sys.version_info >= (3, 12):
    from collections.abc import Buffer
    from typing import override
else:
    from typing_extensions import Buffer, override

from .errors import (
    DecompressionFailure,
    MalformedSize,
    NotCommitError,
    NotReset,
    UnknownObjectKind,
)
from .objects import Commit, ObjectHeader, ObjectKind, object_kind, parse_commit

# Longest kind token ("commit") and a generous bound for the size digits.
_MAX_KIND_LENGTH = max(len(kind.value) for kind in ObjectKind)
_MAX_SIZE_LENGTH = 32


def _is_zlib_header(magic: bytes) -> bool:
    if len(magic) < 2:
        return False
    b0, b1 = magic[0], magic[1]
    word = (b0 << 8) + b1
    return (b0 & 0x8F) == 0x08 and (word % 31) == 0


class ZlibReader(io.RawIOBase):
    """Raw stream that inflates a zlib-compressed byte source on demand."""

    chunk_size = 4096

    def __init__(self, source: BinaryIO) -> None:
        """Open a compressed source.

        Args:
          source: Binary file-like object producing zlib data
        Raises:
          DecompressionFailure: if the source does not start with a zlib header
        """
        super().__init__()
        self._decomp: "zlib._Decompress | None" = None
        self._pending = b""
        self._offset = 0
        self.reset(source)

    def reset(self, source: BinaryIO) -> None:
        """Start inflating a new compressed source, dropping any old state."""
        if self.closed:
            raise ValueError("I/O operation on closed decompressor")
        magic = source.read(2)
        if not _is_zlib_header(magic):
            raise DecompressionFailure(f"invalid zlib header: {magic!r}")
        self._source = source
        self._decomp = zlib.decompressobj()
        self._pending = b""
        self._offset = 0
        self._pending = self._inflate(magic)

    def _inflate(self, data: bytes) -> bytes:
        assert self._decomp is not None
        try:
            return self._decomp.decompress(data)
        except zlib.error as e:
            raise DecompressionFailure(str(e)) from e

    @override
    def readable(self) -> bool:
        return True

    @override
    def readinto(self, b: Buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed decompressor")
        assert self._decomp is not None
        view = memoryview(b).cast("B")
        while self._offset >= len(self._pending):
            if self._decomp.eof:
                return 0
            chunk = self._source.read(self.chunk_size)
            if not chunk:
                raise DecompressionFailure("compressed stream ended prematurely")
            self._pending = self._inflate(chunk)
            self._offset = 0
        n = min(len(view), len(self._pending) - self._offset)
        view[:n] = self._pending[self._offset : self._offset + n]
        self._offset += n
        return n

    @override
    def close(self) -> None:
        self._decomp = None
        self._pending = b""
        self._offset = 0
        super().close()


class ScannerState(Enum):
    """Where a HeaderScanner is in its read cycle."""

    READY = "ready"
    AWAITING_CONSUMPTION = "awaiting-consumption"


class HeaderScanner:
    """Parse object headers from a decompressed byte stream.

    A scanner reads one header per cycle. After :meth:`scan` the returned
    payload reader must be drained, or the scanner :meth:`reset`, before
    the next :meth:`scan`; otherwise :class:`NotReset` is raised rather
    than reading a header out of the middle of a payload.
    """

    buffer_size = 512

    def __init__(self, stream: BinaryIO) -> None:
        self._generation = 0
        self.reset(stream)

    def reset(self, stream: BinaryIO) -> None:
        """Point the scanner at a new stream and discard buffered bytes.

        Payload readers handed out before the reset stop working.
        """
        self._stream = stream
        self._buf = bytearray()
        self._generation += 1
        self._payload: PayloadReader | None = None
        self.state = ScannerState.READY

    def buffered(self) -> int:
        """Number of bytes read from the stream but not consumed yet."""
        return len(self._buf)

    def _fill(self) -> bool:
        data = self._stream.read(self.buffer_size)
        if not data:
            return False
        self._buf += data
        return True

    def _read_until(
        self,
        delim: bytes,
        limit: int,
        error: type[UnknownObjectKind] | type[MalformedSize],
    ) -> bytes:
        while True:
            i = self._buf.find(delim, 0, limit + 1)
            if i != -1:
                token = bytes(self._buf[:i])
                del self._buf[: i + 1]
                return token
            if len(self._buf) > limit or not self._fill():
                raise error(bytes(self._buf[:limit]))

    def scan(self) -> tuple[ObjectHeader, "PayloadReader"]:
        """Read the next header.

        Returns: Tuple with the header and a reader over its payload
        Raises:
          NotReset: if the previous payload has not been consumed
          UnknownObjectKind: if the kind token is not recognized
          MalformedSize: if the size is not a decimal number
        """
        if self.state is ScannerState.AWAITING_CONSUMPTION:
            assert self._payload is not None
            if not self._payload.exhausted:
                raise NotReset()
        kind = object_kind(self._read_until(b" ", _MAX_KIND_LENGTH, UnknownObjectKind))
        size_text = self._read_until(b"\0", _MAX_SIZE_LENGTH, MalformedSize)
        if not size_text.isdigit():
            raise MalformedSize(size_text)
        header = ObjectHeader(kind=kind, size=int(size_text))
        self._generation += 1
        self._payload = PayloadReader(self, header.size, self._generation)
        self.state = ScannerState.AWAITING_CONSUMPTION
        return header, self._payload

    def _readinto(self, view: memoryview) -> int:
        if self._buf:
            n = min(len(view), len(self._buf))
            view[:n] = self._buf[:n]
            del self._buf[:n]
            return n
        n = self._stream.readinto(view)
        return n or 0


class PayloadReader(io.RawIOBase):
    """Reader over at most ``size`` payload bytes following a header.

    The declared size is an upper bound: if the stream ends first the
    payload simply ends there.
    """

    def __init__(self, scanner: HeaderScanner, size: int, generation: int) -> None:
        super().__init__()
        self._scanner = scanner
        self._generation = generation
        self._remaining = size
        self._eof = False

    @property
    def remaining(self) -> int:
        """Bytes still allowed to be read."""
        return self._remaining

    @property
    def exhausted(self) -> bool:
        """True once the declared size was read or the stream ran out."""
        return self._remaining == 0 or self._eof

    @override
    def readable(self) -> bool:
        return True

    @override
    def readinto(self, b: Buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed payload reader")
        if self._generation != self._scanner._generation:
            raise ValueError("payload reader was invalidated by a reset")
        if self.exhausted:
            return 0
        view = memoryview(b).cast("B")[: self._remaining]
        n = self._scanner._readinto(view)
        if n == 0:
            self._eof = True
        self._remaining -= n
        return n


class DecoderState(Enum):
    """Where an ObjectDecoder is in its decode cycle."""

    READY = "ready"
    HEADER_READ = "header-read"
    DECODED = "decoded"
    # The header could not be parsed; only reset leaves this state.
    FAILED = "failed"


class ObjectDecoder:
    """Reusable decoder for loose objects.

    Each cycle reads at most one header and one body. :meth:`reset` starts
    a new cycle on another compressed source without building a new
    decoder::

        with ObjectDecoder.open(f) as decoder:
            header = decoder.header()
            commit = decoder.decode_commit(sha)
            decoder.reset(g)
            ...
    """

    def __init__(self, source: BinaryIO) -> None:
        self._zlib = ZlibReader(source)
        self._scanner = HeaderScanner(self._zlib)
        self._state = DecoderState.READY
        self._header: ObjectHeader | None = None
        self._payload: io.BufferedReader | None = None
        self._closed = False

    @classmethod
    def open(cls, source: BinaryIO) -> "ObjectDecoder":
        """Create a decoder for a compressed source.

        Raises:
          DecompressionFailure: if the source is not zlib data
        """
        return cls(source)

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed decoder")

    def header(self) -> ObjectHeader:
        """Read the header of the current object.

        Raises:
          NotReset: if a header was already read, or failed to parse, in this
            cycle
        """
        self._check_open()
        if self._state is not DecoderState.READY:
            raise NotReset()
        try:
            header, payload = self._scanner.scan()
        except Exception:
            self._state = DecoderState.FAILED
            raise
        self._header = header
        self._payload = io.BufferedReader(payload)
        self._state = DecoderState.HEADER_READ
        return header

    def _consume(self) -> tuple[ObjectHeader, io.BufferedReader]:
        self._check_open()
        if self._state in (DecoderState.DECODED, DecoderState.FAILED):
            raise NotReset()
        if self._state is DecoderState.READY:
            self.header()
        assert self._header is not None and self._payload is not None
        self._state = DecoderState.DECODED
        return self._header, self._payload

    def decode_commit(self, sha: str) -> Commit:
        """Decode the current object as a commit.

        The header is scanned first if :meth:`header` was not called in this
        cycle.

        Args:
          sha: Id of the object, recorded on the commit
        Raises:
          NotReset: if the body was already consumed in this cycle
          NotCommitError: if the object is not a commit
        """
        header, payload = self._consume()
        if header.kind is not ObjectKind.COMMIT:
            raise NotCommitError(sha)
        return parse_commit(sha, payload)

    def read_payload(self) -> bytes:
        """Return the raw payload of the current object, whatever its kind."""
        _header, payload = self._consume()
        return payload.read()

    def reset(self, source: BinaryIO) -> None:
        """Start a new cycle on another compressed source."""
        self._check_open()
        self._zlib.reset(source)
        self._scanner.reset(self._zlib)
        self._header = None
        self._payload = None
        self._state = DecoderState.READY

    def close(self) -> None:
        """Release the decompression stage. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._payload = None
        self._zlib.close()

    def __enter__(self) -> "ObjectDecoder":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
