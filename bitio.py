"""
Bit-granular readers and writers over binary streams.

Bits are packed MSB-first: the first bit written lands in bit 7 of the first
byte. The writer flushes lazily and reports how many bits of the final byte are
meaningful; the reader keeps one byte of lookahead so callers can tell when they
are consuming the final byte of the stream.
"""

from __future__ import annotations

import contextlib
from typing import BinaryIO

from errors import HuffmanIOError, UnexpectedEnd

CHUNK_SIZE = 64 * 1024


class BitSink: # MSB-first bit writer that owns its output stream
    def __init__(self, stream: BinaryIO, closefd: bool = True):
        self.stream = stream
        self.closefd = closefd # closefd=False only flushes on close (in-memory buffers)
        self.acc = 0
        self.acc_bits = 0
        self.bits_written = 0
        self.last_bits = 8
        self.closed = False
        self._pending = bytearray()

    def __enter__(self) -> "BitSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def write_bit(self, bit: int) -> None:
        if self.closed:
            raise ValueError("write to a closed BitSink")
        if bit != 0 and bit != 1:
            raise ValueError(f"bit must be 0 or 1, got {bit!r}")

        # A full byte is only emitted once another bit arrives, so close()
        # always has at least one buffered bit to report on.
        if self.acc_bits == 8:
            self._pending.append(self.acc)
            self.acc = 0
            self.acc_bits = 0
            if len(self._pending) >= CHUNK_SIZE:
                self._flush()

        self.acc = (self.acc << 1) | bit
        self.acc_bits += 1
        self.bits_written += 1

    def write_byte(self, value: int) -> None:
        if not 0 <= value <= 0xFF:
            raise ValueError(f"byte out of range: {value!r}")
        for i in range(7, -1, -1):
            self.write_bit((value >> i) & 1)

    def write_code(self, code: str) -> None:
        for ch in code:
            self.write_bit(1 if ch == '1' else 0)

    def _flush(self) -> None:
        if not self._pending:
            return
        try:
            self.stream.write(bytes(self._pending))
        except (OSError, ValueError) as e: # ValueError: underlying file already closed
            raise HuffmanIOError(f"write failed: {e}") from e
        self._pending.clear()

    def close(self) -> int:
        """
        Pad and emit the final byte, then release the stream.
        Returns the number of meaningful bits in that byte (1..8)
        """
        if self.closed:
            return self.last_bits

        if self.acc_bits:
            self._pending.append((self.acc << (8 - self.acc_bits)) & 0xFF)
            self.last_bits = self.acc_bits
            self.acc = 0
            self.acc_bits = 0

        self.closed = True
        try:
            self._flush()
        except HuffmanIOError:
            self._release_quietly()
            raise

        try:
            if self.closefd:
                self.stream.close()
            else:
                self.stream.flush()
        except (OSError, ValueError) as e:
            raise HuffmanIOError(f"close failed: {e}") from e
        return self.last_bits

    def abort(self) -> None:
        """
        Release the stream without padding or flushing, for error paths.
        Errors from the release are suppressed so the caller's exception wins
        """
        if self.closed:
            return
        self.closed = True
        self._pending.clear()
        self._release_quietly()

    def _release_quietly(self) -> None:
        if self.closefd:
            with contextlib.suppress(OSError, ValueError):
                self.stream.close()


class BitSource: # MSB-first bit reader with one byte of lookahead
    def __init__(self, stream: BinaryIO, closefd: bool = True):
        self.stream = stream
        self.closefd = closefd
        self._chunk = b""
        self._pos = 0
        self._current = 0
        self._consumed = 8 # bits already served from _current; 8 means "load the next byte"
        try:
            self._lookahead = self._next_byte() # -1 once the stream is exhausted
        except HuffmanIOError:
            self._release_quietly()
            raise

    def __enter__(self) -> "BitSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self._release_quietly()

    def _next_byte(self) -> int:
        if self._pos >= len(self._chunk):
            try:
                self._chunk = self.stream.read(CHUNK_SIZE)
            except (OSError, ValueError) as e:
                raise HuffmanIOError(f"read failed: {e}") from e
            self._pos = 0
            if not self._chunk:
                return -1
        value = self._chunk[self._pos]
        self._pos += 1
        return value

    def read_bit(self) -> int:
        if self._consumed == 8:
            if self._lookahead < 0:
                raise UnexpectedEnd("no more bits in stream")
            self._current = self._lookahead
            self._lookahead = self._next_byte()
            self._consumed = 0

        bit = (self._current >> (7 - self._consumed)) & 1
        self._consumed += 1
        return bit

    def read_byte(self) -> int:
        value = 0
        for _ in range(8):
            value = (value << 1) | self.read_bit()
        return value

    def is_last_byte(self) -> bool:
        return self._lookahead < 0

    @property
    def bits_consumed_in_byte(self) -> int:
        return self._consumed

    def close(self) -> None:
        if self.closefd:
            try:
                self.stream.close()
            except OSError as e:
                raise HuffmanIOError(f"close failed: {e}") from e

    def _release_quietly(self) -> None:
        if self.closefd:
            with contextlib.suppress(OSError, ValueError):
                self.stream.close()
