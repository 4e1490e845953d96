"""
Static two-pass Huffman codec.

Compressed file layout (all bits MSB-first, no alignment between fields):

  byte 0       : number of meaningful bits in the final byte (1..8)
  byte 1       : number of code table entries minus one (0..255)
  per entry    : symbol (1 byte), code length (1 byte), code bits
  body         : the code of every input byte, in input order
  padding      : zero bits up to the next byte boundary

Bytes 0 and 1 are written as placeholders and patched once the body has been
flushed, so encoding needs a seekable output.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, Dict, Set, Tuple, Union

from bitio import BitSink, BitSource
from errors import EmptyInput, HuffmanIOError, InvalidCode, MalformedHeader, UnexpectedEnd
from huffman import HuffmanNode, build_code_table, count_frequencies, freq_table

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]
CHUNK_SIZE = 64 * 1024


@dataclass
class EncodeResult:
    original_size: int
    compressed_size: int
    code_count: int
    valid_bits_in_last_byte: int
    body_bits: int

    @property
    def reduction_percent(self) -> float:
        return reduction_percent(self.original_size, self.compressed_size)


@dataclass
class DecodeResult:
    compressed_size: int
    decoded_size: int
    code_count: int


def reduction_percent(original_size: int, compressed_size: int) -> float:
    if original_size <= 0:
        return 0.0
    return 100.0 * (1.0 - compressed_size / original_size)


# Stream helpers

def _open(path: PathLike, mode: str) -> BinaryIO:
    try:
        return open(path, mode)
    except OSError as e:
        raise HuffmanIOError(f"cannot open {os.fspath(path)!r}: {e}") from e


def _size(path: PathLike) -> int:
    try:
        return os.path.getsize(path)
    except OSError as e:
        raise HuffmanIOError(f"cannot stat {os.fspath(path)!r}: {e}") from e


def _codes_for(frequencies: Dict[int, int]) -> Dict[int, str]:
    if not frequencies:
        raise EmptyInput("input is empty; the header cannot describe zero codes")
    _, codes = build_code_table(frequencies)
    logger.debug("built code table: %d symbols, longest code %d bits",
                 len(codes), max(len(c) for c in codes.values()))
    return codes


# Encoding

def _write_header(sink: BitSink, codes: Dict[int, str]) -> None:
    # placeholders for valid_bits_in_last_byte and code_count - 1
    sink.write_byte(0)
    sink.write_byte(0)

    for symbol in range(256):
        code = codes.get(symbol)
        if code is None:
            continue
        sink.write_byte(symbol)
        sink.write_byte(len(code))
        sink.write_code(code)


def _write_body(sink: BitSink, stream: BinaryIO, codes: Dict[int, str]) -> int:
    body_bits = 0
    while True:
        try:
            chunk = stream.read(CHUNK_SIZE)
        except OSError as e:
            raise HuffmanIOError(f"read failed: {e}") from e
        if not chunk:
            return body_bits
        for b in chunk:
            code = codes[b]
            sink.write_code(code)
            body_bits += len(code)


def _patch_header(stream: BinaryIO, valid_bits: int, code_count: int) -> None:
    try:
        stream.seek(0)
        stream.write(bytes([valid_bits, code_count - 1]))
    except OSError as e:
        raise HuffmanIOError(f"cannot patch header: {e}") from e


def encode_file(input_path: PathLike, output_path: PathLike) -> EncodeResult:
    """
    Compress input_path into output_path.

    The input is read twice (statistics, then body) and the output is reopened
    after the body is flushed to patch the first two header bytes.
    """
    with _open(input_path, "rb") as f:
        frequencies = count_frequencies(f)
    codes = _codes_for(frequencies)

    sink = BitSink(_open(output_path, "wb"))
    try:
        _write_header(sink, codes)
        header_bits = sink.bits_written
        with _open(input_path, "rb") as f:
            body_bits = _write_body(sink, f, codes)
    except BaseException:
        sink.abort()
        raise
    valid_bits = sink.close()
    logger.debug("wrote %d header bits and %d body bits", header_bits, body_bits)

    with _open(output_path, "r+b") as out:
        _patch_header(out, valid_bits, len(codes))

    result = EncodeResult(
        original_size=sum(frequencies.values()),
        compressed_size=_size(output_path),
        code_count=len(codes),
        valid_bits_in_last_byte=valid_bits,
        body_bits=body_bits,
    )
    logger.info("encoded %s -> %s: %d -> %d bytes, %d codes",
                os.fspath(input_path), os.fspath(output_path),
                result.original_size, result.compressed_size, result.code_count)
    return result


def encode_bytes(data: bytes) -> bytes:
    codes = _codes_for(freq_table(data))

    buffer = io.BytesIO()
    sink = BitSink(buffer, closefd=False)
    try:
        _write_header(sink, codes)
        body_bits = _write_body(sink, io.BytesIO(data), codes)
    except BaseException:
        sink.abort()
        raise
    valid_bits = sink.close()

    _patch_header(buffer, valid_bits, len(codes))
    logger.debug("encoded %d bytes: %d body bits, %d valid bits in last byte",
                 len(data), body_bits, valid_bits)
    return buffer.getvalue()


# Decoding

def _read_header(source: BitSource) -> Tuple[int, int]:
    try:
        valid_bits = source.read_byte()
        code_count = source.read_byte() + 1
    except UnexpectedEnd as e:
        raise MalformedHeader("header is truncated") from e
    if not 1 <= valid_bits <= 8:
        raise MalformedHeader(f"valid bits in last byte must be 1..8, got {valid_bits}")
    return valid_bits, code_count


def _rebuild_tree(source: BitSource, code_count: int) -> HuffmanNode:
    root = HuffmanNode(None, 0)
    seen: Set[int] = set()

    for _ in range(code_count):
        symbol = source.read_byte()
        code_length = source.read_byte()
        if symbol in seen:
            raise InvalidCode(f"symbol {symbol} appears twice in the code table")
        seen.add(symbol)

        cursor = root
        for _ in range(code_length):
            if cursor.is_leaf:
                raise InvalidCode(f"code for symbol {symbol} extends the code of symbol {cursor.symbol}")
            if source.read_bit() == 0:
                if cursor.left is None:
                    cursor.left = HuffmanNode(None, 0)
                cursor = cursor.left
            else:
                if cursor.right is None:
                    cursor.right = HuffmanNode(None, 0)
                cursor = cursor.right

        if cursor is root:
            raise InvalidCode(f"symbol {symbol} has an empty code")
        if cursor.is_leaf:
            raise InvalidCode(f"symbol {symbol} has the same code as symbol {cursor.symbol}")
        if cursor.left is not None or cursor.right is not None:
            raise InvalidCode(f"code for symbol {symbol} is a prefix of another code")
        cursor.symbol = symbol

    return root


def _decode_body(source: BitSource, root: HuffmanNode, valid_bits: int, output: BinaryIO) -> int:
    decoded = bytearray()
    decoded_size = 0

    # Stop once every meaningful bit of the final byte has been consumed;
    # whatever follows is padding.
    while not (source.is_last_byte() and source.bits_consumed_in_byte == valid_bits):
        node = root
        while not node.is_leaf:
            bit = source.read_bit()
            if source.is_last_byte() and source.bits_consumed_in_byte > valid_bits:
                raise UnexpectedEnd("body ends in the middle of a code")
            node = node.left if bit == 0 else node.right
            if node is None:
                raise InvalidCode("body contains a bit sequence that is not in the code table")

        decoded.append(node.symbol)
        if len(decoded) >= CHUNK_SIZE:
            _write_out(output, decoded)
            decoded_size += len(decoded)
            decoded.clear()

    _write_out(output, decoded)
    return decoded_size + len(decoded)


def _write_out(output: BinaryIO, data: bytearray) -> None:
    if not data:
        return
    try:
        output.write(data)
    except OSError as e:
        raise HuffmanIOError(f"write failed: {e}") from e


def decode_file(input_path: PathLike, output_path: PathLike) -> DecodeResult:
    with BitSource(_open(input_path, "rb")) as source:
        valid_bits, code_count = _read_header(source)
        root = _rebuild_tree(source, code_count)
        logger.debug("header: %d codes, %d valid bits in last byte", code_count, valid_bits)
        with _open(output_path, "wb") as output:
            decoded_size = _decode_body(source, root, valid_bits, output)

    result = DecodeResult(
        compressed_size=_size(input_path),
        decoded_size=decoded_size,
        code_count=code_count,
    )
    logger.info("decoded %s -> %s: %d -> %d bytes",
                os.fspath(input_path), os.fspath(output_path),
                result.compressed_size, result.decoded_size)
    return result


def decode_bytes(data: bytes) -> bytes:
    output = io.BytesIO()
    with BitSource(io.BytesIO(data)) as source:
        valid_bits, code_count = _read_header(source)
        root = _rebuild_tree(source, code_count)
        _decode_body(source, root, valid_bits, output)
    return output.getvalue()
