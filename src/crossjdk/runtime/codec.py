"""
Two-stage codec for runtime archives.

Packing runs the raw archive through two streaming stages:

1. Transposition: the input is cut into blocks and each block is rewritten
   as `stride` byte planes (every stride-th byte starting at offset 0, then
   offset 1, ...). This is a plain reversible byte shuffle with no knowledge
   of the archive format. Jar entries are usually deflate-compressed already,
   so it only helps LZMA on stored (uncompressed) entries and on data with a
   fixed-width numeric layout.
2. LZMA compression of the transposed stream in the `.lzma` ("alone")
   container.

Unpacking inverts both stages. The transposed stream layout is

    magic (4 bytes) | stride (u8) | { length (u32 BE) | planes }* | 0 (u32 BE)

and reproduces the original bytes exactly.
"""

import lzma
import shutil
import struct
from typing import BinaryIO, Iterator

from crossjdk.constants import (
    LZMA_PRESET,
    TRANSPOSE_BLOCK_SIZE,
    TRANSPOSE_MAGIC,
    TRANSPOSE_STRIDE,
)
from crossjdk.exceptions import CorruptedArchiveError
from crossjdk.runtime.interfaces import Pathish

_HEADER = struct.Struct(">4sB")
_BLOCK_LENGTH = struct.Struct(">I")


def transpose(block: bytes, stride: int) -> bytes:
    return b"".join(block[offset::stride] for offset in range(stride))


def untranspose(data: bytes, stride: int) -> bytes:
    size = len(data)
    out = bytearray(size)
    position = 0
    for offset in range(stride):
        plane_length = len(range(offset, size, stride))
        out[offset::stride] = data[position : position + plane_length]
        position += plane_length
    return bytes(out)


class TransposeWriter:
    """
    File-like stage 1 encoder writing the transposed stream to `target`.

    Input is buffered into fixed-size blocks; close() flushes the last partial
    block and writes the terminator. The underlying stream is not closed.
    """

    def __init__(
        self,
        target: BinaryIO,
        stride: int = TRANSPOSE_STRIDE,
        block_size: int = TRANSPOSE_BLOCK_SIZE,
    ):
        if not 0 < stride < 256:
            raise ValueError(f"stride must be between 1 and 255, got {stride}")
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}")
        self.target = target
        self.stride = stride
        self.block_size = block_size
        self._buffer = bytearray()
        self._closed = False
        self.target.write(_HEADER.pack(TRANSPOSE_MAGIC, stride))

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed TransposeWriter")
        self._buffer.extend(data)
        while len(self._buffer) >= self.block_size:
            self._emit(bytes(self._buffer[: self.block_size]))
            del self._buffer[: self.block_size]
        return len(data)

    def _emit(self, block: bytes) -> None:
        self.target.write(_BLOCK_LENGTH.pack(len(block)))
        self.target.write(transpose(block, self.stride))

    def close(self) -> None:
        if self._closed:
            return
        if self._buffer:
            self._emit(bytes(self._buffer))
            self._buffer.clear()
        self.target.write(_BLOCK_LENGTH.pack(0))
        self._closed = True

    def __enter__(self) -> "TransposeWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Never write a terminator after a failed write
        if exc_type is None:
            self.close()
        else:
            self._closed = True


def _read_exact(source: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = source.read(remaining)
        if not chunk:
            raise CorruptedArchiveError(
                "Transposed stream ended unexpectedly",
                details=f"missing {remaining} of {size} bytes",
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def iter_transposed_blocks(source: BinaryIO) -> Iterator[bytes]:
    """
    Decode a transposed stream from `source`, yielding original bytes block by block.

    Raises:
        CorruptedArchiveError: On a bad header, truncated data or trailing bytes.
    """
    magic, stride = _HEADER.unpack(_read_exact(source, _HEADER.size))
    if magic != TRANSPOSE_MAGIC:
        raise CorruptedArchiveError(
            "Not a transposed runtime stream", details=f"magic {magic!r}"
        )
    if stride == 0:
        raise CorruptedArchiveError("Invalid transposition stride 0")

    while True:
        (length,) = _BLOCK_LENGTH.unpack(_read_exact(source, _BLOCK_LENGTH.size))
        if length == 0:
            break
        yield untranspose(_read_exact(source, length), stride)

    if source.read(1):
        raise CorruptedArchiveError("Unexpected data after end of transposed stream")


def pack_stream(source: BinaryIO, target: BinaryIO) -> None:
    """Encode `source` through both stages into `target`."""
    with lzma.LZMAFile(
        target, "wb", format=lzma.FORMAT_ALONE, preset=LZMA_PRESET
    ) as compressed:
        with TransposeWriter(compressed) as writer:
            shutil.copyfileobj(source, writer)


def unpack_stream(source: BinaryIO, target: BinaryIO) -> None:
    """Decode a packed `source` (decompress, then un-transpose) into `target`."""
    with lzma.LZMAFile(source, "rb", format=lzma.FORMAT_ALONE) as compressed:
        for block in iter_transposed_blocks(compressed):
            target.write(block)


def pack_file(raw_path: Pathish, packed_path: Pathish) -> None:
    with open(raw_path, "rb") as source, open(packed_path, "wb") as target:
        pack_stream(source, target)


def unpack_file(packed_path: Pathish, raw_path: Pathish) -> None:
    with open(packed_path, "rb") as source, open(raw_path, "wb") as target:
        unpack_stream(source, target)
