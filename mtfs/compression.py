"""Run-length compression of byte strings and files, with a small binary header."""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass
from itertools import groupby
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

MAGIC = 0x4D544653
VERSION = 1
RLE = 0

# magic (u32), version (u16), 2 pad bytes, original size (u32),
# compressed size (u32), compression type (u8), 3 pad bytes
_HEADER = struct.Struct("<IH2xIIB3x")
HEADER_SIZE = _HEADER.size

_MAX_RUN = 255


class CompressionError(RuntimeError):
    """Raised when data or a file cannot be compressed or decompressed."""


@dataclass
class CompressionStats:
    """Running totals over compression operations."""

    total_files_compressed: int = 0
    total_original_bytes: int = 0
    total_compressed_bytes: int = 0
    average_compression_ratio: float = 0.0

    def overall_ratio(self) -> float:
        """Space saved over all operations, as a percentage."""
        if self.total_original_bytes <= 0:
            return 0.0
        return (1.0 - self.total_compressed_bytes / self.total_original_bytes) * 100.0

    def add(self, original_size: int, compressed_size: int) -> None:
        """Record one compression of ``original_size`` bytes into ``compressed_size``."""
        self.total_files_compressed += 1
        self.total_original_bytes += original_size
        self.total_compressed_bytes += compressed_size
        self.average_compression_ratio = self.overall_ratio()


def _rle_compress(data: bytes) -> bytes:
    out = bytearray()
    for value, run in groupby(data):
        length = sum(1 for _ in run)
        while length > 0:
            take = min(length, _MAX_RUN)
            out += bytes((take, value))
            length -= take
    return bytes(out)


def _rle_decompress(data: bytes) -> bytes:
    # A trailing unpaired byte is ignored.
    return b"".join(bytes((value,)) * count for count, value in zip(data[0::2], data[1::2]))


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """Space saved, as a percentage of ``original_size``."""
    if original_size == 0:
        return 0.0
    return (1.0 - compressed_size / original_size) * 100.0


def compress(data: bytes) -> bytes:
    """Compress ``data`` and prepend the header."""
    data = bytes(data)
    logger.info("Compressing data of size: %d bytes", len(data))
    payload = _rle_compress(data)
    header = _HEADER.pack(MAGIC, VERSION, len(data), len(payload), RLE)
    result = header + payload
    logger.info(
        "Compression completed. Ratio: %f%%", compression_ratio(len(data), len(result))
    )
    return result


def decompress(data: bytes) -> bytes:
    """Check the header of ``data`` and return the original bytes."""
    data = bytes(data)
    if len(data) < HEADER_SIZE:
        raise CompressionError("Invalid compressed data: too small")
    magic, version, original_size, _compressed_size, kind = _HEADER.unpack_from(data)
    if magic != MAGIC:
        raise CompressionError("Invalid compression magic number")
    if version != VERSION:
        raise CompressionError("Unsupported compression version")
    logger.info("Decompressing data. Original size: %d bytes", original_size)
    if kind != RLE:
        raise CompressionError(f"Unsupported compression type: {kind}")
    result = _rle_decompress(data[HEADER_SIZE:])
    if len(result) != original_size:
        raise CompressionError("Decompressed size mismatch")
    return result


def compress_file(input_path: PathLike, output_path: PathLike) -> None:
    """Write a compressed copy of ``input_path`` to ``output_path``."""
    logger.info("Compressing file: %s -> %s", input_path, output_path)
    try:
        content = Path(input_path).read_bytes()
    except OSError as exc:
        raise CompressionError(f"Cannot open input file: {input_path}") from exc
    packed = compress(content)
    try:
        Path(output_path).write_bytes(packed)
    except OSError as exc:
        raise CompressionError(f"Cannot create output file: {output_path}") from exc


def decompress_file(input_path: PathLike, output_path: PathLike) -> None:
    """Write the decompressed contents of ``input_path`` to ``output_path``."""
    logger.info("Decompressing file: %s -> %s", input_path, output_path)
    try:
        packed = Path(input_path).read_bytes()
    except OSError as exc:
        raise CompressionError(f"Cannot open compressed file: {input_path}") from exc
    content = decompress(packed)
    try:
        Path(output_path).write_bytes(content)
    except OSError as exc:
        raise CompressionError(f"Cannot create output file: {output_path}") from exc


def is_compressed(path: PathLike) -> bool:
    """Whether the file at ``path`` starts with the compression magic number."""
    try:
        with open(path, "rb") as handle:
            head = handle.read(4)
    except OSError:
        return False
    if len(head) < 4:
        return False
    return struct.unpack("<I", head)[0] == MAGIC