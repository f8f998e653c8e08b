"""Fixed-size block storage in a single file, with an allocation bitmap."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import BinaryIO, Optional, Union

logger = logging.getLogger(__name__)


class BlockError(RuntimeError):
    """Raised when a block operation cannot be carried out."""


class BlockManager:
    """Allocates, reads and writes fixed-size blocks stored in one file.

    The file starts with a bitmap (one bit per block, 1 = used) followed by
    the blocks themselves.
    """

    BLOCK_SIZE = 4096
    MAX_BLOCKS = 1024
    BITMAP_BYTES = (MAX_BLOCKS + 7) // 8

    def __init__(self, storage_path: Union[str, "os.PathLike[str]"]) -> None:
        self.storage_path = Path(storage_path)
        self._lock = threading.RLock()
        self._bitmap = bytearray(self.BITMAP_BYTES)
        try:
            self._file: Optional[BinaryIO] = self._open_storage()
        except OSError as exc:
            raise BlockError(f"Failed to initialize storage: {exc}") from exc
        self._load_bitmap()
        logger.info("Block manager initialized at: %s", self.storage_path)

    def __enter__(self) -> "BlockManager":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Save the bitmap and close the storage file."""
        with self._lock:
            if self._file is None:
                return
            self._save_bitmap()
            self._file.close()
            self._file = None

    def write_block(self, block_id: int, data: bytes) -> None:
        """Write ``data`` into an allocated block, padding it with zeros."""
        with self._lock:
            handle = self._handle()
            if self.is_block_free(block_id):
                raise BlockError(f"Invalid block ID or block is free: {block_id}")
            data = bytes(data)
            if len(data) > self.BLOCK_SIZE:
                raise BlockError("Data size exceeds block size")
            handle.seek(self._offset(block_id))
            handle.write(data.ljust(self.BLOCK_SIZE, b"\x00"))
            handle.flush()
            logger.debug("Written block: %d", block_id)

    def read_block(self, block_id: int) -> bytes:
        """Return the full contents of an allocated block."""
        with self._lock:
            handle = self._handle()
            if self.is_block_free(block_id):
                raise BlockError(f"Invalid block ID or block is free: {block_id}")
            handle.seek(self._offset(block_id))
            data = handle.read(self.BLOCK_SIZE)
            logger.debug("Read block: %d", block_id)
            return data.ljust(self.BLOCK_SIZE, b"\x00")

    def allocate_block(self) -> int:
        """Mark the lowest free block as used and return its id."""
        with self._lock:
            self._handle()
            for index in range(self.MAX_BLOCKS):
                if not self._get_bit(index):
                    self._set_bit(index, True)
                    self._save_bitmap()
                    logger.debug("Allocated block: %d", index)
                    return index
            raise BlockError("No free blocks available")

    def free_block(self, block_id: int) -> None:
        """Mark an allocated block as free."""
        with self._lock:
            self._handle()
            if self.is_block_free(block_id):
                raise BlockError(f"Invalid block ID or block already free: {block_id}")
            self._set_bit(block_id, False)
            self._save_bitmap()
            logger.debug("Freed block: %d", block_id)

    def format(self) -> None:
        """Free every block and zero the whole storage file."""
        with self._lock:
            handle = self._handle()
            self._bitmap[:] = bytes(self.BITMAP_BYTES)
            handle.seek(0)
            handle.truncate(0)
            handle.write(bytes(self.BLOCK_SIZE * self.MAX_BLOCKS))
            handle.flush()
            self._save_bitmap()
            logger.info("Storage formatted")

    def free_blocks(self) -> int:
        """Number of blocks not currently allocated."""
        with self._lock:
            return sum(1 for index in range(self.MAX_BLOCKS) if not self._get_bit(index))

    def total_blocks(self) -> int:
        """Number of blocks the storage holds."""
        return self.MAX_BLOCKS

    def is_block_free(self, block_id: int) -> bool:
        """Whether ``block_id`` is free; ids out of range count as free."""
        if not self._valid(block_id):
            return True
        with self._lock:
            return not self._get_bit(block_id)

    def _open_storage(self) -> BinaryIO:
        try:
            return open(self.storage_path, "r+b")
        except FileNotFoundError:
            with open(self.storage_path, "wb") as fresh:
                fresh.write(bytes(self.BLOCK_SIZE * self.MAX_BLOCKS))
            return open(self.storage_path, "r+b")

    def _handle(self) -> BinaryIO:
        if self._file is None:
            raise BlockError("Block storage is closed")
        return self._file

    def _load_bitmap(self) -> None:
        with self._lock:
            handle = self._handle()
            handle.seek(0)
            raw = handle.read(self.BITMAP_BYTES)
            self._bitmap[: len(raw)] = raw

    def _save_bitmap(self) -> None:
        handle = self._handle()
        handle.seek(0)
        handle.write(self._bitmap)
        handle.flush()

    def _valid(self, block_id: int) -> bool:
        return 0 <= block_id < self.MAX_BLOCKS

    def _offset(self, block_id: int) -> int:
        return block_id * self.BLOCK_SIZE + self.BITMAP_BYTES

    def _set_bit(self, index: int, value: bool) -> None:
        byte_index, bit_index = divmod(index, 8)
        if value:
            self._bitmap[byte_index] |= 1 << bit_index
        else:
            self._bitmap[byte_index] &= ~(1 << bit_index) & 0xFF

    def _get_bit(self, index: int) -> bool:
        byte_index, bit_index = divmod(index, 8)
        return bool(self._bitmap[byte_index] & (1 << bit_index))