"""A file system rooted in a host directory, with caching, compression and backups."""

from __future__ import annotations

import logging
import os
import threading
import time
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from mtfs import compression
from mtfs.backup import BackupError, BackupManager, BackupMetadata, BackupStats
from mtfs.compression import CompressionError, CompressionStats
from mtfs.metadata import (
    FileMetadata,
    FileMissingError,
    FSError,
    PerformanceStats,
    matches_pattern,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

CACHE_CAPACITY = 1000
_METADATA_NAME = ".mtfs_metadata"


class _Authenticator(Protocol):
    def is_logged_in(self) -> bool: ...

    def current_user(self) -> str: ...

    def is_admin(self, user: str) -> bool: ...


class _ContentCache:
    """Least-recently-used cache of file contents."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._items: "OrderedDict[str, str]" = OrderedDict()

    def get(self, key: str) -> Optional[str]:
        if key not in self._items:
            return None
        self._items.move_to_end(key)
        return self._items[key]

    def put(self, key: str, value: str) -> None:
        self._items[key] = value
        self._items.move_to_end(key)
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class FileSystem:
    """File operations on paths relative to a root directory."""

    def __init__(self, root_path: PathLike, auth: Optional[_Authenticator] = None) -> None:
        self.root_path = Path(root_path)
        self._auth = auth
        self._lock = threading.RLock()
        self._cache = _ContentCache(CACHE_CAPACITY)
        self._stats = PerformanceStats()
        self._compression_stats = CompressionStats()
        self._metadata: Dict[str, FileMetadata] = {}
        self._metadata_file = self.root_path / _METADATA_NAME
        logger.info("Initializing filesystem at: %s", self.root_path)
        self.root_path.mkdir(parents=True, exist_ok=True)
        self._load_metadata()

        backup_dir = Path(str(self.root_path) + "_backups")
        self._backups: Optional[BackupManager]
        try:
            self._backups = BackupManager(backup_dir)
        except BackupError as exc:
            logger.error("Failed to initialize backup manager: %s", exc)
            self._backups = None

    # -- persistence -------------------------------------------------------

    def _full(self, path: str) -> Path:
        return self.root_path / path

    def _save_metadata(self) -> None:
        lines = [
            f"{path}\t{meta.owner or 'unknown'}\t{meta.permissions}\t{meta.size}\t"
            f"{int(meta.is_directory)}\n"
            for path, meta in self._metadata.items()
        ]
        try:
            self._metadata_file.write_text("".join(lines), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save metadata: %s", exc)

    def _load_metadata(self) -> None:
        try:
            text = self._metadata_file.read_text(encoding="utf-8")
        except OSError:
            return
        self._metadata.clear()
        for line in text.splitlines():
            fields = line.split()
            if len(fields) != 5:
                break
            path, owner, permissions, size, is_dir = fields
            try:
                meta = FileMetadata(
                    name=path,
                    owner=owner,
                    permissions=int(permissions),
                    size=int(size),
                    is_directory=int(is_dir) != 0,
                )
            except ValueError:
                break
            self._metadata[path] = meta

    # -- access control ----------------------------------------------------

    def _require_login(self, action: str) -> None:
        if self._auth is not None and not self._auth.is_logged_in():
            raise FSError(f"Authentication required to {action} file")

    def _require_owner(self, path: str) -> None:
        if self._auth is None:
            return
        meta = self.get_file_info(path)
        user = self._auth.current_user()
        if meta.owner != user and not self._auth.is_admin(user):
            raise FSError("Permission denied: not owner or admin")

    # -- basic file operations ---------------------------------------------

    def create_file(self, path: str) -> None:
        """Create an empty file owned by the current user."""
        with self._lock:
            self._require_login("create")
            try:
                self._full(path).open("w", encoding="utf-8").close()
            except OSError as exc:
                logger.error("Failed to create file: %s", path)
                raise FSError(f"Failed to create file: {path}") from exc
            owner = self._auth.current_user() if self._auth is not None else "unknown"
            self._metadata[path] = FileMetadata(name=path, owner=owner, permissions=0o644)
            self._save_metadata()

    def write_file(self, path: str, data: str) -> None:
        """Replace the contents of an existing file."""
        with self._lock:
            start = time.perf_counter()
            self._require_login("write")
            self._require_owner(path)
            if not self.exists(path):
                raise FileMissingError(path)
            try:
                with self._full(path).open("w", encoding="utf-8", newline="") as handle:
                    handle.write(data)
            except OSError as exc:
                raise FSError(f"Failed to open file for writing: {path}") from exc
            self._cache.put(path, data)
            self._stats.total_writes += 1
            self._stats.total_file_operations += 1

            meta = self._metadata.setdefault(path, FileMetadata(name=path))
            meta.size = len(data.encode("utf-8"))
            meta.modified_at = datetime.now(timezone.utc)
            self._save_metadata()

            elapsed = (time.perf_counter() - start) * 1000.0
            writes = self._stats.total_writes
            self._stats.avg_write_time = (
                self._stats.avg_write_time * (writes - 1) + elapsed
            ) / writes

    def read_file(self, path: str) -> str:
        """Return the contents of a file, from the cache when possible."""
        with self._lock:
            self._require_login("read")
            self._require_owner(path)
            start = time.perf_counter()
            cached = self._cache.get(path)
            if cached is not None:
                logger.debug("Cache hit for file: %s", path)
                self._stats.cache_hits += 1
                self._record_read(start)
                return cached

            logger.debug("Cache miss for file: %s", path)
            self._stats.cache_misses += 1
            if not self.exists(path):
                self._record_read(start)
                raise FileMissingError(path)
            try:
                with self._full(path).open("r", encoding="utf-8", newline="") as handle:
                    data = handle.read()
            except OSError as exc:
                self._record_read(start)
                raise FSError(f"Failed to open file for reading: {path}") from exc
            self._cache.put(path, data)
            self._record_read(start)
            return data

    def _record_read(self, start: float) -> None:
        self._stats.total_reads += 1
        self._stats.total_file_operations += 1
        elapsed = (time.perf_counter() - start) * 1000.0
        reads = self._stats.total_reads
        self._stats.avg_read_time = (self._stats.avg_read_time * (reads - 1) + elapsed) / reads

    def delete_file(self, path: str) -> None:
        """Remove a file and drop the cache."""
        with self._lock:
            self._require_login("delete")
            self._require_owner(path)
            if not self.exists(path):
                raise FileMissingError(path)
            self._cache.clear()
            self._metadata.pop(path, None)
            self._save_metadata()
            try:
                self._full(path).unlink()
            except OSError as exc:
                raise FSError(f"Failed to delete file: {path}") from exc

    # -- directories -------------------------------------------------------

    def create_directory(self, path: str) -> None:
        """Create one directory."""
        try:
            self._full(path).mkdir()
        except OSError as exc:
            raise FSError(f"Failed to create directory: {path}") from exc

    def list_directory(self, path: str) -> List[str]:
        """Names of the entries in a directory, sorted."""
        if not self.exists(path):
            raise FileMissingError(path)
        try:
            return sorted(os.listdir(self._full(path)))
        except NotADirectoryError:
            return []
        except OSError as exc:
            raise FSError(f"Failed to list directory: {path}") from exc

    # -- advanced operations -----------------------------------------------

    def copy_file(self, source: str, destination: str) -> None:
        """Copy a file's contents to a new file."""
        with self._lock:
            logger.info("Copying file: %s -> %s", source, destination)
            if not self.exists(source):
                raise FileMissingError(source)
            content = self.read_file(source)
            self.create_file(destination)
            self.write_file(destination, content)

    def move_file(self, source: str, destination: str) -> None:
        """Copy a file, then delete the source."""
        with self._lock:
            logger.info("Moving file: %s -> %s", source, destination)
            self.copy_file(source, destination)
            try:
                self.delete_file(source)
            except FSError:
                self.delete_file(destination)
                raise

    def rename_file(self, old_name: str, new_name: str) -> None:
        """Give a file a new name."""
        self.move_file(old_name, new_name)

    def find_files(self, pattern: str, directory: str = ".") -> List[str]:
        """Entries of ``directory`` whose names match ``pattern``."""
        logger.info("Searching for files with pattern: %s in directory: %s", pattern, directory)
        return [
            name if directory == "." else f"{directory}/{name}"
            for name in self.list_directory(directory)
            if matches_pattern(name, pattern)
        ]

    def get_file_info(self, path: str) -> FileMetadata:
        """Metadata of a file or directory."""
        return self.get_metadata(path)

    def get_metadata(self, path: str) -> FileMetadata:
        """Metadata taken from the host file, with the recorded owner."""
        if not self.exists(path):
            raise FileMissingError(path)
        try:
            info = os.stat(self._full(path))
        except OSError as exc:
            raise FSError(f"Failed to get file stats: {path}") from exc
        recorded = self._metadata.get(path)
        return FileMetadata(
            name=path.replace("\\", "/").rsplit("/", 1)[-1],
            size=info.st_size,
            is_directory=os.path.isdir(self._full(path)),
            permissions=info.st_mode & 0o777,
            modified_at=datetime.fromtimestamp(info.st_mtime, timezone.utc),
            created_at=datetime.fromtimestamp(info.st_ctime, timezone.utc),
            owner=recorded.owner if recorded else "",
            group=recorded.group if recorded else "",
        )

    def write(self, path: str, data: bytes, offset: int) -> int:
        """Write raw bytes at ``offset``; return how many were written."""
        if not self.exists(path):
            raise FileMissingError(path)
        data = bytes(data)
        try:
            with self._full(path).open("r+b") as handle:
                handle.seek(offset)
                handle.write(data)
        except OSError as exc:
            raise FSError(f"Failed to open file for writing: {path}") from exc
        return len(data)

    def read(self, path: str, size: int, offset: int) -> bytes:
        """Read up to ``size`` raw bytes from ``offset``."""
        if not self.exists(path):
            raise FileMissingError(path)
        try:
            with self._full(path).open("rb") as handle:
                handle.seek(offset)
                return handle.read(size)
        except OSError as exc:
            raise FSError(f"Failed to open file for reading: {path}") from exc

    def set_permissions(self, path: str, permissions: int) -> None:
        """Change the permission bits of a file."""
        with self._lock:
            if not self.exists(path):
                raise FileMissingError(path)
            try:
                os.chmod(self._full(path), permissions)
            except OSError as exc:
                raise FSError(f"Failed to set permissions: {path}") from exc
            self._metadata.setdefault(path, FileMetadata(name=path)).permissions = permissions
            self._save_metadata()

    def exists(self, path: str) -> bool:
        """Whether the path exists under the root."""
        try:
            os.stat(self._full(path))
        except OSError:
            return False
        return True

    # -- system ------------------------------------------------------------

    def sync(self) -> None:
        """Flush pending state to disk."""
        logger.info("Syncing filesystem")

    def mount(self) -> None:
        """Make sure the root directory exists."""
        logger.info("Mounting filesystem at: %s", self.root_path)
        self.root_path.mkdir(parents=True, exist_ok=True)

    def unmount(self) -> None:
        """Sync before the file system is put away."""
        logger.info("Unmounting filesystem from: %s", self.root_path)
        self.sync()

    # -- cache and statistics ----------------------------------------------

    def clear_cache(self) -> None:
        """Drop every cached file."""
        with self._lock:
            self._cache.clear()
            logger.info("File system cache cleared")

    def cache_size(self) -> int:
        """Number of files held in the cache."""
        with self._lock:
            return len(self._cache)

    def stats(self) -> PerformanceStats:
        """A copy of the performance counters."""
        with self._lock:
            return replace(self._stats)

    def reset_stats(self) -> None:
        """Start the performance counters afresh."""
        with self._lock:
            self._stats = PerformanceStats()
            logger.info("Performance statistics reset")

    def performance_dashboard(self) -> str:
        """A text summary of cache and file operation counters."""
        with self._lock:
            stats = self._stats
            period = int((datetime.now(timezone.utc) - stats.last_reset_time).total_seconds())
            accessed = stats.cache_hits + stats.cache_misses
            cached = len(self._cache) if accessed > 0 else 0
            lines = [
                "",
                "=================== PERFORMANCE DASHBOARD ===================",
                f"Monitoring Period: {period} seconds",
                "-----------------------------------------------------------",
                "CACHE STATISTICS:",
                f"  Cache Hits: {stats.cache_hits}",
                f"  Cache Misses: {stats.cache_misses}",
                f"  Cache Hit Rate: {stats.cache_hit_rate():.2f}%",
                f"  Cache Size: {cached}/{CACHE_CAPACITY}",
                "-----------------------------------------------------------",
                "FILE OPERATIONS:",
                f"  Total Reads: {stats.total_reads}",
                f"  Total Writes: {stats.total_writes}",
                f"  Total File Operations: {stats.total_file_operations}",
                f"  Average Read Time: {stats.avg_read_time:.3f} ms",
                f"  Average Write Time: {stats.avg_write_time:.3f} ms",
                "==========================================================",
                "",
                "",
            ]
            return "\n".join(lines)

    # -- compression -------------------------------------------------------

    def compress_file(self, path: str) -> None:
        """Replace a file with its compressed form."""
        with self._lock:
            logger.info("Compressing file: %s", path)
            if not self.exists(path):
                raise FileMissingError(path)
            full = self._full(path)
            packed = Path(str(full) + ".mtfs")
            original_size = full.stat().st_size
            try:
                compression.compress_file(full, packed)
            except CompressionError as exc:
                raise FSError(f"Failed to compress file: {path}") from exc
            compressed_size = packed.stat().st_size
            self._compression_stats.add(original_size, compressed_size)
            os.replace(packed, full)
            logger.info(
                "File compressed successfully. Compression ratio: %f%%",
                compression.compression_ratio(original_size, compressed_size),
            )

    def decompress_file(self, path: str) -> None:
        """Replace a compressed file with its original contents."""
        with self._lock:
            logger.info("Decompressing file: %s", path)
            if not self.exists(path):
                raise FileMissingError(path)
            full = self._full(path)
            if not compression.is_compressed(full):
                raise FSError(f"File is not compressed: {path}")
            temp = Path(str(full) + ".tmp")
            try:
                compression.decompress_file(full, temp)
            except CompressionError as exc:
                raise FSError(f"Failed to decompress file: {path}") from exc
            os.replace(temp, full)

    def compression_stats(self) -> CompressionStats:
        """A copy of the compression totals."""
        with self._lock:
            return replace(self._compression_stats)

    def reset_compression_stats(self) -> None:
        """Start the compression totals afresh."""
        with self._lock:
            self._compression_stats = CompressionStats()

    # -- backups -----------------------------------------------------------

    def _backup_manager(self) -> BackupManager:
        if self._backups is None:
            raise FSError("Backup manager not initialized")
        return self._backups

    def create_backup(self, name: str) -> BackupMetadata:
        """Back up the whole root directory under ``name``."""
        return self._backup_manager().create_backup(name, self.root_path)

    def restore_backup(self, name: str, target_directory: Optional[PathLike] = None) -> int:
        """Restore a backup; by default next to the root with a ``_restored`` suffix."""
        target = (
            Path(target_directory)
            if target_directory
            else Path(str(self.root_path) + "_restored")
        )
        return self._backup_manager().restore_backup(name, target)

    def delete_backup(self, name: str) -> None:
        """Remove a backup."""
        self._backup_manager().delete_backup(name)

    def list_backups(self) -> List[str]:
        """Names of the stored backups, newest first."""
        if self._backups is None:
            return []
        return [backup.backup_name for backup in self._backups.list_backups()]

    def backup_dashboard(self) -> str:
        """A text summary of the backups."""
        if self._backups is None:
            return "Backup manager not available.\n"
        return self._backups.dashboard()

    def backup_stats(self) -> BackupStats:
        """Totals over the backups created so far."""
        if self._backups is None:
            return BackupStats()
        return self._backups.stats()