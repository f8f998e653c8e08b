"""File metadata, performance counters, errors and name pattern matching."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

_EPOCH = datetime.fromtimestamp(0, timezone.utc)


class FSError(RuntimeError):
    """Raised when a file system operation fails."""


class FileMissingError(FSError):
    """Raised when a path does not exist in the file system."""

    def __init__(self, path: str) -> None:
        super().__init__(f"File not found: {path}")
        self.path = path


@dataclass
class FileMetadata:
    """What is known about one file or directory."""

    name: str = ""
    size: int = 0
    is_directory: bool = False
    created_at: datetime = _EPOCH
    modified_at: datetime = _EPOCH
    permissions: int = 0o644
    owner: str = ""
    group: str = ""


@dataclass
class PerformanceStats:
    """Counters and average timings of file operations."""

    cache_hits: int = 0
    cache_misses: int = 0
    total_reads: int = 0
    total_writes: int = 0
    total_file_operations: int = 0
    avg_read_time: float = 0.0
    avg_write_time: float = 0.0
    last_reset_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def cache_hit_rate(self) -> float:
        """Share of reads served from the cache, as a percentage."""
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return self.cache_hits / total * 100.0


def matches_pattern(filename: str, pattern: str) -> bool:
    """Glob match with ``*`` and ``?``; a pattern without them matches as a substring."""
    if "*" not in pattern and "?" not in pattern:
        return pattern in filename

    p = f = 0
    star = -1
    mark = 0
    while f < len(filename):
        if p < len(pattern) and pattern[p] in (filename[f], "?"):
            f += 1
            p += 1
        elif p < len(pattern) and pattern[p] == "*":
            star = p
            mark = f
            p += 1
        elif star >= 0:
            p = star + 1
            mark += 1
            f = mark
        else:
            return False

    while p < len(pattern) and pattern[p] == "*":
        p += 1
    return p == len(pattern)