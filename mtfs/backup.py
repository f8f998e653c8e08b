"""Full backups of a directory tree, with plain-text metadata per backup."""

from __future__ import annotations

import logging
import os
import shutil
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_UNITS = ("B", "KB", "MB", "GB", "TB")
_RECENT_LIMIT = 5


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_seconds(moment: datetime) -> int:
    return int(moment.timestamp())


def _from_seconds(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, timezone.utc)


class BackupError(RuntimeError):
    """Raised when a backup operation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Backup Error: {message}")


class BackupNotFoundError(BackupError):
    """Raised when the named backup does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Backup not found: {name}")
        self.name = name


class BackupAlreadyExistsError(BackupError):
    """Raised when a backup with the same name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Backup already exists: {name}")
        self.name = name


@dataclass
class BackupMetadata:
    """Description of one stored backup."""

    backup_name: str = ""
    backup_path: Path = field(default_factory=Path)
    created_at: datetime = field(default_factory=_now)
    last_modified: datetime = field(default_factory=_now)
    total_files: int = 0
    total_size: int = 0
    is_incremental: bool = False
    parent_backup: str = ""
    included_files: List[str] = field(default_factory=list)


@dataclass
class BackupStats:
    """Totals over the backups created by one manager."""

    total_backups: int = 0
    total_backup_size: int = 0
    files_backed_up: int = 0
    last_backup_time: datetime = field(default_factory=_now)
    compression_ratio: float = 0.0


def format_file_size(size: int) -> str:
    """Human-readable size with two decimals and a binary unit."""
    value = float(size)
    unit = 0
    while value >= 1024.0 and unit < len(_UNITS) - 1:
        value /= 1024.0
        unit += 1
    return f"{value:.2f} {_UNITS[unit]}"


class BackupManager:
    """Creates, restores, lists and deletes backups kept under one directory."""

    def __init__(self, backup_directory: PathLike) -> None:
        self.backup_directory = Path(backup_directory)
        self.metadata_file = self.backup_directory / "backup_metadata.txt"
        self._stats = BackupStats()
        try:
            if not self.backup_directory.exists():
                self.backup_directory.mkdir(parents=True)
                logger.info("Created backup directory: %s", self.backup_directory)
        except OSError as exc:
            logger.error("Failed to initialize backup directory: %s", exc)
            raise BackupError(
                f"Failed to initialize backup directory: {self.backup_directory}"
            ) from exc
        logger.info("Backup manager initialized at: %s", self.backup_directory)

    def create_backup(self, name: str, source_directory: PathLike) -> BackupMetadata:
        """Copy every file under ``source_directory`` into a new backup."""
        source = Path(source_directory)
        logger.info("Creating backup: %s from %s", name, source)
        if self.backup_exists(name):
            raise BackupAlreadyExistsError(name)
        if not source.exists():
            raise BackupError(f"Source directory does not exist: {source}")

        metadata = BackupMetadata(backup_name=name, backup_path=self._backup_path(name))
        metadata.backup_path.mkdir(parents=True, exist_ok=True)

        files = self._directory_files(source)
        metadata.included_files = files
        metadata.total_files = len(files)

        total_size = 0
        for relative in files:
            source_file = source / relative
            if self._copy(source_file, metadata.backup_path / relative) and source_file.exists():
                total_size += source_file.stat().st_size
        metadata.total_size = total_size

        try:
            self._save_metadata(metadata)
        except OSError as exc:
            raise BackupError("Failed to save backup metadata") from exc

        self._update_stats(metadata)
        logger.info(
            "Backup created successfully: %s (%d files, %s)",
            name,
            metadata.total_files,
            format_file_size(metadata.total_size),
        )
        return metadata

    def restore_backup(self, name: str, target_directory: PathLike) -> int:
        """Copy the files of a backup into ``target_directory``; return how many were restored."""
        target = Path(target_directory)
        logger.info("Restoring backup: %s to %s", name, target)
        if not self.backup_exists(name):
            raise BackupNotFoundError(name)
        metadata = self._load_metadata(name)
        target.mkdir(parents=True, exist_ok=True)
        restored = sum(
            1
            for relative in metadata.included_files
            if self._copy(metadata.backup_path / relative, target / relative)
        )
        logger.info("Backup restored successfully: %s (%d files restored)", name, restored)
        return restored

    def delete_backup(self, name: str) -> None:
        """Remove a backup and its metadata."""
        logger.info("Deleting backup: %s", name)
        if not self.backup_exists(name):
            raise BackupNotFoundError(name)
        try:
            shutil.rmtree(self._backup_path(name))
            self._metadata_path(name).unlink(missing_ok=True)
        except OSError as exc:
            raise BackupError(f"Failed to delete backup: {name}") from exc
        logger.info("Backup deleted successfully: %s", name)

    def list_backups(self) -> List[BackupMetadata]:
        """All readable backups, newest first."""
        backups: List[BackupMetadata] = []
        try:
            entries = list(self.backup_directory.iterdir())
        except OSError as exc:
            logger.error("Failed to list backups: %s", exc)
            return backups
        for entry in entries:
            if not entry.is_dir() or not self._metadata_path(entry.name).exists():
                continue
            try:
                backups.append(self._load_metadata(entry.name))
            except BackupError:
                logger.error("Failed to load metadata for backup: %s", entry.name)
        backups.sort(key=lambda item: item.created_at, reverse=True)
        return backups

    def backup_exists(self, name: str) -> bool:
        """Whether both the backup directory and its metadata exist."""
        return self._backup_path(name).exists() and self._metadata_path(name).exists()

    def stats(self) -> BackupStats:
        """A copy of the running totals."""
        return replace(self._stats)

    def dashboard(self) -> str:
        """A text summary of the backups and totals."""
        backups = self.list_backups()
        lines = [
            "",
            "================== BACKUP DASHBOARD ==================",
            f"Total Backups: {len(backups)}",
            f"Total Files Backed Up: {self._stats.files_backed_up}",
            f"Total Backup Size: {format_file_size(self._stats.total_backup_size)}",
        ]
        if backups:
            lines.append(f"Last Backup: {time.ctime(self._stats.last_backup_time.timestamp())}")
            lines += ["", "Recent Backups:", "---------------"]
            for backup in backups[:_RECENT_LIMIT]:
                created = backup.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
                kind = "[Incremental]" if backup.is_incremental else "[Full]"
                lines.append(
                    f"  {backup.backup_name} ({backup.total_files} files, "
                    f"{format_file_size(backup.total_size)}) - {created} {kind}"
                )
        lines += ["======================================================", "", ""]
        return "\n".join(lines)

    def _backup_path(self, name: str) -> Path:
        return self.backup_directory / name

    def _metadata_path(self, name: str) -> Path:
        return self.backup_directory / f"{name}_metadata.txt"

    def _save_metadata(self, metadata: BackupMetadata) -> None:
        lines = [
            f"name={metadata.backup_name}",
            f"path={metadata.backup_path}",
            f"created={_to_seconds(metadata.created_at)}",
            f"modified={_to_seconds(metadata.last_modified)}",
            f"files={metadata.total_files}",
            f"size={metadata.total_size}",
            f"incremental={'1' if metadata.is_incremental else '0'}",
            f"parent={metadata.parent_backup}",
            f"filelist={','.join(metadata.included_files)}",
        ]
        self._metadata_path(metadata.backup_name).write_text(
            "\n".join(lines) + "\n", encoding="utf-8"
        )

    def _load_metadata(self, name: str) -> BackupMetadata:
        try:
            text = self._metadata_path(name).read_text(encoding="utf-8")
        except OSError as exc:
            raise BackupError(f"Cannot open metadata file for backup: {name}") from exc
        metadata = BackupMetadata()
        try:
            for line in text.splitlines():
                key, sep, value = line.partition("=")
                if not sep:
                    continue
                if key == "name":
                    metadata.backup_name = value
                elif key == "path":
                    metadata.backup_path = Path(value)
                elif key == "created":
                    metadata.created_at = _from_seconds(int(value))
                elif key == "modified":
                    metadata.last_modified = _from_seconds(int(value))
                elif key == "files":
                    metadata.total_files = int(value)
                elif key == "size":
                    metadata.total_size = int(value)
                elif key == "incremental":
                    metadata.is_incremental = value == "1"
                elif key == "parent":
                    metadata.parent_backup = value
                elif key == "filelist":
                    metadata.included_files = value.split(",") if value else []
        except ValueError as exc:
            raise BackupError(f"Invalid metadata for backup: {name}") from exc
        return metadata

    @staticmethod
    def _copy(source: Path, destination: Path) -> bool:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError:
            logger.error("Failed to copy file: %s -> %s", source, destination)
            return False
        return True

    @staticmethod
    def _directory_files(directory: Path) -> List[str]:
        files: List[str] = []
        for root, dirs, names in os.walk(directory):
            dirs.sort()
            for name in sorted(names):
                path = Path(root) / name
                if path.is_file():
                    files.append(path.relative_to(directory).as_posix())
        return files

    def _update_stats(self, metadata: BackupMetadata) -> None:
        self._stats.total_backups += 1
        self._stats.total_backup_size += metadata.total_size
        self._stats.files_backed_up += metadata.total_files
        self._stats.last_backup_time = metadata.created_at