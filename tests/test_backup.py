import pytest

from mtfs.backup import (
    BackupAlreadyExistsError,
    BackupError,
    BackupManager,
    BackupNotFoundError,
    format_file_size,
)

FILE_A = b"alpha contents"
FILE_B = b"nested beta contents"


@pytest.fixture
def source(tmp_path):
    src = tmp_path / "source"
    (src / "sub").mkdir(parents=True)
    (src / "a.txt").write_bytes(FILE_A)
    (src / "sub" / "b.txt").write_bytes(FILE_B)
    return src


@pytest.fixture
def manager(tmp_path):
    return BackupManager(tmp_path / "backups")


def test_init_creates_directory(tmp_path):
    target = tmp_path / "nested" / "backups"
    BackupManager(target)
    assert target.is_dir()


def test_init_fails_below_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(BackupError):
        BackupManager(blocker / "backups")


def test_create_backup_records_files_and_size(manager, source):
    metadata = manager.create_backup("first", source)
    assert metadata.backup_name == "first"
    assert sorted(metadata.included_files) == ["a.txt", "sub/b.txt"]
    assert metadata.total_files == len(metadata.included_files)
    assert metadata.total_size == len(FILE_A) + len(FILE_B)
    assert metadata.is_incremental is False
    assert manager.backup_exists("first")
    assert (metadata.backup_path / "sub" / "b.txt").read_bytes() == FILE_B


def test_metadata_file_format(manager, source):
    manager.create_backup("first", source)
    lines = (manager.backup_directory / "first_metadata.txt").read_text().splitlines()
    assert "name=first" in lines
    assert "incremental=0" in lines
    assert "parent=" in lines
    assert f"size={len(FILE_A) + len(FILE_B)}" in lines


def test_duplicate_backup_rejected(manager, source):
    manager.create_backup("first", source)
    with pytest.raises(BackupAlreadyExistsError, match="Backup already exists: first"):
        manager.create_backup("first", source)


def test_missing_source_rejected(manager, tmp_path):
    with pytest.raises(BackupError, match="Source directory does not exist"):
        manager.create_backup("first", tmp_path / "missing")
    assert not manager.backup_exists("first")


def test_restore_round_trip(manager, source, tmp_path):
    manager.create_backup("first", source)
    target = tmp_path / "restored"
    restored = manager.restore_backup("first", target)
    assert restored == 2
    assert (target / "a.txt").read_bytes() == FILE_A
    assert (target / "sub" / "b.txt").read_bytes() == FILE_B


def test_restore_missing_backup(manager, tmp_path):
    with pytest.raises(BackupNotFoundError, match="Backup Error: Backup not found: nope"):
        manager.restore_backup("nope", tmp_path / "out")


def test_delete_backup(manager, source):
    manager.create_backup("first", source)
    manager.delete_backup("first")
    assert not manager.backup_exists("first")
    assert not (manager.backup_directory / "first_metadata.txt").exists()
    with pytest.raises(BackupNotFoundError):
        manager.delete_backup("first")


def test_list_backups_reloads_metadata(manager, source, tmp_path):
    created = manager.create_backup("first", source)
    manager.create_backup("second", source)
    (manager.backup_directory / "stray").mkdir()

    fresh = BackupManager(tmp_path / "backups")
    backups = fresh.list_backups()
    assert {b.backup_name for b in backups} == {"first", "second"}
    times = [b.created_at for b in backups]
    assert times == sorted(times, reverse=True)

    first = next(b for b in backups if b.backup_name == "first")
    assert first.included_files == created.included_files
    assert first.total_size == created.total_size
    assert first.backup_path == created.backup_path
    assert int(first.created_at.timestamp()) == int(created.created_at.timestamp())


def test_stats_accumulate(manager, source):
    first = manager.create_backup("first", source)
    second = manager.create_backup("second", source)
    stats = manager.stats()
    assert stats.total_backups == 2
    assert stats.files_backed_up == first.total_files + second.total_files
    assert stats.total_backup_size == first.total_size + second.total_size
    assert stats.last_backup_time == second.created_at


def test_stats_returns_copy(manager, source):
    snapshot = manager.stats()
    manager.create_backup("first", source)
    assert snapshot.total_backups == 0
    assert manager.stats().total_backups == 1


def test_dashboard_lists_backups(manager, source):
    manager.create_backup("first", source)
    text = manager.dashboard()
    assert "BACKUP DASHBOARD" in text
    assert f"Total Backups: {len(manager.list_backups())}" in text
    assert "Recent Backups:" in text
    assert "first" in text
    assert "[Full]" in text


def test_dashboard_empty(manager):
    text = manager.dashboard()
    assert "Total Backups: 0" in text
    assert "Recent Backups:" not in text


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0.00 B"), (1024, "1.00 KB"), (1536, "1.50 KB")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_format_file_size_caps_at_largest_unit():
    assert format_file_size(1024 ** 6).endswith(" TB")