# mtfs

A small file system layer that keeps its files in an ordinary host directory.
It adds:

- a least-recently-used content cache in front of file reads, with hit/miss
  counters and average read/write timings
- per-file metadata (owner, permissions, size) saved in `.mtfs_metadata` in
  the root directory
- run-length compression of single files in a simple headered format
- full backups of the root directory, with restore, delete and listing
- a fixed-size block store with an allocation bitmap
- a pausable thread pool and a journal that reports operations on a stream

## Installation

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Using the file system

```python
from mtfs.filesystem import FileSystem

fs = FileSystem("./data")
fs.create_file("notes.txt")
fs.write_file("notes.txt", "hello")
print(fs.read_file("notes.txt"))       # read from disk, then cached
print(fs.read_file("notes.txt"))       # served from the cache
print(fs.find_files("*.txt"))          # glob with * and ?, else substring match

fs.write("notes.txt", b"HE", 0)        # raw bytes at an offset
print(fs.read("notes.txt", 5, 0))

fs.compress_file("notes.txt")          # replaces the file with its compressed form
fs.decompress_file("notes.txt")

fs.create_backup("first")              # backups live in "./data_backups"
print(fs.list_backups())
fs.restore_backup("first", "./restored")

print(fs.performance_dashboard())
print(fs.backup_dashboard())
```

`copy_file`, `move_file`, `rename_file`, `delete_file`, `create_directory`,
`list_directory`, `get_metadata`, `set_permissions` and `exists` work on
paths relative to the root. `stats()`, `compression_stats()` and
`backup_stats()` return copies of the running totals.

Reading, writing or deleting a file that does not exist raises
`FileMissingError`; other failures raise `FSError` (both in `mtfs.metadata`).

`FileSystem` takes an optional `auth` object with `is_logged_in()`,
`current_user()` and `is_admin(user)` methods. When one is given, operations
require a logged-in user, and writing, reading or deleting a file is allowed
only to its owner or an admin.

## Compression

```python
from mtfs.compression import compress, decompress, compression_ratio

packed = compress(b"aaaabbb")
assert decompress(packed) == b"aaaabbb"
```

`compress_file`, `decompress_file` and `is_compressed` do the same for files
on disk. Bad headers or sizes raise `CompressionError`.

## Backups

```python
from mtfs.backup import BackupManager, format_file_size

manager = BackupManager("./backups")
meta = manager.create_backup("nightly", "./data")
print(meta.total_files, format_file_size(meta.total_size))
manager.restore_backup("nightly", "./restored")
for backup in manager.list_backups():   # newest first
    print(backup.backup_name)
manager.delete_backup("nightly")
```

A missing backup raises `BackupNotFoundError`; a repeated name raises
`BackupAlreadyExistsError`.

## Block storage

```python
from mtfs.block_manager import BlockManager

with BlockManager("./storage.bin") as blocks:
    blocks.format()
    block_id = blocks.allocate_block()
    blocks.write_block(block_id, b"Hello, Block Storage!")
    data = blocks.read_block(block_id)    # always 4096 bytes, zero-padded
    blocks.free_block(block_id)
    print(blocks.free_blocks(), "/", blocks.total_blocks())
```

The store holds 1024 blocks of 4096 bytes. Reading, writing or freeing a
block that is not allocated, or allocating when none are free, raises
`BlockError`.

## Thread pool

```python
from mtfs.thread_pool import ThreadPool

pool = ThreadPool(4)
pool.start()
future = pool.submit(sum, [1, 2, 3])
print(future.result())
pool.stop()
```

`submit` raises `RuntimeError` unless the pool is running. `pause` and
`resume` hold back and release queued tasks; `stop` lets the queue drain.

## What it does not do

- There is no command-line tool; the package is used as a library.
- There is no user or login manager; access control applies only when you
  pass your own `auth` object.
- The file system keeps files in the host directory; it does not store them
  in the block store, which is a separate component.
- Backups are always full copies; there are no incremental backups.
- `Journal` only writes messages such as `Operation logged: ...` to a stream
  (standard output by default); it keeps no records and recovers nothing.