"""File system layer with caching, compression, backups, block storage, a thread pool and a journal."""

__version__ = "1.0.0"

__all__ = [
    "backup",
    "block_manager",
    "compression",
    "filesystem",
    "journal",
    "metadata",
    "thread_pool",
]