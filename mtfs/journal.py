"""Operation journal: entry types, entry records and a console journal."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import List, Optional, TextIO


class JournalEntryType(Enum):
    """Kinds of operation a journal entry can describe."""

    CREATE_FILE = auto()
    DELETE_FILE = auto()
    WRITE_DATA = auto()
    CREATE_DIR = auto()
    DELETE_DIR = auto()
    UPDATE_METADATA = auto()


@dataclass
class JournalEntry:
    """One journalled operation."""

    sequence_number: int
    type: JournalEntryType
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    blocks: List[int] = field(default_factory=list)
    metadata: bytes = b""


class Journal:
    """A journal that reports its operations on a text stream."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    def _emit(self, message: str) -> None:
        print(message, file=self._stream or sys.stdout, flush=True)

    def initialize(self) -> None:
        """Announce that the journal is ready."""
        self._emit("Journal initialized")

    def log_operation(self, operation: str) -> None:
        """Record one operation."""
        self._emit(f"Operation logged: {operation}")

    def recover(self) -> None:
        """Run recovery."""
        self._emit("Journal recovery completed")

    def clear(self) -> None:
        """Discard the journal."""
        self._emit("Journal cleared")