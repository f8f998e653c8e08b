import io
from datetime import datetime

import pytest

from mtfs.journal import Journal, JournalEntry, JournalEntryType


@pytest.fixture
def stream():
    return io.StringIO()


def test_initialize(stream):
    Journal(stream).initialize()
    assert stream.getvalue() == "Journal initialized\n"


def test_log_operation(stream):
    Journal(stream).log_operation("create a.txt")
    assert stream.getvalue() == "Operation logged: create a.txt\n"


def test_recover(stream):
    Journal(stream).recover()
    assert stream.getvalue() == "Journal recovery completed\n"


def test_clear(stream):
    Journal(stream).clear()
    assert stream.getvalue() == "Journal cleared\n"


def test_operations_in_order(stream):
    journal = Journal(stream)
    journal.initialize()
    journal.log_operation("first")
    journal.log_operation("second")
    journal.clear()
    assert stream.getvalue().splitlines() == [
        "Journal initialized",
        "Operation logged: first",
        "Operation logged: second",
        "Journal cleared",
    ]


def test_default_stream_is_stdout(capsys):
    Journal().log_operation("write")
    assert capsys.readouterr().out == "Operation logged: write\n"


def test_entries_carry_each_type():
    entries = [
        JournalEntry(sequence_number=number, type=entry_type)
        for number, entry_type in enumerate(JournalEntryType)
    ]
    assert [(entry.sequence_number, entry.type.name) for entry in entries] == [
        (0, "CREATE_FILE"),
        (1, "DELETE_FILE"),
        (2, "WRITE_DATA"),
        (3, "CREATE_DIR"),
        (4, "DELETE_DIR"),
        (5, "UPDATE_METADATA"),
    ]


def test_entry_defaults():
    entry = JournalEntry(sequence_number=7, type=JournalEntryType.WRITE_DATA)
    assert entry.sequence_number == 7
    assert entry.type is JournalEntryType.WRITE_DATA
    assert entry.blocks == []
    assert entry.metadata == b""
    assert entry.timestamp <= datetime.now(entry.timestamp.tzinfo)


def test_entries_do_not_share_blocks():
    first = JournalEntry(1, JournalEntryType.CREATE_FILE)
    second = JournalEntry(2, JournalEntryType.CREATE_FILE)
    first.blocks.append(3)
    assert second.blocks == []