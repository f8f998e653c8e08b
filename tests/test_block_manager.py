import pytest

from mtfs.block_manager import BlockError, BlockManager


@pytest.fixture
def manager(tmp_path):
    with BlockManager(tmp_path / "test_storage.bin") as bm:
        yield bm


def test_source_scenario(manager):
    manager.format()
    assert manager.free_blocks() == manager.total_blocks()

    block_id = manager.allocate_block()
    assert block_id >= 0
    assert manager.free_blocks() == manager.total_blocks() - 1

    test_data = (
        b"Hello, Block Storage! This is a test message to verify block "
        b"writing and reading functionality."
    )
    manager.write_block(block_id, test_data)
    read_data = manager.read_block(block_id)
    assert read_data[: len(test_data)] == test_data

    manager.free_block(block_id)
    assert manager.free_blocks() == manager.total_blocks()

    with pytest.raises(BlockError):
        manager.read_block(block_id)


def test_total_blocks(manager):
    assert manager.total_blocks() == BlockManager.MAX_BLOCKS


def test_allocation_is_lowest_first(manager):
    manager.format()
    first = manager.allocate_block()
    second = manager.allocate_block()
    assert (first, second) == (0, 1)
    manager.free_block(first)
    assert manager.allocate_block() == first


def test_read_is_padded_to_block_size(manager):
    manager.format()
    block_id = manager.allocate_block()
    manager.write_block(block_id, b"abc")
    data = manager.read_block(block_id)
    assert len(data) == BlockManager.BLOCK_SIZE
    assert data[:3] == b"abc"
    assert data[3:] == bytes(BlockManager.BLOCK_SIZE - 3)


def test_last_block_round_trip(manager):
    manager.format()
    for _ in range(BlockManager.MAX_BLOCKS):
        last = manager.allocate_block()
    assert last == BlockManager.MAX_BLOCKS - 1
    payload = b"\xaa" * BlockManager.BLOCK_SIZE
    manager.write_block(last, payload)
    assert manager.read_block(last) == payload


def test_blocks_do_not_overlap(manager):
    manager.format()
    a = manager.allocate_block()
    b = manager.allocate_block()
    manager.write_block(a, b"A" * BlockManager.BLOCK_SIZE)
    manager.write_block(b, b"B" * BlockManager.BLOCK_SIZE)
    assert manager.read_block(a) == b"A" * BlockManager.BLOCK_SIZE
    assert manager.read_block(b) == b"B" * BlockManager.BLOCK_SIZE
    assert manager.is_block_free(a) is False


def test_oversized_write_rejected(manager):
    manager.format()
    block_id = manager.allocate_block()
    with pytest.raises(BlockError):
        manager.write_block(block_id, b"x" * (BlockManager.BLOCK_SIZE + 1))


def test_write_to_free_block_rejected(manager):
    manager.format()
    with pytest.raises(BlockError):
        manager.write_block(5, b"data")


@pytest.mark.parametrize("block_id", [-1, BlockManager.MAX_BLOCKS])
def test_out_of_range_ids(manager, block_id):
    assert manager.is_block_free(block_id) is True
    with pytest.raises(BlockError):
        manager.read_block(block_id)
    with pytest.raises(BlockError):
        manager.free_block(block_id)


def test_double_free_rejected(manager):
    manager.format()
    block_id = manager.allocate_block()
    manager.free_block(block_id)
    with pytest.raises(BlockError):
        manager.free_block(block_id)


def test_exhaustion(manager):
    manager.format()
    ids = [manager.allocate_block() for _ in range(BlockManager.MAX_BLOCKS)]
    assert sorted(ids) == list(range(BlockManager.MAX_BLOCKS))
    assert manager.free_blocks() == 0
    with pytest.raises(BlockError):
        manager.allocate_block()


def test_format_frees_everything(manager):
    manager.format()
    block_id = manager.allocate_block()
    manager.write_block(block_id, b"keep")
    manager.format()
    assert manager.free_blocks() == manager.total_blocks()
    assert manager.is_block_free(block_id)


def test_bitmap_persists_across_reopen(tmp_path):
    path = tmp_path / "store.bin"
    with BlockManager(path) as bm:
        bm.format()
        block_id = bm.allocate_block()
        bm.write_block(block_id, b"persisted")
    with BlockManager(path) as bm:
        assert bm.is_block_free(block_id) is False
        assert bm.free_blocks() == bm.total_blocks() - 1
        assert bm.read_block(block_id)[:9] == b"persisted"


def test_new_storage_starts_empty(tmp_path):
    with BlockManager(tmp_path / "fresh.bin") as bm:
        assert bm.free_blocks() == bm.total_blocks()


def test_use_after_close_rejected(tmp_path):
    bm = BlockManager(tmp_path / "closed.bin")
    bm.close()
    bm.close()
    with pytest.raises(BlockError):
        bm.allocate_block()