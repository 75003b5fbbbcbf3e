"""Unit tests for Memtable implementation."""

import pytest

from entity_db.components.memtable import SimpleMemtable


@pytest.fixture
def memtable():
    """Create empty memtable for tests."""
    return SimpleMemtable()


def test_memtable_basic_put_get(memtable):
    """Test basic put and get operations."""
    memtable.put(b"key1", b"value1", 1)
    memtable.put(b"key2", b"value2", 2)

    assert memtable.get(b"key1") == (b"value1", 1)
    assert memtable.get(b"key2") == (b"value2", 2)
    assert memtable.get(b"nonexistent") is None


def test_memtable_update_overwrites(memtable):
    """Test that put operations overwrite existing keys."""
    memtable.put(b"key1", b"value1", 1)
    memtable.put(b"key1", b"value2", 2)

    assert memtable.get(b"key1") == (b"value2", 2)
    assert len(memtable) == 1


def test_memtable_delete_removes_key(memtable):
    """Test that delete removes the key outright."""
    memtable.put(b"key1", b"value1", 1)
    memtable.delete(b"key1")

    assert memtable.get(b"key1") is None
    assert len(memtable) == 0


def test_memtable_delete_nonexistent_key(memtable):
    """Test deleting a missing key is a no-op."""
    memtable.delete(b"nonexistent")
    assert len(memtable) == 0
    assert memtable.size_bytes() == 0


def test_memtable_items_sorted_order(memtable):
    """Test that items() returns records in sorted key order."""
    for key, vs in [(b"key3", 3), (b"key1", 1), (b"key2", 2), (b"key5", 5)]:
        memtable.put(key, b"v" + key, vs)

    keys = [key for key, _value, _vs in memtable.items()]
    assert keys == [b"key1", b"key2", b"key3", b"key5"]


def test_memtable_iter_range(memtable):
    """Test that iter_range is start-inclusive and end-exclusive."""
    for i in range(10):
        memtable.put(f"key{i}".encode(), f"value{i}".encode(), i + 1)

    records = list(memtable.iter_range(b"key3", b"key6"))
    assert [key for key, _v, _vs in records] == [b"key3", b"key4", b"key5"]
    assert records[0] == (b"key3", b"value3", 4)


def test_memtable_iter_range_open_bounds(memtable):
    for i in range(5):
        memtable.put(f"key{i}".encode(), b"v", i + 1)

    assert len(list(memtable.iter_range(None, None))) == 5
    assert [k for k, _v, _vs in memtable.iter_range(None, b"key2")] == [b"key0", b"key1"]
    assert [k for k, _v, _vs in memtable.iter_range(b"key3", None)] == [b"key3", b"key4"]


def test_memtable_size_tracking(memtable):
    """Test that size grows with puts and shrinks with deletes."""
    assert memtable.size_bytes() == 0

    memtable.put(b"key1", b"value1", 1)
    size_one = memtable.size_bytes()
    assert size_one > 0

    memtable.put(b"key1", b"a much longer value than before", 2)
    assert memtable.size_bytes() > size_one

    memtable.delete(b"key1")
    assert memtable.size_bytes() == 0

