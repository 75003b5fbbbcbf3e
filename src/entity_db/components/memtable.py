"""In-memory sorted key space.

Uses sortedcontainers.SortedDict for efficient sorted operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sortedcontainers import SortedDict

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ..core.types import EncodedKey, EncodedValue, Record, Versionstamp


class SimpleMemtable:
    """Sorted map from encoded key to (encoded value, versionstamp).

    Holds the complete live state of a store: deletes remove keys outright,
    durability is the write-ahead log's job.

    Invariants:
        - Keys are always maintained in sorted byte order
        - Each key carries the versionstamp of the commit that last set it
        - Size includes approximate overhead of data structures
    """

    def __init__(self):
        """Initialize empty memtable."""
        self._data: SortedDict = SortedDict()
        self._size_bytes: int = 0

    def __len__(self) -> int:
        return len(self._data)

    def put(self, key: EncodedKey, value: EncodedValue, versionstamp: Versionstamp) -> None:
        """Insert or replace key with value and versionstamp."""
        if key in self._data:
            old_value, _old_vs = self._data[key]
            self._size_bytes -= len(key) + len(old_value) + 8

        self._data[key] = (value, versionstamp)
        self._size_bytes += len(key) + len(value) + 8  # key + value + versionstamp

    def delete(self, key: EncodedKey) -> None:
        """Remove key if present."""
        entry = self._data.pop(key, None)
        if entry is not None:
            old_value, _old_vs = entry
            self._size_bytes -= len(key) + len(old_value) + 8

    def get(self, key: EncodedKey) -> tuple[EncodedValue, Versionstamp] | None:
        """Return (value, versionstamp) if key found; else None."""
        return self._data.get(key)

    def iter_range(
        self, start: EncodedKey | None, end: EncodedKey | None
    ) -> Iterator[Record]:
        """Iterate records in key order between start and end.

        Args:
            start: Start key (inclusive), or None for beginning
            end: End key (exclusive), or None for end
        """
        for key in self._data.irange(start, end, inclusive=(True, False)):
            value, versionstamp = self._data[key]
            yield (key, value, versionstamp)

    def size_bytes(self) -> int:
        """Return approximate memory usage in bytes."""
        overhead = len(self._data) * 32  # approximate per-entry overhead
        return self._size_bytes + overhead

    def items(self) -> Iterator[Record]:
        """Return iterator of all records in sorted key order."""
        for key, (value, versionstamp) in self._data.items():
            yield (key, value, versionstamp)
