"""Protocol definitions for store connections and atomic operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..core.types import CommitResult, Key, KvEntry, KvEntryMaybe, Versionstamp


class AtomicOperation(Protocol):
    """A batch of checks and mutations committed all-or-nothing."""

    def check(self, key: Key, versionstamp: Versionstamp | None) -> AtomicOperation:
        """Require key to still carry versionstamp (None: to be absent) at commit."""
        ...

    def set(self, key: Key, value: Any) -> AtomicOperation:
        """Stage a write of value at key."""
        ...

    def delete(self, key: Key) -> AtomicOperation:
        """Stage removal of key."""
        ...

    async def commit(self) -> CommitResult:
        """Apply the batch; ok is False if a check failed and nothing was written."""
        ...


class KvConnection(Protocol):
    """An open connection to an ordered key-value store."""

    async def get(self, key: Key) -> KvEntryMaybe:
        """Point read of a single key."""
        ...

    async def list(self, prefix: Key) -> list[KvEntry]:
        """Entries whose key strictly extends prefix, in ascending key order."""
        ...

    def atomic(self) -> AtomicOperation:
        """Start a new atomic operation."""
        ...

    def close(self) -> None:
        """Release the connection."""
        ...

    async def aclose(self) -> None:
        """Release the connection without blocking the event loop."""
        ...
