"""Key-value store engine.

Orchestrates the memtable and the write-ahead log behind an atomic
commit primitive.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from ..components.memtable import SimpleMemtable
from ..components.wal import SimpleWAL
from .errors import RecoveryError, StoreClosedError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import StoreConfig
    from .types import EncodedKey, EncodedValue, Mutation, Record, Versionstamp

logger = logging.getLogger(__name__)


class SimpleKvStore:
    """Ordered key-value store with atomic multi-key commits.

    Args:
        config: Store configuration

    Public API:
        - get(key): Latest (value, versionstamp) of a key
        - range(start, end): Ordered snapshot of a key range
        - commit(checks, mutations): Atomic check-then-write batch
        - compact_log(): Rewrite the log as a snapshot
        - close(): Release the log

    Invariants:
        - A commit is logged before it becomes visible
        - A commit applies all of its mutations or none of them
        - Versionstamps strictly increase across commits
    """

    def __init__(self, config: StoreConfig):
        self.config = config
        self._lock = threading.Lock()
        self._versionstamp: Versionstamp = 0
        self._closed = False

        self._memtable = SimpleMemtable()
        self._wal: SimpleWAL | None = None

        if config.data_dir is not None:
            self.data_dir: Path | None = Path(config.data_dir)
            wal_dir = self.data_dir / "wal"
            wal_dir.mkdir(parents=True, exist_ok=True)
            self._wal = SimpleWAL(
                wal_dir / "wal-current.wal",
                flush_every_write=config.wal_flush_every_write,
            )
            self._recover()
        else:
            self.data_dir = None

        logger.info(f"Initialized KV store at {self.data_dir or '<memory>'}")

    def _recover(self) -> None:
        """Recover state from WAL."""
        logger.info("Starting recovery from WAL...")

        try:
            count = 0
            for versionstamp, mutations in self._wal:
                self._apply(versionstamp, mutations)
                self._versionstamp = max(self._versionstamp, versionstamp)
                count += 1

            logger.info(
                f"Recovered {count} batches, {len(self._memtable)} keys "
                f"({self._memtable.size_bytes()} bytes) from WAL"
            )
        except Exception as e:
            raise RecoveryError(f"Failed to recover from WAL: {e}") from e

    def _apply(self, versionstamp: Versionstamp, mutations: Sequence[Mutation]) -> None:
        for key, value in mutations:
            if value is None:
                self._memtable.delete(key)
            else:
                self._memtable.put(key, value, versionstamp)

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("KV store is closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, key: EncodedKey) -> tuple[EncodedValue, Versionstamp] | None:
        """Retrieve latest (value, versionstamp) for key."""
        with self._lock:
            self._ensure_open()
            return self._memtable.get(key)

    def range(self, start: EncodedKey | None, end: EncodedKey | None) -> list[Record]:
        """Return the records in [start, end) in key order."""
        with self._lock:
            self._ensure_open()
            return list(self._memtable.iter_range(start, end))

    def commit(
        self,
        checks: Sequence[tuple[EncodedKey, Versionstamp | None]],
        mutations: Sequence[Mutation],
    ) -> Versionstamp | None:
        """Atomically verify checks and apply mutations.

        Args:
            checks: (key, expected_versionstamp) pairs; None expects absence
            mutations: (key, value) pairs; value None deletes the key

        Returns:
            The commit's versionstamp, or None if a check failed and nothing
            was written.
        """
        with self._lock:
            self._ensure_open()

            for key, expected in checks:
                current = self._memtable.get(key)
                current_versionstamp = current[1] if current is not None else None
                if current_versionstamp != expected:
                    logger.debug(
                        f"Commit check failed: expected {expected}, found {current_versionstamp}"
                    )
                    return None

            self._versionstamp += 1
            versionstamp = self._versionstamp

            if self._wal is not None:
                self._wal.append_batch(versionstamp, mutations)
            self._apply(versionstamp, mutations)

            if self._wal is not None and self._wal.size_bytes() > self.config.wal_compact_bytes:
                self._compact_log_locked()

            return versionstamp

    def compact_log(self) -> None:
        """Rewrite the WAL as a snapshot of the live keys."""
        with self._lock:
            self._ensure_open()
            self._compact_log_locked()

    def _compact_log_locked(self) -> None:
        """Internal compaction (must hold lock)."""
        if self._wal is None:
            return
        logger.info(f"Compacting WAL ({self._wal.size_bytes()} bytes)")
        self._wal.rewrite(self._memtable.items())

    def close(self) -> None:
        """Close store and release resources."""
        logger.info(f"Closing KV store at {self.data_dir or '<memory>'}")
        with self._lock:
            self._closed = True
            if self._wal is not None:
                self._wal.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
