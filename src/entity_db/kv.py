"""Connections to the ordered key-value store.

open_kv() hands out connections; connections to the same store location
share one engine, which is closed when its last connection closes. The
default location (None) is an in-memory store that lives for the whole
process.

Blocking engine calls run in a worker thread so connections can be used
from coroutines without stalling the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .components.codec import decode_key, decode_value, encode_key, encode_value, prefix_range
from .core.config import StoreConfig
from .core.errors import StoreClosedError
from .core.store import SimpleKvStore
from .core.types import CommitResult, KvEntry, KvEntryMaybe

if TYPE_CHECKING:
    from .core.types import EncodedKey, Key, Mutation, Versionstamp
    from .interfaces.store import KvStore

logger = logging.getLogger(__name__)


@dataclass
class _EngineHandle:
    store: KvStore
    connections: int = 0


_engines: dict[str | None, _EngineHandle] = {}
_engines_lock = threading.Lock()


def _location(path: str | Path | None) -> str | None:
    return None if path is None else str(Path(path).resolve())


def _acquire_engine(location: str | None, config: StoreConfig | None) -> KvStore:
    with _engines_lock:
        handle = _engines.get(location)
        if handle is None or handle.store.closed:
            store_config = replace(config or StoreConfig(), data_dir=location)
            handle = _EngineHandle(SimpleKvStore(store_config))
            _engines[location] = handle
        handle.connections += 1
        return handle.store


def _release_engine(location: str | None) -> None:
    with _engines_lock:
        handle = _engines.get(location)
        if handle is None:
            return
        handle.connections -= 1
        # The default in-memory store must outlive its connections
        if handle.connections <= 0 and location is not None:
            del _engines[location]
            handle.store.close()


async def open_kv(path: str | Path | None = None, config: StoreConfig | None = None) -> KvConnection:
    """Open a connection to the store at path, or to the default store.

    Args:
        path: Store directory; None selects the process-default in-memory store
        config: Engine tuning, used only when this call creates the engine
    """
    location = _location(path)
    store = await asyncio.to_thread(_acquire_engine, location, config)
    logger.debug(f"Opened connection to {location or '<memory>'}")
    return KvConnection(store, location)


class KvAtomicOperation:
    """Checks and mutations staged for one all-or-nothing commit.

    Keys and values are encoded when staged, so encoding errors surface at
    the call that introduced them. Later mutations of the same key win.
    """

    def __init__(self, connection: KvConnection):
        self._connection = connection
        self._checks: list[tuple[EncodedKey, Versionstamp | None]] = []
        self._mutations: dict[EncodedKey, Any] = {}

    def check(self, key: Key, versionstamp: Versionstamp | None) -> KvAtomicOperation:
        self._checks.append((encode_key(key), versionstamp))
        return self

    def set(self, key: Key, value: Any) -> KvAtomicOperation:
        self._mutations[encode_key(key)] = encode_value(value)
        return self

    def delete(self, key: Key) -> KvAtomicOperation:
        self._mutations[encode_key(key)] = None
        return self

    async def commit(self) -> CommitResult:
        store = self._connection._ensure_open()
        mutations: list[Mutation] = list(self._mutations.items())
        versionstamp = await asyncio.to_thread(store.commit, self._checks, mutations)
        if versionstamp is None:
            return CommitResult(ok=False)
        return CommitResult(ok=True, versionstamp=versionstamp)


class KvConnection:
    """An open connection to a key-value store.

    Args:
        store: The shared engine
        location: Resolved store directory, or None for the default store

    Invariants:
        - The engine is released exactly once, on the first close() or aclose()
        - Every operation after closing raises StoreClosedError
    """

    def __init__(self, store: KvStore, location: str | None):
        self._store: KvStore | None = store
        self.location = location

    def _ensure_open(self) -> KvStore:
        if self._store is None:
            raise StoreClosedError("Connection is closed")
        return self._store

    @property
    def closed(self) -> bool:
        return self._store is None

    async def get(self, key: Key) -> KvEntryMaybe:
        store = self._ensure_open()
        result = await asyncio.to_thread(store.get, encode_key(key))
        if result is None:
            return KvEntryMaybe(key=tuple(key))
        value, versionstamp = result
        return KvEntryMaybe(key=tuple(key), value=decode_value(value), versionstamp=versionstamp)

    async def list(self, prefix: Key) -> list[KvEntry]:
        store = self._ensure_open()
        start, end = prefix_range(prefix)
        records = await asyncio.to_thread(store.range, start, end)
        return [
            KvEntry(key=decode_key(key), value=decode_value(value), versionstamp=versionstamp)
            for key, value, versionstamp in records
        ]

    def atomic(self) -> KvAtomicOperation:
        self._ensure_open()
        return KvAtomicOperation(self)

    def _detach(self) -> bool:
        """Mark the connection closed; True on the first call only."""
        if self._store is None:
            return False
        self._store = None
        return True

    def close(self) -> None:
        """Release the connection, closing the engine on the calling thread if unused."""
        if self._detach():
            _release_engine(self.location)
            logger.debug(f"Closed connection to {self.location or '<memory>'}")

    async def aclose(self) -> None:
        """Release the connection; closing the engine runs in a worker thread."""
        if self._detach():
            await asyncio.to_thread(_release_engine, self.location)
            logger.debug(f"Closed connection to {self.location or '<memory>'}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False
