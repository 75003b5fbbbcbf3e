"""Protocol definition for the key-value store engine."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from ..core.types import EncodedKey, EncodedValue, Mutation, Record, Versionstamp


class KvStore(Protocol):
    """Engine API that connections are opened against."""

    @property
    def closed(self) -> bool:
        """True once close() has been called."""
        ...

    def get(self, key: EncodedKey) -> tuple[EncodedValue, Versionstamp] | None:
        """Return (value, versionstamp) for key or None if not present."""
        ...

    def range(self, start: EncodedKey | None, end: EncodedKey | None) -> list[Record]:
        """Ordered snapshot of the records in [start, end)."""
        ...

    def commit(
        self,
        checks: Sequence[tuple[EncodedKey, Versionstamp | None]],
        mutations: Sequence[Mutation],
    ) -> Versionstamp | None:
        """Apply mutations atomically if every check holds; None if not applied."""
        ...

    def close(self) -> None:
        """Release resources held by the engine."""
        ...
