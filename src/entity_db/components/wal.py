"""Write-Ahead Log implementation.

Provides a durable, crash-safe, append-only log of atomic commit batches
with CRC32 checksums.
"""

from __future__ import annotations

import logging
import os
import struct
import zlib
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from ..core.errors import StoreClosedError, WALCorruptionError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from ..core.types import Mutation, Record, Versionstamp

logger = logging.getLogger(__name__)

# WAL batch format:
# [magic (4B)] [versionstamp (8B)] [count (4B)]
#   count x ( [op (1B)] [key_len (8B)] [key] [value_len (8B)] [value] )
# [crc32 (4B)] over everything before it
MAGIC = 0x454B5601  # "EKV" + version
OP_SET = 0
OP_DELETE = 1

_HEADER = struct.Struct("<IQI")
_OP_HEAD = struct.Struct("<BQ")
_LEN = struct.Struct("<Q")
_CRC = struct.Struct("<I")


class _PartialBatch(Exception):
    """Internal: the log ends in the middle of a batch."""


class SimpleWAL:
    """Append-only Write-Ahead Log of commit batches.

    Args:
        path: Path to WAL file
        flush_every_write: Whether to fsync after each append

    Invariants:
        - A batch is written with a single trailing checksum
        - A partial batch at EOF is skipped during replay, so a commit that
          crashed mid-write is never half applied
        - Batches are returned in append order
    """

    def __init__(self, path: str | Path, flush_every_write: bool = True):
        self.path = Path(path)
        self.flush_every_write = flush_every_write
        self._fd: BinaryIO | None = None
        self._open_for_write()

    def _open_for_write(self) -> None:
        """Open WAL file for appending."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fd = open(self.path, "ab")
        self._fd.seek(0, os.SEEK_END)
        logger.debug(f"Opened WAL {self.path} at offset {self._fd.tell()}")

    def size_bytes(self) -> int:
        """Return the current size of the log file."""
        if self._fd is not None:
            return self._fd.tell()
        return self.path.stat().st_size if self.path.exists() else 0

    @staticmethod
    def _pack_batch(versionstamp: Versionstamp, mutations: Sequence[Mutation]) -> bytes:
        parts = [_HEADER.pack(MAGIC, versionstamp, len(mutations))]
        for key, value in mutations:
            op_code = OP_DELETE if value is None else OP_SET
            value_bytes = value if value is not None else b""
            parts.append(_OP_HEAD.pack(op_code, len(key)))
            parts.append(key)
            parts.append(_LEN.pack(len(value_bytes)))
            parts.append(value_bytes)
        payload = b"".join(parts)
        return payload + _CRC.pack(zlib.crc32(payload))

    def append_batch(self, versionstamp: Versionstamp, mutations: Sequence[Mutation]) -> None:
        """Append one atomic batch of mutations.

        Args:
            versionstamp: Versionstamp of the commit
            mutations: (key, value) pairs; value None deletes the key
        """
        if self._fd is None:
            raise StoreClosedError("WAL is closed")

        record = self._pack_batch(versionstamp, mutations)
        self._fd.write(record)
        if self.flush_every_write:
            self.sync()
        else:
            self._fd.flush()

        logger.debug(f"Appended batch versionstamp={versionstamp}, ops={len(mutations)}")

    def rewrite(self, records: Iterable[Record]) -> None:
        """Replace the log with a snapshot of live records.

        Each record becomes its own single-set batch carrying its original
        versionstamp. The new log is written to a temp file, fsynced, then
        renamed over the old one.
        """
        if self._fd is None:
            raise StoreClosedError("WAL is closed")

        temp_path = self.path.with_suffix(".tmp")
        count = 0
        with open(temp_path, "wb") as f:
            for key, value, versionstamp in records:
                f.write(self._pack_batch(versionstamp, [(key, value)]))
                count += 1
            f.flush()
            os.fsync(f.fileno())

        self._fd.close()
        os.replace(temp_path, self.path)
        self._open_for_write()
        logger.info(f"Rewrote WAL {self.path} as snapshot of {count} records")

    def sync(self) -> None:
        """Force data to disk (fsync)."""
        if self._fd:
            self._fd.flush()
            os.fsync(self._fd.fileno())

    def close(self) -> None:
        """Close writer and release resources."""
        if self._fd:
            self.sync()
            self._fd.close()
            self._fd = None
            logger.info(f"Closed WAL {self.path}")

    @staticmethod
    def _read_exact(f: BinaryIO, n: int) -> bytes:
        data = f.read(n)
        if len(data) < n:
            raise _PartialBatch()
        return data

    def __iter__(self) -> Iterator[tuple[Versionstamp, list[Mutation]]]:
        """Iterate batches in append order.

        Skips a partial batch at EOF.
        """
        with open(self.path, "rb") as f:
            while True:
                header = f.read(_HEADER.size)
                if len(header) == 0:
                    break  # EOF
                try:
                    if len(header) < _HEADER.size:
                        raise _PartialBatch()
                    magic, versionstamp, count = _HEADER.unpack(header)
                    if magic != MAGIC:
                        raise WALCorruptionError(f"Invalid magic: {magic:x}")

                    chunks = [header]
                    mutations: list[Mutation] = []
                    for _ in range(count):
                        op_head = self._read_exact(f, _OP_HEAD.size)
                        op_code, key_len = _OP_HEAD.unpack(op_head)
                        key = self._read_exact(f, key_len)
                        value_len_bytes = self._read_exact(f, _LEN.size)
                        value_bytes = self._read_exact(f, _LEN.unpack(value_len_bytes)[0])
                        chunks.extend((op_head, key, value_len_bytes, value_bytes))

                        if op_code == OP_SET:
                            mutations.append((key, value_bytes))
                        elif op_code == OP_DELETE:
                            mutations.append((key, None))
                        else:
                            raise WALCorruptionError(f"Invalid op code: {op_code}")

                    stored_crc = _CRC.unpack(self._read_exact(f, _CRC.size))[0]
                except _PartialBatch:
                    logger.warning(f"Partial batch at EOF of {self.path}, skipping")
                    break

                computed_crc = zlib.crc32(b"".join(chunks))
                if stored_crc != computed_crc:
                    raise WALCorruptionError(
                        f"CRC mismatch: expected {computed_crc:x}, got {stored_crc:x}"
                    )

                yield (versionstamp, mutations)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
