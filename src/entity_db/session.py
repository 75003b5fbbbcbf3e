"""Scoped store sessions.

A session opens a connection, hands it to one unit of work and closes it
on every exit path.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TypeVar, Union

from .kv import KvConnection, open_kv

T = TypeVar("T")

DbCallback = Callable[[KvConnection], Union[Awaitable[T], T]]


@asynccontextmanager
async def session(path: str | Path | None = None) -> AsyncIterator[KvConnection]:
    """Yield an open connection to the store at path; close it afterwards."""
    connection = await open_kv(path)
    try:
        yield connection
    finally:
        await connection.aclose()


async def _run(fn: DbCallback[T], connection: KvConnection) -> T:
    result = fn(connection)
    if isinstance(result, Awaitable):
        return await result
    return result


async def do_with_db(fn: DbCallback[T]) -> T:
    """Run fn against a connection to the default store."""
    async with session() as connection:
        return await _run(fn, connection)


async def do_with_specific_db(path: str | Path, fn: DbCallback[T]) -> T:
    """Run fn against a connection to the store at path."""
    async with session(path) as connection:
        return await _run(fn, connection)


def db_runner(path: str | Path | None) -> Callable[[DbCallback[T]], Awaitable[T]]:
    """Return a do_with_db-like function bound to the store at path."""

    async def run(fn: DbCallback[T]) -> T:
        async with session(path) as connection:
            return await _run(fn, connection)

    return run
