"""Entity db core."""

from .entity_db import EntityDb
from .store import SimpleKvStore

__all__ = ["EntityDb", "SimpleKvStore"]
