"""Run log backends for persisting run records and event streams.

Provides multiple implementations behind a common interface:
    - RunLog: Abstract interface
    - SqliteRunLog: SQLite-backed storage
    - RedisRunLog: Redis-backed distributed storage
    - InMemoryRunLog: In-memory storage for testing

Design: Adapter Pattern + Dependency Inversion (SOLID)
    All backends adapt to the RunLog interface. The Engine depends on the
    abstraction, enabling easy swapping between backends.
"""

from pyhodos.storage.base import RunLog, StorageError
from pyhodos.storage.memory import InMemoryRunLog

# Lazy imports: the durable backends pull in aiosqlite / redis only when used


def __getattr__(name: str):
    """Lazy import durable backends."""
    if name == "SqliteRunLog":
        from pyhodos.storage.sqlite import SqliteRunLog

        return SqliteRunLog
    elif name == "RedisRunLog":
        from pyhodos.storage.redis import RedisRunLog

        return RedisRunLog
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "RunLog",
    "StorageError",
    "InMemoryRunLog",
    "SqliteRunLog",
    "RedisRunLog",
]
