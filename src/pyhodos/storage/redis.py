"""Redis-based run log implementation.

Lets several engine processes on different machines share one audit trail.

Data Structures:
- hodos:run:{run_id} (STRING): RunRecord as JSON
- hodos:runs (ZSET): every run id (score = start time, for ordering)
- hodos:events:{run_id} (LIST): the run's events as JSON, in sequence order

Design: Adapter Pattern
Implements the RunLog protocol for Redis, adapting the Redis key-value
store to the RunLog interface.
"""

from __future__ import annotations

import json

import redis.asyncio as redis
from redis.exceptions import RedisError

from pyhodos.core.errors import StorageError
from pyhodos.models import HistoryEvent, RunRecord, RunStatus
from pyhodos.storage.base import RunLog


class RedisRunLog(RunLog):
    """Redis run log using connection pooling.

    All dependencies (Redis connection) passed explicitly.

    Usage:
        run_log = RedisRunLog("redis://localhost:6379")
        await run_log.connect()
        engine = Engine(registry).with_run_log(run_log)
    """

    def __init__(self, redis_url: str = "redis://localhost:6379", max_connections: int = 16):
        """Initialize Redis run log.

        Default redis_url works for local development.

        Args:
            redis_url: Redis connection URL
            max_connections: Maximum pool size
        """
        self._redis_url = redis_url
        self._max_connections = max_connections
        self._redis: redis.Redis | None = None

    def __repr__(self) -> str:
        return f"RedisRunLog({self._redis_url})"

    async def connect(self) -> None:
        """Establish Redis connection pool."""
        self._redis = redis.from_url(
            self._redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=self._max_connections,
        )

    async def close(self) -> None:
        """Close Redis connection pool."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _check_connected(self) -> None:
        """Ensure connection established.

        Raises immediately if not connected.
        """
        if self._redis is None:
            raise StorageError("Not connected. Call connect() first.")

    @staticmethod
    def _run_key(run_id: str) -> str:
        """Build Redis key for a run record."""
        return f"hodos:run:{run_id}"

    @staticmethod
    def _events_key(run_id: str) -> str:
        """Build Redis key for a run's event list."""
        return f"hodos:events:{run_id}"

    _RUNS_INDEX = "hodos:runs"

    async def save_run(self, record: RunRecord) -> None:
        """Store the record and index it by start time (MULTI/EXEC)."""
        self._check_connected()
        try:
            payload = json.dumps(record.to_dict())
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(self._run_key(record.run_id), payload)
                pipe.zadd(self._RUNS_INDEX, {record.run_id: record.started_at.timestamp()})
                await pipe.execute()
        except (RedisError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save run {record.run_id}: {e}") from e

    async def append_event(self, event: HistoryEvent) -> None:
        self._check_connected()
        try:
            await self._redis.rpush(self._events_key(event.run_id), json.dumps(event.to_dict()))
        except (RedisError, TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to append event {event.sequence} for run {event.run_id}: {e}"
            ) from e

    async def get_run(self, run_id: str) -> RunRecord | None:
        self._check_connected()
        payload = await self._redis.get(self._run_key(run_id))
        if payload is None:
            return None
        return RunRecord.from_dict(json.loads(payload))

    async def get_events(self, run_id: str) -> list[HistoryEvent]:
        self._check_connected()
        items = await self._redis.lrange(self._events_key(run_id), 0, -1)
        events = [HistoryEvent.from_dict(json.loads(item)) for item in items]
        return sorted(events, key=lambda event: event.sequence)

    async def list_runs(self, status: RunStatus | None = None) -> list[RunRecord]:
        self._check_connected()
        run_ids = await self._redis.zrange(self._RUNS_INDEX, 0, -1)
        if not run_ids:
            return []

        payloads = await self._redis.mget([self._run_key(run_id) for run_id in run_ids])
        records = [RunRecord.from_dict(json.loads(payload)) for payload in payloads if payload]
        if status is not None:
            records = [record for record in records if record.status == status]
        return records

    async def reset(self) -> None:
        """Reset all hodos data (clear all keys).

        Only deletes hodos:* keys, doesn't affect other Redis data.
        """
        self._check_connected()

        keys = []
        async for key in self._redis.scan_iter(match="hodos:*"):
            keys.append(key)

        if keys:
            await self._redis.delete(*keys)
