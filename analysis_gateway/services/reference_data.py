"""Reference data reader — fixtures and standings written by the sync job.

Keys (JSON values of the form {"data": ..., "updated_at": ISO-8601}):
  - fb:fixtures:{date}
  - fb:standings:{league_id}:{season}

Graceful degradation: if Redis is unavailable, uses cachetools.TTLCache in-memory.
The gateway only reads here; it never triggers or waits on a sync.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from cachetools import TTLCache

from analysis_gateway.config import settings

logger = logging.getLogger(__name__)

KINDS = ("fixtures", "standings")


@dataclass
class ReferenceSnapshot:
    data: Any
    updated_at: datetime
    stale: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "updatedAt": self.updated_at.isoformat(),
            "stale": self.stale,
        }


class ReferenceDataService:
    """Async key lookups with Redis primary and in-memory fallback."""

    def __init__(self, max_age_seconds: int | None = None):
        self._redis = None
        self._fallback = TTLCache(maxsize=256, ttl=3600)  # 1h default
        self._available = False
        self.max_age = max_age_seconds or settings.reference_max_age_seconds

    async def connect(self) -> bool:
        """Connect to Redis. Returns True on success."""
        try:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
            )
            await self._redis.ping()
            self._available = True
            return True
        except Exception as e:
            logger.warning("Redis connection failed — using in-memory fallback: %s", str(e)[:100])
            self._redis = None
            self._available = False
            return False

    async def disconnect(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._available = False

    @staticmethod
    def make_key(kind: str, *parts: Any) -> str:
        if kind not in KINDS:
            raise ValueError(f"unknown reference kind: {kind}")
        return ":".join(["fb", kind, *(str(p) for p in parts)])

    def _snapshot(self, raw: dict[str, Any], now: datetime) -> ReferenceSnapshot | None:
        try:
            updated_at = datetime.fromisoformat(raw["updated_at"])
        except (KeyError, TypeError, ValueError):
            return None
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        age = (now - updated_at).total_seconds()
        return ReferenceSnapshot(data=raw.get("data"), updated_at=updated_at, stale=age > self.max_age)

    async def get(self, kind: str, *parts: Any, now: datetime | None = None) -> ReferenceSnapshot | None:
        """Read a snapshot. Returns None on miss."""
        key = self.make_key(kind, *parts)
        now = now or datetime.now(timezone.utc)

        # Try Redis
        if self._available and self._redis:
            try:
                data = await self._redis.get(key)
                if data:
                    logger.info("Reference HIT (Redis) | key=%s", key)
                    return self._snapshot(json.loads(data), now)
            except Exception as e:
                logger.debug("Redis GET error: %s", str(e)[:100])

        # Try in-memory fallback
        data = self._fallback.get(key)
        if data:
            logger.info("Reference HIT (memory) | key=%s", key)
            return self._snapshot(data, now)

        logger.info("Reference MISS | key=%s", key)
        return None

    async def put(self, kind: str, *parts: Any, data: Any, updated_at: datetime | None = None):
        """Store a snapshot — used by the sync job and in tests."""
        key = self.make_key(kind, *parts)
        record = {
            "data": data,
            "updated_at": (updated_at or datetime.now(timezone.utc)).isoformat(),
        }

        if self._available and self._redis:
            try:
                await self._redis.set(key, json.dumps(record, ensure_ascii=False))
                logger.info("Reference SET (Redis) | key=%s", key)
            except Exception as e:
                logger.debug("Redis SET error: %s", str(e)[:100])

        # Always write to in-memory fallback too
        self._fallback[key] = record


# Singleton instance
reference_data = ReferenceDataService()
