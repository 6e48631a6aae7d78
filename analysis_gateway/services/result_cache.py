"""Result cache — enriched model output keyed by (fixture, scope, locale).

Expiry is logical: a row whose expires_at has passed is a miss even though it
still exists, and the next computation overwrites it through an upsert.
Storage errors fail open (a broken cache means "always recompute", never
"deny service").
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analysis_gateway.models.cached_analyses import CachedAnalysis
from analysis_gateway.services.quota import utcnow

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ResultCache:
    """Async TTL cache over the cached_analyses table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if session_factory is None:
            from analysis_gateway.database import async_session_factory
            session_factory = async_session_factory
        self._session_factory = session_factory
        self._clock = clock

    async def get(self, resource_id: int, scope: str, variant: str) -> dict[str, Any] | None:
        """Read a fresh entry. Returns None on miss, expiry, or storage error."""
        try:
            async with self._session_factory() as session:
                row = await session.scalar(
                    select(CachedAnalysis).where(
                        CachedAnalysis.resource_id == resource_id,
                        CachedAnalysis.scope == scope,
                        CachedAnalysis.variant == variant,
                    )
                )
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Cache GET error — treating as miss: %s", str(e)[:200])
            return None

        if row is None:
            return None
        if _as_utc(row.expires_at) <= self._clock():
            logger.info("Cache EXPIRED | resource=%d | scope=%s | variant=%s", resource_id, scope, variant)
            return None

        logger.info("Cache HIT | resource=%d | scope=%s | variant=%s", resource_id, scope, variant)
        return row.payload

    async def put(
        self,
        resource_id: int,
        scope: str,
        variant: str,
        result: dict[str, Any],
        ttl: int,
        source_date: date | None = None,
    ) -> bool:
        """Upsert an entry with a fresh expiry. Returns False if the write failed."""
        now = self._clock()
        values = {
            "resource_id": resource_id,
            "scope": scope,
            "variant": variant,
            "payload": result,
            "computed_at": now,
            "expires_at": now + timedelta(seconds=ttl),
            "source_date": source_date or now.date(),
        }
        try:
            async with self._session_factory() as session:
                insert = _UPSERT_DIALECTS[session.bind.dialect.name]
                stmt = insert(CachedAnalysis).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["resource_id", "scope", "variant"],
                    set_={
                        "payload": stmt.excluded.payload,
                        "computed_at": stmt.excluded.computed_at,
                        "expires_at": stmt.excluded.expires_at,
                        "source_date": stmt.excluded.source_date,
                    },
                )
                await session.execute(stmt)
                await session.commit()
        except (SQLAlchemyError, OSError, KeyError) as e:
            logger.warning("Cache SET error — result not cached: %s", str(e)[:200])
            return False

        logger.info("Cache SET | resource=%d | scope=%s | variant=%s | ttl=%ds", resource_id, scope, variant, ttl)
        return True

    async def evict(self, resource_id: int, scope: str | None = None) -> int:
        """Remove entries for a fixture (e.g. once the match has finished)."""
        stmt = delete(CachedAnalysis).where(CachedAnalysis.resource_id == resource_id)
        if scope:
            stmt = stmt.where(CachedAnalysis.scope == scope)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        logger.info("Cache evicted %d entries | resource=%d", result.rowcount, resource_id)
        return result.rowcount

    async def purge(self, before: date) -> int:
        """Remove entries for fixtures played before `before`."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(CachedAnalysis).where(CachedAnalysis.source_date < before)
            )
            await session.commit()
        logger.info("Cache purged %d entries before %s", result.rowcount, before.isoformat())
        return result.rowcount
