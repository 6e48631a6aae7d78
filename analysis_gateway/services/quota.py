"""Quota ledger — daily per-identity quota charged per distinct fixture.

Algorithm (per identity, scope and UTC day):
  1. Same fixture already granted today → re-admit, no extra charge
  2. Distinct fixtures today >= limit → reject until next UTC midnight
  3. Otherwise record the fixture and admit

The ledger is tier-agnostic: the caller passes the daily limit.
Storage errors fail closed and surface as QuotaUnavailableError so they can be
told apart from genuine exhaustion.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

from sqlalchemy import delete, distinct, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analysis_gateway.errors import QuotaUnavailableError
from analysis_gateway.models.quota_records import QuotaRecord
from analysis_gateway.orchestrator.schemas import RateLimitDecision

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_utc_midnight(now: datetime) -> datetime:
    return datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=timezone.utc)


class QuotaLedger:
    """Admit/reject decisions backed by the quota_records table."""

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

    async def check_and_admit(
        self,
        identity: str,
        resource_id: int,
        scope: str,
        daily_limit: int,
    ) -> RateLimitDecision:
        now = self._clock()
        today = now.date()

        try:
            async with self._session_factory() as session:
                granted = await session.scalar(
                    select(QuotaRecord.id).where(
                        QuotaRecord.identity == identity,
                        QuotaRecord.resource_id == resource_id,
                        QuotaRecord.scope == scope,
                        QuotaRecord.day == today,
                    ).limit(1)
                )
                used = await self._count_today(session, identity, scope, today)

                if granted is not None:
                    logger.debug("Quota re-admit | scope=%s | resource=%d | used=%d", scope, resource_id, used)
                    return RateLimitDecision(
                        admitted=True,
                        remaining=max(0, daily_limit - used),
                        daily_limit=daily_limit,
                    )

                if used >= daily_limit:
                    logger.info(
                        "Quota exhausted | scope=%s | resource=%d | used=%d/%d",
                        scope, resource_id, used, daily_limit,
                    )
                    return RateLimitDecision(
                        admitted=False,
                        remaining=0,
                        resets_at=next_utc_midnight(now),
                        daily_limit=daily_limit,
                    )

                session.add(QuotaRecord(
                    identity=identity,
                    resource_id=resource_id,
                    scope=scope,
                    day=today,
                    first_granted_at=now,
                ))
                try:
                    await session.commit()
                except IntegrityError:
                    # A concurrent request for the same fixture won the insert
                    await session.rollback()
                    logger.info("Quota insert conflict | scope=%s | resource=%d — already admitted", scope, resource_id)
                    return RateLimitDecision(
                        admitted=True,
                        remaining=max(0, daily_limit - used - 1),
                        daily_limit=daily_limit,
                    )

                logger.info(
                    "Quota admit | scope=%s | resource=%d | used=%d/%d",
                    scope, resource_id, used + 1, daily_limit,
                )
                return RateLimitDecision(
                    admitted=True,
                    remaining=daily_limit - used - 1,
                    first_time=True,
                    daily_limit=daily_limit,
                )

        except (SQLAlchemyError, OSError) as e:
            logger.error("Quota store error | scope=%s | resource=%d | %s", scope, resource_id, str(e)[:200])
            raise QuotaUnavailableError("Quota system unavailable", details=str(e)[:200]) from e

    async def prune(self, before: date) -> int:
        """Delete witness rows older than `before`. Storage hygiene only."""
        async with self._session_factory() as session:
            result = await session.execute(delete(QuotaRecord).where(QuotaRecord.day < before))
            await session.commit()
        logger.info("Quota pruned %d rows before %s", result.rowcount, before.isoformat())
        return result.rowcount

    @staticmethod
    async def _count_today(session: AsyncSession, identity: str, scope: str, today: date) -> int:
        count = await session.scalar(
            select(func.count(distinct(QuotaRecord.resource_id))).where(
                QuotaRecord.identity == identity,
                QuotaRecord.scope == scope,
                QuotaRecord.day == today,
            )
        )
        return count or 0
