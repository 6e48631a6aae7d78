"""CachedAnalysis model — persistent result cache keyed by fixture, scope and locale."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import BigInteger, Date, DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from analysis_gateway.models.base import Base, JSONType


class CachedAnalysis(Base):
    """Database-backed cache for enriched model results with TTL."""

    __tablename__ = "cached_analyses"
    __table_args__ = (
        UniqueConstraint("resource_id", "scope", "variant", name="uq_cached_resource_scope_variant"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    resource_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    scope: Mapped[str] = mapped_column(String(32), nullable=False)
    variant: Mapped[str] = mapped_column(String(16), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False)
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    source_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
