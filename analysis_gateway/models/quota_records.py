"""QuotaRecord model — one row per identity, fixture, scope and UTC day."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import BigInteger, Date, DateTime, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from analysis_gateway.models.base import Base


class QuotaRecord(Base):
    """Membership witness: this identity was granted this fixture on this day.

    The daily usage of an identity is the number of rows sharing
    (identity, scope, day), never a stored counter.
    """

    __tablename__ = "quota_records"
    __table_args__ = (
        UniqueConstraint("identity", "resource_id", "scope", "day", name="uq_quota_identity_resource_day"),
        Index("ix_quota_identity_scope_day", "identity", "scope", "day"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    identity: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    scope: Mapped[str] = mapped_column(String(32), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    first_granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
