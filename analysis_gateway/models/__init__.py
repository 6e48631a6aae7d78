"""SQLAlchemy ORM models."""

from analysis_gateway.models.base import Base
from analysis_gateway.models.cached_analyses import CachedAnalysis
from analysis_gateway.models.quota_records import QuotaRecord

__all__ = ["Base", "QuotaRecord", "CachedAnalysis"]
