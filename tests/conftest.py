"""Shared test fixtures and configuration."""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Demo mode (no real API key) and a throwaway SQLite file for the app engine.
# Must run before anything imports analysis_gateway.config.
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"analysis_gateway_test_{os.getpid()}.db")
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379")

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from analysis_gateway.database import init_db  # noqa: E402


def pytest_sessionfinish(session, exitstatus):
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


class FakeClock:
    """Settable UTC clock for the ledger, cache and orchestrator."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class BrokenSessionFactory:
    """Session factory whose store is down."""

    def __call__(self):
        raise OSError("connection refused")


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
async def session_factory():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    assert await init_db(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def broken_session_factory():
    return BrokenSessionFactory()


@pytest.fixture
def match_data():
    """Match context as the mobile client sends it."""
    return {
        "home": {"id": 611, "name": "Fenerbahce"},
        "away": {"id": 645, "name": "Galatasaray"},
        "league": {"id": 203, "name": "Super Lig"},
        "date": "2025-03-16T17:00:00+00:00",
        "time": "20:00",
        "homeForm": "WWDWL",
        "awayForm": "WDWWW",
        "h2h": [{"score": "2-1", "winner": "home"}, {"score": "0-0", "winner": None}],
    }


@pytest.fixture
def sample_analysis_json():
    """A complete, well-formed analysis object as the model is asked to return it."""
    return {
        "homeWinProb": 42,
        "drawProb": 28,
        "awayWinProb": 30,
        "confidence": 7,
        "expectedGoals": 2.8,
        "bttsProb": 58,
        "over25Prob": 57,
        "goalDistribution": {
            "home": {"0": 20, "1": 38, "2": 27, "3": 10, "4plus": 5},
            "away": {"0": 28, "1": 37, "2": 22, "3": 9, "4plus": 4},
        },
        "mostLikelyScore": "2-1",
        "alternativeScores": [{"score": "1-1", "prob": 11}, {"score": "1-0", "prob": 9}],
        "riskLevel": "high",
        "winner": "home",
        "advice": "Derby nerves; goals on both ends are likely.",
        "factors": [{"category": "form", "text": "Home unbeaten in 5", "impact": "positive", "weight": 0.3}],
        "recommendedBets": [
            {"type": "KGV", "confidence": 62, "risk": "medium", "reasoning": "Both attack well."},
        ],
        "homeTeamAnalysis": {"strengths": ["pressing"], "weaknesses": [], "keyPlayer": "Dzeko"},
        "riskFlags": {"highDerbyVolatility": True},
        "modelNotes": "kept as-is",
    }
