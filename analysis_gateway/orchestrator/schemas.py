"""Pydantic models for gateway input/output — shared across both scopes.

Split into: inbound request, model result schemas, quota decision, and the
three gateway response variants.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

SCOPES = ("analysis", "predictions")

# Model output mixes 40 and 40.5; keep whichever the model sent
Number = Union[int, float]


# ═══════════════ INBOUND REQUEST ═══════════════

class GatewayRequest(BaseModel):
    """Normalized inbound request (after identity/resource key derivation)."""
    resource_id: int
    variant: str = "en"
    is_pro: bool = False
    payload: dict[str, Any] = Field(default_factory=dict)


# ═══════════════ MODEL OUTPUT: ANALYSIS ═══════════════

class _Lenient(BaseModel):
    """Model output keeps unknown keys; nothing is required."""
    model_config = ConfigDict(extra="allow")


class AlternativeScore(_Lenient):
    score: str | None = None
    prob: Number | None = None


class Factor(_Lenient):
    category: str | None = None
    text: str | None = None
    impact: str | None = None
    weight: Number | None = None


class RecommendedBet(_Lenient):
    type: str | None = None
    confidence: Number | None = None
    risk: str | None = None
    reasoning: str | None = None


class TeamAnalysis(_Lenient):
    strengths: list[str] | None = None
    weaknesses: list[str] | None = None
    keyPlayer: str | None = None
    tacticalSummary: str | None = None


class TrendSummary(_Lenient):
    homeFormTrend: str | None = None
    awayFormTrend: str | None = None
    homeXGTrend: str | None = None
    awayXGTrend: str | None = None
    tacticalMatchupSummary: str | None = None


class RiskFlags(_Lenient):
    highDerbyVolatility: bool | None = None
    weatherImpact: str | None = None
    fatigueRiskHome: str | None = None
    fatigueRiskAway: str | None = None
    marketDisagreement: bool | None = None


class AnalysisResult(_Lenient):
    """Full match analysis as produced by the model."""
    homeWinProb: Number | None = None
    drawProb: Number | None = None
    awayWinProb: Number | None = None
    confidence: Number | None = None

    expectedGoals: Number | None = None
    expectedHomeGoals: Number | None = None
    expectedAwayGoals: Number | None = None
    bttsProb: Number | None = None
    over15Prob: Number | None = None
    over25Prob: Number | None = None
    over35Prob: Number | None = None

    goalDistribution: dict[str, dict[str, Number]] | None = None
    bttsDistribution: dict[str, Number] | None = None

    htHomeWinProb: Number | None = None
    htDrawProb: Number | None = None
    htAwayWinProb: Number | None = None
    htOver05Prob: Number | None = None
    htOver15Prob: Number | None = None

    mostLikelyScore: str | None = None
    scoreProb: Number | None = None
    alternativeScores: list[AlternativeScore] | None = None

    riskLevel: str | None = None
    bankoScore: Number | None = None
    volatility: Number | None = None
    winner: str | None = None
    advice: str | None = None

    factors: list[Factor] | None = None
    recommendedBets: list[RecommendedBet] | None = None
    homeTeamAnalysis: TeamAnalysis | None = None
    awayTeamAnalysis: TeamAnalysis | None = None
    trendSummary: TrendSummary | None = None
    riskFlags: RiskFlags | None = None


# ═══════════════ MODEL OUTPUT: PREDICTIONS ═══════════════

class Prediction(_Lenient):
    betType: str | None = None
    betName: str | None = None
    category: str | None = None
    selection: str | None = None
    confidence: Number | None = None
    risk: str | None = None
    reasoning: str | None = None


class TopPick(_Lenient):
    betType: str | None = None
    betName: str | None = None
    confidence: Number | None = None
    reasoning: str | None = None


class PredictionsResult(_Lenient):
    """Betting predictions as produced by the model."""
    predictions: list[Prediction] | None = None
    topPick: TopPick | None = None
    summary: str | None = None
    riskWarning: str | None = None


RESULT_MODELS: dict[str, type[_Lenient]] = {
    "analysis": AnalysisResult,
    "predictions": PredictionsResult,
}


# ═══════════════ QUOTA ═══════════════

class RateLimitDecision(BaseModel):
    """Transient admit/reject decision. Never persisted."""
    admitted: bool
    remaining: int
    resets_at: datetime | None = None
    first_time: bool = False
    daily_limit: int = 0


# ═══════════════ GATEWAY RESPONSES ═══════════════

class OkResponse(BaseModel):
    kind: Literal["ok"] = "ok"
    result: dict[str, Any]
    remaining: int
    dailyLimit: int
    cached: bool = False
    strategy: str = "cache"


class ThrottledResponse(BaseModel):
    kind: Literal["throttled"] = "throttled"
    errorKind: Literal["rate_limit_exceeded"] = "rate_limit_exceeded"
    message: str
    remaining: int = 0
    resetsAt: datetime | None = None
    dailyLimit: int
    reason: Literal["daily_limit_reached", "quota_unavailable"] = "daily_limit_reached"


class UpstreamErrorResponse(BaseModel):
    kind: Literal["upstream_error"] = "upstream_error"
    errorKind: Literal["upstream_failure"] = "upstream_failure"
    message: str
    details: str | None = None


GatewayResponse = Annotated[
    Union[OkResponse, ThrottledResponse, UpstreamErrorResponse],
    Field(discriminator="kind"),
]
