"""Result enricher & defaulter.

enrich() is total and pure: a parsed result is laid over the scope's default
record, so every required sub-object is present, then risk tokens get
locale-appropriate display metadata. Numeric fields pass through untouched.
The USE_DEFAULTS sentinel yields the default record itself.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from analysis_gateway.services.response_parser import ParseFailure

RISK_LEVELS = {
    "low": {"color": "#00d977", "bgColor": "rgba(0, 217, 119, 0.12)", "icon": "shield-checkmark"},
    "medium": {"color": "#ff9f0a", "bgColor": "rgba(255, 159, 10, 0.12)", "icon": "alert-circle"},
    "high": {"color": "#ff453a", "bgColor": "rgba(255, 69, 58, 0.12)", "icon": "warning"},
    "very_high": {"color": "#8B0000", "bgColor": "rgba(139, 0, 0, 0.12)", "icon": "skull-outline"},
}

RISK_LABELS = {
    "en": {"low": "Low Risk", "medium": "Medium Risk", "high": "High Risk", "very_high": "Very High Risk"},
    "tr": {"low": "Düşük Risk", "medium": "Orta Risk", "high": "Yüksek Risk", "very_high": "Çok Yüksek Risk"},
}

RISK_ALIASES = {
    "low": "low", "dusuk": "low", "düşük": "low",
    "medium": "medium", "orta": "medium",
    "high": "high", "yuksek": "high", "yüksek": "high",
    "very_high": "very_high", "cok_yuksek": "very_high", "çok_yüksek": "very_high",
}

_TEXT = {
    "en": {
        "risk": "medium",
        "winner": "undecided",
        "advice": "Insufficient data for analysis.",
        "trend": "stable",
        "impact": "low",
        "summary": "Predictions could not be generated. Please try again later.",
        "riskWarning": "No data available.",
    },
    "tr": {
        "risk": "orta",
        "winner": "belirsiz",
        "advice": "Analiz için yeterli veri bulunmuyor.",
        "trend": "dengeli",
        "impact": "düşük",
        "summary": "Tahmin üretilemedi. Lütfen daha sonra tekrar deneyin.",
        "riskWarning": "Veri alınamadı.",
    },
}


def _locale(locale: str) -> str:
    return locale if locale in _TEXT else "en"


def normalize_risk(token: Any) -> str:
    if not isinstance(token, str):
        return "medium"
    key = token.strip().lower().replace(" ", "_").replace("-", "_")
    return RISK_ALIASES.get(key, "medium")


def risk_info(token: Any, locale: str) -> dict[str, str]:
    level = normalize_risk(token)
    return {
        "level": level,
        **RISK_LEVELS[level],
        "label": RISK_LABELS[_locale(locale)][level],
    }


# ═══════════════ DEFAULT RECORDS ═══════════════

def _team_defaults() -> dict[str, Any]:
    return {"strengths": [], "weaknesses": [], "keyPlayer": None, "tacticalSummary": ""}


def default_analysis(locale: str) -> dict[str, Any]:
    t = _TEXT[_locale(locale)]
    return {
        "homeWinProb": 33,
        "drawProb": 34,
        "awayWinProb": 33,
        "confidence": 5,

        "expectedGoals": 2.5,
        "expectedHomeGoals": 1.3,
        "expectedAwayGoals": 1.2,
        "bttsProb": 50,
        "over15Prob": 70,
        "over25Prob": 50,
        "over35Prob": 30,

        "goalDistribution": {
            "home": {"0": 25, "1": 35, "2": 25, "3": 10, "4plus": 5},
            "away": {"0": 30, "1": 35, "2": 22, "3": 9, "4plus": 4},
        },
        "bttsDistribution": {"bothScore": 50, "onlyHomeScores": 25, "onlyAwayScores": 15, "noGoals": 10},

        "htHomeWinProb": 30,
        "htDrawProb": 45,
        "htAwayWinProb": 25,
        "htOver05Prob": 55,
        "htOver15Prob": 25,

        "mostLikelyScore": "1-1",
        "scoreProb": 12,
        "alternativeScores": [
            {"score": "1-0", "prob": 10},
            {"score": "2-1", "prob": 9},
            {"score": "0-0", "prob": 8},
        ],

        "riskLevel": t["risk"],
        "bankoScore": 50,
        "volatility": 0.5,
        "winner": t["winner"],
        "advice": t["advice"],

        "factors": [],
        "recommendedBets": [],
        "homeTeamAnalysis": _team_defaults(),
        "awayTeamAnalysis": _team_defaults(),
        "trendSummary": {
            "homeFormTrend": t["trend"],
            "awayFormTrend": t["trend"],
            "homeXGTrend": t["trend"],
            "awayXGTrend": t["trend"],
            "tacticalMatchupSummary": "",
        },
        "riskFlags": {
            "highDerbyVolatility": False,
            "weatherImpact": t["impact"],
            "fatigueRiskHome": t["impact"],
            "fatigueRiskAway": t["impact"],
            "marketDisagreement": False,
        },
    }


def default_predictions(locale: str) -> dict[str, Any]:
    t = _TEXT[_locale(locale)]
    return {
        "predictions": [],
        "topPick": None,
        "summary": t["summary"],
        "riskWarning": t["riskWarning"],
    }


DEFAULTS = {
    "analysis": default_analysis,
    "predictions": default_predictions,
}


def default_result(scope: str, locale: str) -> dict[str, Any]:
    return DEFAULTS[scope](locale)


# ═══════════════ ENRICHMENT ═══════════════

def _overlay(base: dict[str, Any], parsed: dict[str, Any]) -> dict[str, Any]:
    """Parsed values win; nested objects merge one level; nulls never erase a default."""
    merged = dict(base)
    for key, value in parsed.items():
        default = base.get(key)
        if value is None and default is not None:
            continue
        if isinstance(value, dict) and isinstance(default, dict):
            merged[key] = {**default, **{k: v for k, v in value.items() if v is not None or k not in default}}
        else:
            merged[key] = value
    return merged


def _attach_risk_info(result: dict[str, Any], scope: str, locale: str) -> None:
    if scope == "analysis":
        result["riskInfo"] = risk_info(result.get("riskLevel"), locale)
        records = result.get("recommendedBets") or []
    else:
        records = result.get("predictions") or []
    for record in records:
        if isinstance(record, dict):
            record["riskInfo"] = risk_info(record.get("risk"), locale)


def enrich(
    parsed: BaseModel | ParseFailure,
    scope: str,
    locale: str,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Produce the client-facing record for a parsed result or the defaults sentinel."""
    base = default_result(scope, locale)
    if isinstance(parsed, ParseFailure):
        result = base
        result["isDefault"] = True
    else:
        result = _overlay(base, parsed.model_dump(exclude_unset=True))
        result["isDefault"] = False

    _attach_risk_info(result, scope, locale)
    result["generatedAt"] = (generated_at or datetime.now(timezone.utc)).isoformat()
    return result
