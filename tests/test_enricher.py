"""Tests for the result enricher — defaults, overlay and risk display metadata."""

from datetime import datetime, timezone

import pytest

from analysis_gateway.orchestrator.schemas import AnalysisResult, PredictionsResult
from analysis_gateway.services.enricher import (
    default_result,
    enrich,
    normalize_risk,
    risk_info,
)
from analysis_gateway.services.response_parser import USE_DEFAULTS

REQUIRED_ANALYSIS_OBJECTS = [
    "goalDistribution", "bttsDistribution", "alternativeScores", "factors",
    "recommendedBets", "homeTeamAnalysis", "awayTeamAnalysis", "trendSummary", "riskFlags",
]


class TestDefaults:
    @pytest.mark.parametrize("locale", ["en", "tr"])
    def test_analysis_defaults_are_complete(self, locale):
        result = enrich(USE_DEFAULTS, "analysis", locale)
        assert result["isDefault"] is True
        probs = (result["homeWinProb"], result["drawProb"], result["awayWinProb"])
        assert sum(probs) == 100
        assert all(0 <= p <= 100 for p in probs)
        for key in REQUIRED_ANALYSIS_OBJECTS:
            assert result[key] is not None, key
        assert result["riskInfo"]["level"] == "medium"

    @pytest.mark.parametrize("locale", ["en", "tr"])
    def test_predictions_defaults_are_complete(self, locale):
        result = enrich(USE_DEFAULTS, "predictions", locale)
        assert result["isDefault"] is True
        assert result["predictions"] == []
        assert result["summary"]
        assert result["riskWarning"]

    def test_defaults_are_localized(self):
        en = enrich(USE_DEFAULTS, "analysis", "en")
        tr = enrich(USE_DEFAULTS, "analysis", "tr")
        assert en["advice"] != tr["advice"]
        assert tr["riskInfo"]["label"] == "Orta Risk"
        assert en["riskInfo"]["label"] == "Medium Risk"

    def test_unknown_locale_falls_back_to_english(self):
        assert default_result("analysis", "de")["advice"] == default_result("analysis", "en")["advice"]

    def test_default_records_are_fresh_copies(self):
        first = default_result("analysis", "en")
        first["factors"].append({"text": "mutated"})
        assert default_result("analysis", "en")["factors"] == []


class TestOverlay:
    def test_parsed_values_pass_through(self):
        parsed = AnalysisResult(homeWinProb=61, drawProb=21, awayWinProb=18, expectedGoals=3.1)
        result = enrich(parsed, "analysis", "en")
        assert result["isDefault"] is False
        assert (result["homeWinProb"], result["drawProb"], result["awayWinProb"]) == (61, 21, 18)
        assert result["expectedGoals"] == 3.1

    def test_missing_fields_are_defaulted(self):
        result = enrich(AnalysisResult(homeWinProb=61), "analysis", "en")
        assert result["over15Prob"] == 70
        assert result["trendSummary"]["homeFormTrend"] == "stable"
        assert result["homeTeamAnalysis"]["strengths"] == []

    def test_null_never_erases_a_default(self):
        parsed = AnalysisResult.model_validate({"advice": None, "homeWinProb": 55})
        result = enrich(parsed, "analysis", "en")
        assert result["advice"] == "Insufficient data for analysis."

    def test_nested_objects_merge(self):
        parsed = AnalysisResult.model_validate({"riskFlags": {"highDerbyVolatility": True}})
        result = enrich(parsed, "analysis", "en")
        assert result["riskFlags"]["highDerbyVolatility"] is True
        assert result["riskFlags"]["weatherImpact"] == "low"

    def test_unknown_keys_kept(self):
        parsed = AnalysisResult.model_validate({"homeWinProb": 50, "modelNotes": "derby"})
        assert enrich(parsed, "analysis", "en")["modelNotes"] == "derby"

    def test_generated_at(self):
        at = datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc)
        result = enrich(AnalysisResult(homeWinProb=50), "analysis", "en", generated_at=at)
        assert result["generatedAt"] == "2025-03-14T10:00:00+00:00"


class TestRiskInfo:
    @pytest.mark.parametrize("token,level", [
        ("low", "low"), ("düşük", "low"), ("Medium", "medium"), ("orta", "medium"),
        ("yuksek", "high"), ("very high", "very_high"), ("çok yüksek", "very_high"),
        ("???", "medium"), (None, "medium"), (3, "medium"),
    ])
    def test_normalize(self, token, level):
        assert normalize_risk(token) == level

    def test_display_metadata(self):
        info = risk_info("high", "en")
        assert info["level"] == "high"
        assert info["label"] == "High Risk"
        assert info["color"].startswith("#")
        assert info["icon"]

    def test_analysis_bets_get_risk_info(self):
        parsed = AnalysisResult.model_validate({
            "riskLevel": "yüksek",
            "recommendedBets": [{"type": "MS1", "risk": "düşük"}, {"type": "KGV"}],
        })
        result = enrich(parsed, "analysis", "tr")
        assert result["riskInfo"]["label"] == "Yüksek Risk"
        assert result["recommendedBets"][0]["riskInfo"]["level"] == "low"
        assert result["recommendedBets"][1]["riskInfo"]["level"] == "medium"

    def test_predictions_get_risk_info(self):
        parsed = PredictionsResult.model_validate({
            "predictions": [{"betType": "2.5U", "risk": "very_high"}],
        })
        result = enrich(parsed, "predictions", "en")
        assert result["predictions"][0]["riskInfo"]["label"] == "Very High Risk"
        assert "riskInfo" not in result
