"""Prompt builder — fills the per-scope, per-locale templates in prompts/."""

import json
from pathlib import Path
from string import Template
from typing import Any, Callable

from analysis_gateway.config import settings

PromptBuilder = Callable[[str, dict[str, Any], str], str]

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

# (id, English name, Turkish name)
BET_TYPES = [
    ("MS1", "Match Result - Home", "Maç Sonucu - Ev Sahibi"),
    ("MSX", "Match Result - Draw", "Maç Sonucu - Beraberlik"),
    ("MS2", "Match Result - Away", "Maç Sonucu - Deplasman"),
    ("ÇS", "Double Chance - 1X", "Çifte Şans - 1X"),
    ("ÇS2", "Double Chance - X2", "Çifte Şans - X2"),
    ("ÇS3", "Double Chance - 12", "Çifte Şans - 12"),
    ("1.5U", "Over 1.5", "1.5 Üst"),
    ("2.5U", "Over 2.5", "2.5 Üst"),
    ("3.5U", "Over 3.5", "3.5 Üst"),
    ("1.5A", "Under 1.5", "1.5 Alt"),
    ("2.5A", "Under 2.5", "2.5 Alt"),
    ("3.5A", "Under 3.5", "3.5 Alt"),
    ("KGV", "Both Teams To Score - Yes", "Karşılıklı Gol Var"),
    ("KGY", "Both Teams To Score - No", "Karşılıklı Gol Yok"),
    ("İY1", "First Half - Home", "İlk Yarı - Ev Sahibi"),
    ("İYX", "First Half - Draw", "İlk Yarı - Beraberlik"),
    ("İY2", "First Half - Away", "İlk Yarı - Deplasman"),
    ("İY0.5U", "First Half Over 0.5", "İY 0.5 Üst"),
    ("İY1.5U", "First Half Over 1.5", "İY 1.5 Üst"),
    ("EGA", "Home Team To Score", "Ev Sahibi Gol Atar"),
    ("DGA", "Away Team To Score", "Deplasman Gol Atar"),
    ("TG01", "Total Goals 0-1", "Toplam Gol 0-1"),
    ("TG23", "Total Goals 2-3", "Toplam Gol 2-3"),
    ("TG46", "Total Goals 4-6", "Toplam Gol 4-6"),
]

_UNKNOWN = {
    "en": {"home": "Home", "away": "Away", "league": "League", "na": "N/A"},
    "tr": {"home": "Ev Sahibi", "away": "Deplasman", "league": "Lig", "na": "N/A"},
}


def load_prompt(name: str) -> str:
    """Load a prompt template from prompts/{name}.txt."""
    return (PROMPTS_DIR / f"{name}.txt").read_text(encoding="utf-8")


def _name(value: Any, fallback: str) -> str:
    if isinstance(value, dict):
        return str(value.get("name") or fallback)
    return str(value or fallback)


def build_prompt(scope: str, payload: dict[str, Any], variant: str) -> str:
    """Render the prompt for one fixture in the requested output language."""
    words = _UNKNOWN.get(variant, _UNKNOWN["en"])
    name = f"{scope}_{variant}"
    # A configured locale without its own template uses the default one
    if not (PROMPTS_DIR / f"{name}.txt").exists():
        name = f"{scope}_{settings.default_locale}"
    template = Template(load_prompt(name))
    bet_types = "\n".join(
        f"- {bet_id}: {tr_name if variant == 'tr' else en_name}"
        for bet_id, en_name, tr_name in BET_TYPES
    )
    return template.safe_substitute(
        home=_name(payload.get("home"), words["home"]),
        away=_name(payload.get("away"), words["away"]),
        league=_name(payload.get("league"), words["league"]),
        date=payload.get("date") or words["na"],
        time=payload.get("time") or "",
        context=json.dumps(payload, ensure_ascii=False, indent=1, default=str),
        bet_types=bet_types,
    )
