"""Resilient parser — turns raw model text into a typed result.

The model is asked for one JSON object but routinely wraps it in prose or
markdown fences, leaves trailing commas, or breaks string values with raw
newlines and unescaped quotes. Strategies (in order, each more lossy):
  1. Direct extraction — strip fences, first "{" to last "}", strict JSON
  2. Syntax repair — drop trailing commas, control characters and comments
  3. String repair — re-escape quotes/backslashes inside string values and
     flatten raw newlines/tabs
  4. Field salvage — regex out known fields and record-like fragments
  5. USE_DEFAULTS sentinel when nothing could be salvaged

parse() is total: it never raises.
"""

import copy
import enum
import json
import logging
import re
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from analysis_gateway.orchestrator.schemas import RESULT_MODELS

logger = logging.getLogger(__name__)


class ParseFailure(enum.Enum):
    USE_DEFAULTS = "use_defaults"


USE_DEFAULTS = ParseFailure.USE_DEFAULTS

Strategy = Callable[[str, str], BaseModel | None]

_FENCE = re.compile(r"```[A-Za-z]*")
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")
_VALUE_WORDS = ("true", "false", "null")
_MAX_PRUNE_ROUNDS = 5


# ═══════════════ HELPERS ═══════════════

def _candidate_span(text: str) -> str | None:
    cleaned = _FENCE.sub("", text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    return cleaned[start:end + 1]


def _loads(span: str) -> Any:
    try:
        return json.loads(span)
    except (ValueError, RecursionError):
        return None


def _drop_invalid(data: dict[str, Any], errors: list[dict[str, Any]]) -> int:
    """Remove the value each validation error points at. Returns how many were removed."""
    targets: list[tuple[Any, Any]] = []
    for err in errors:
        container, key, node = None, None, data
        for step in err["loc"]:
            if isinstance(node, dict) and step in node:
                container, key = node, step
            elif isinstance(node, list) and isinstance(step, int) and 0 <= step < len(node):
                container, key = node, step
            else:
                # union member tags ("int", "float") and the like
                break
            node = container[key]
        if container is not None:
            targets.append((container, key))

    removed = set()
    # list indices high to low so a deletion never shifts a pending one
    for container, key in sorted(targets, key=lambda t: t[1] if isinstance(t[1], int) else -1, reverse=True):
        if (id(container), key) in removed:
            continue
        removed.add((id(container), key))
        del container[key]
    return len(removed)


def _validate(data: Any, scope: str) -> BaseModel | None:
    """Structural check: a JSON object that fits the scope model and sets at least one known field.

    Fields of the wrong type are dropped one by one; the rest of the object is kept.
    """
    if not isinstance(data, dict):
        return None
    model_cls = RESULT_MODELS[scope]
    data = copy.deepcopy(data)

    for _ in range(_MAX_PRUNE_ROUNDS):
        try:
            result = model_cls.model_validate(data)
            break
        except ValidationError as e:
            dropped = _drop_invalid(data, e.errors())
            logger.warning("Parse | scope=%s | dropped %d mistyped field(s): %s", scope, dropped, str(e)[:200])
            if not dropped:
                return None
    else:
        return None

    if not result.model_fields_set & model_cls.model_fields.keys():
        return None
    return result


def _fix_syntax(span: str) -> str:
    """Drop trailing commas and comments outside strings, strip control characters."""
    s = _CONTROL.sub("", span)
    out: list[str] = []
    i, n = 0, len(s)
    in_string = escape = False

    while i < n:
        ch = s[i]
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
        elif s.startswith("//", i):
            newline = s.find("\n", i)
            i = n if newline == -1 else newline
            continue
        elif s.startswith("/*", i):
            close = s.find("*/", i + 2)
            i = n if close == -1 else close + 2
            continue
        elif ch == ",":
            j = i + 1
            while j < n and s[j] in " \t\r\n":
                j += 1
            if j < n and s[j] in "}]":
                i += 1
                continue

        out.append(ch)
        i += 1

    return "".join(out)


def _looks_like_value_start(s: str, k: int) -> bool:
    if k >= len(s):
        return True
    return s[k] in '"{[]}-0123456789' or s.startswith(_VALUE_WORDS, k)


def _closes_string(s: str, j: int) -> bool:
    """Is the quote just before index j a real closing quote?"""
    n = len(s)
    while j < n and s[j] in " \t\r\n":
        j += 1
    if j >= n or s[j] in ":}]":
        return True
    if s[j] == ",":
        k = j + 1
        while k < n and s[k] in " \t\r\n":
            k += 1
        return _looks_like_value_start(s, k)
    return False


def _fix_strings(span: str) -> str:
    """Re-escape string contents: stray backslashes, embedded quotes, raw newlines/tabs."""
    out: list[str] = []
    i, n = 0, len(span)
    in_string = False

    while i < n:
        ch = span[i]
        if not in_string:
            out.append(ch)
            if ch == '"':
                in_string = True
            i += 1
            continue

        if ch == "\\":
            nxt = span[i + 1] if i + 1 < n else ""
            if nxt and nxt in '"\\/bfnrt':
                out.append(ch + nxt)
                i += 2
            elif nxt == "u" and _HEX4.match(span, i + 2):
                out.append(span[i:i + 6])
                i += 6
            else:
                out.append("\\\\")
                i += 1
            continue

        if ch == '"':
            if _closes_string(span, i + 1):
                in_string = False
                out.append(ch)
            else:
                out.append('\\"')
        elif ch in "\r\n\t":
            out.append(" ")
        else:
            out.append(ch)
        i += 1

    return "".join(out)


# ═══════════════ STRATEGIES 1–3 ═══════════════

def extract_direct(text: str, scope: str) -> BaseModel | None:
    span = _candidate_span(text)
    if span is None:
        return None
    return _validate(_loads(span), scope)


def repair_syntax(text: str, scope: str) -> BaseModel | None:
    span = _candidate_span(text)
    if span is None:
        return None
    return _validate(_loads(_fix_syntax(span)), scope)


def repair_strings(text: str, scope: str) -> BaseModel | None:
    span = _candidate_span(text)
    if span is None:
        return None
    return _validate(_loads(_fix_syntax(_fix_strings(span))), scope)


# ═══════════════ STRATEGY 4: FIELD SALVAGE ═══════════════

_NUMBER = r"-?\d+(?:\.\d+)?"
_QUOTED = r'"((?:[^"\\]|\\.)*)"'

ANALYSIS_NUMBER_FIELDS = [
    "homeWinProb", "drawProb", "awayWinProb", "confidence",
    "expectedGoals", "expectedHomeGoals", "expectedAwayGoals",
    "bttsProb", "over15Prob", "over25Prob", "over35Prob",
    "htHomeWinProb", "htDrawProb", "htAwayWinProb", "htOver05Prob", "htOver15Prob",
    "scoreProb", "bankoScore", "volatility",
]
ANALYSIS_TEXT_FIELDS = ["advice", "mostLikelyScore", "riskLevel", "winner"]
BET_FIELDS = {"text": ["type", "risk", "reasoning"], "number": ["confidence"]}

PREDICTION_FIELDS = {
    "text": ["betType", "betName", "category", "selection", "risk", "reasoning"],
    "number": ["confidence"],
}
PREDICTIONS_TEXT_FIELDS = ["summary", "riskWarning"]


def _to_number(raw: str) -> int | float:
    return float(raw) if "." in raw else int(raw)


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw.replace("\\n", " ").replace('\\"', '"')


def _find_number(text: str, name: str) -> int | float | None:
    m = re.search(rf'(?<![\w"])"?{name}"?\s*:\s*"?({_NUMBER})', text)
    return _to_number(m.group(1)) if m else None


def _find_text(text: str, name: str) -> str | None:
    m = re.search(rf'"{name}"\s*:\s*{_QUOTED}', text)
    return _unescape(m.group(1)) if m else None


def _fragments(text: str, label: str, exclude: tuple[int, int] | None = None) -> list[str]:
    """Record-like {...} fragments (no nested braces) that carry a labeled field."""
    pattern = re.compile(rf'\{{[^{{}}]*?"{label}"\s*:\s*"[^"]*"[^{{}}]*\}}')
    found = []
    for m in pattern.finditer(text):
        if exclude and m.start() < exclude[1] and m.end() > exclude[0]:
            continue
        found.append(m.group(0))
    return found


def _salvage_record(fragment: str, fields: dict[str, list[str]]) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for name in fields["text"]:
        value = _find_text(fragment, name)
        if value is not None:
            record[name] = value
    for name in fields["number"]:
        value = _find_number(fragment, name)
        if value is not None:
            record[name] = value
    return record


def _salvage_analysis(text: str) -> dict[str, Any]:
    data: dict[str, Any] = {}
    fragments = _fragments(text, "type")
    # top-level fields only; bets carry their own confidence
    scalars = text
    for fragment in fragments:
        scalars = scalars.replace(fragment, "")

    for name in ANALYSIS_NUMBER_FIELDS:
        value = _find_number(scalars, name)
        if value is not None:
            data[name] = value
    for name in ANALYSIS_TEXT_FIELDS:
        value = _find_text(scalars, name)
        if value is not None:
            data[name] = value
    bets = [_salvage_record(f, BET_FIELDS) for f in fragments]
    if bets:
        data["recommendedBets"] = bets
    return data


def _salvage_predictions(text: str) -> dict[str, Any]:
    data: dict[str, Any] = {}
    top = re.search(r'"topPick"\s*:\s*(\{[^{}]*\})', text)
    if top:
        data["topPick"] = _salvage_record(top.group(1), PREDICTION_FIELDS)
    exclude = top.span(1) if top else None
    predictions = [_salvage_record(f, PREDICTION_FIELDS) for f in _fragments(text, "betType", exclude)]
    if predictions:
        data["predictions"] = predictions
    for name in PREDICTIONS_TEXT_FIELDS:
        value = _find_text(text, name)
        if value is not None:
            data[name] = value
    return data


_SALVAGERS: dict[str, Callable[[str], dict[str, Any]]] = {
    "analysis": _salvage_analysis,
    "predictions": _salvage_predictions,
}


def salvage_fields(text: str, scope: str) -> BaseModel | None:
    data = _SALVAGERS[scope](text)
    if not data:
        return None
    return _validate(data, scope)


# ═══════════════ CASCADE ═══════════════

STRATEGIES: list[tuple[str, Strategy]] = [
    ("direct", extract_direct),
    ("syntax_repair", repair_syntax),
    ("string_repair", repair_strings),
    ("salvage", salvage_fields),
]


def parse_with_strategy(text: str, scope: str) -> tuple[BaseModel | ParseFailure, str]:
    """Run the cascade. Returns the result and the name of the strategy that produced it."""
    if not isinstance(text, str) or not text.strip():
        logger.warning("Parse | scope=%s | empty input — using defaults", scope)
        return USE_DEFAULTS, "defaults"

    for name, strategy in STRATEGIES:
        try:
            result = strategy(text, scope)
        except Exception as e:
            logger.warning("Parse | scope=%s | strategy=%s raised: %s", scope, name, str(e)[:200])
            continue
        if result is not None:
            log = logger.info if name == "direct" else logger.warning
            log("Parse OK | scope=%s | strategy=%s | chars=%d", scope, name, len(text))
            return result, name

    logger.warning("Parse FAILED | scope=%s | chars=%d — using defaults", scope, len(text))
    return USE_DEFAULTS, "defaults"


def parse(text: str, scope: str) -> BaseModel | ParseFailure:
    """Total parse: a typed result, or USE_DEFAULTS."""
    return parse_with_strategy(text, scope)[0]
