"""Demo-mode upstream — canned model replies used when no Anthropic key is set.

The replies are deliberately wrapped in prose and fences, the way the real
model often answers, so demo traffic runs the full parse/enrich path.
"""

import asyncio

DEMO_ANALYSIS = """Here is my analysis:
```json
{
  "homeWinProb": 48,
  "drawProb": 27,
  "awayWinProb": 25,
  "confidence": 7,
  "expectedGoals": 2.7,
  "expectedHomeGoals": 1.6,
  "expectedAwayGoals": 1.1,
  "bttsProb": 54,
  "over15Prob": 76,
  "over25Prob": 55,
  "over35Prob": 29,
  "mostLikelyScore": "2-1",
  "scoreProb": 11,
  "alternativeScores": [
    {"score": "1-0", "prob": 10},
    {"score": "1-1", "prob": 10},
    {"score": "2-0", "prob": 8}
  ],
  "riskLevel": "medium",
  "bankoScore": 62,
  "volatility": 0.4,
  "winner": "home",
  "advice": "Demo analysis: the home side has the stronger recent form.",
  "factors": [
    {"category": "form", "text": "Home side unbeaten in five.", "impact": "positive", "weight": 0.35}
  ],
  "recommendedBets": [
    {"type": "1.5U", "confidence": 74, "risk": "low", "reasoning": "Both sides score regularly."},
    {"type": "MS1", "confidence": 52, "risk": "medium", "reasoning": "Home advantage and form."}
  ]
}
```"""

DEMO_PREDICTIONS = """{
  "predictions": [
    {"betType": "1.5U", "betName": "Over 1.5", "category": "goals", "selection": "Over 1.5",
     "confidence": 74, "risk": "low", "reasoning": "Demo prediction."},
    {"betType": "KGV", "betName": "Both Teams To Score - Yes", "category": "goals", "selection": "BTTS Yes",
     "confidence": 55, "risk": "medium", "reasoning": "Demo prediction."},
  ],
  "topPick": {"betType": "1.5U", "betName": "Over 1.5", "confidence": 74, "reasoning": "Demo pick."},
  "summary": "Demo predictions generated without a model key.",
  "riskWarning": ""
}"""


async def demo_invoker(prompt: str, max_tokens: int = 0) -> str:
    """Stand-in for llm_client.call_model in demo mode."""
    await asyncio.sleep(0)
    if '"betType"' in prompt:
        return DEMO_PREDICTIONS
    return DEMO_ANALYSIS
