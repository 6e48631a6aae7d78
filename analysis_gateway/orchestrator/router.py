"""Orchestrator — runs one analysis request through the gateway.

Per request:
  START → QUOTA_CHECK → REJECTED
                      → CACHE_CHECK → CACHE_HIT → RESPOND
                                    → CACHE_MISS → INVOKE → PARSE → ENRICH → CACHE_WRITE → RESPOND

  - Quota is charged per distinct fixture, cache hits included
  - An upstream failure is never cached and never turned into a default result
  - Parsing and enrichment cannot fail, so a successful upstream call always
    ends in a cache write and a result
"""

import logging
from datetime import date, datetime
from typing import Any, Callable

from analysis_gateway.config import settings
from analysis_gateway.errors import QuotaUnavailableError, UpstreamError
from analysis_gateway.orchestrator.schemas import (
    GatewayResponse,
    OkResponse,
    ThrottledResponse,
    UpstreamErrorResponse,
)
from analysis_gateway.services.enricher import enrich
from analysis_gateway.services.identity import normalize_locale
from analysis_gateway.services.llm_client import Invoker, call_model
from analysis_gateway.services.prompt_builder import PromptBuilder, build_prompt
from analysis_gateway.services.quota import QuotaLedger, utcnow
from analysis_gateway.services.response_parser import parse_with_strategy
from analysis_gateway.services.result_cache import ResultCache

logger = logging.getLogger(__name__)

MESSAGES = {
    "en": {
        "daily_limit_reached": "Daily analysis limit reached ({limit} different matches/day). Try again tomorrow.",
        "quota_unavailable": "The analysis quota service is temporarily unavailable. Please try again shortly.",
        "upstream_failure": "The AI analysis could not be generated. Please try again later.",
    },
    "tr": {
        "daily_limit_reached": "Günlük analiz limitinize ulaştınız ({limit} farklı maç/gün). Yarın tekrar deneyin.",
        "quota_unavailable": "Analiz kota servisi geçici olarak kullanılamıyor. Lütfen biraz sonra tekrar deneyin.",
        "upstream_failure": "AI analizi oluşturulamadı. Lütfen daha sonra tekrar deneyin.",
    },
}


def _message(kind: str, variant: str, **kwargs: Any) -> str:
    texts = MESSAGES.get(variant, MESSAGES["en"])
    return texts[kind].format(**kwargs)


def default_invoker() -> Invoker:
    if settings.is_demo_mode:
        from analysis_gateway.orchestrator.demo_data import demo_invoker
        return demo_invoker
    return call_model


def _source_date(payload: dict[str, Any]) -> date | None:
    """Business date of the fixture, from matchData.date (YYYY-MM-DD...)."""
    raw = payload.get("date")
    if not isinstance(raw, str):
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


class AnalysisGateway:
    """Quota check → cache → upstream → parse → enrich → cache write."""

    def __init__(
        self,
        ledger: QuotaLedger | None = None,
        cache: ResultCache | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger or QuotaLedger(clock=clock)
        self.cache = cache or ResultCache(clock=clock)
        self._clock = clock

    async def handle(
        self,
        identity: str,
        resource_id: int,
        scope: str,
        variant: str,
        daily_limit: int,
        payload: dict[str, Any],
        prompt_builder: PromptBuilder = build_prompt,
        invoker: Invoker | None = None,
    ) -> GatewayResponse:
        variant = normalize_locale(variant)
        logger.info("Gateway | scope=%s | resource=%d | variant=%s | limit=%d", scope, resource_id, variant, daily_limit)

        # QUOTA_CHECK
        try:
            decision = await self.ledger.check_and_admit(identity, resource_id, scope, daily_limit)
        except QuotaUnavailableError:
            return ThrottledResponse(
                message=_message("quota_unavailable", variant),
                dailyLimit=daily_limit,
                reason="quota_unavailable",
            )

        if not decision.admitted:
            return ThrottledResponse(
                message=_message("daily_limit_reached", variant, limit=daily_limit),
                resetsAt=decision.resets_at,
                dailyLimit=daily_limit,
            )

        # CACHE_CHECK
        cached = await self.cache.get(resource_id, scope, variant)
        if cached is not None:
            return OkResponse(
                result=cached,
                remaining=decision.remaining,
                dailyLimit=daily_limit,
                cached=True,
            )

        # INVOKE
        prompt = prompt_builder(scope, payload, variant)
        invoker = invoker or default_invoker()
        try:
            raw = await invoker(prompt, settings.max_tokens(scope))
        except UpstreamError as e:
            logger.error("Gateway | upstream failed | resource=%d | %s", resource_id, e.message)
            return UpstreamErrorResponse(
                message=_message("upstream_failure", variant),
                details=e.details or e.message,
            )
        except Exception as e:
            logger.error("Gateway | upstream failed | resource=%d | %s", resource_id, str(e)[:300])
            return UpstreamErrorResponse(
                message=_message("upstream_failure", variant),
                details=str(e)[:300] or type(e).__name__,
            )

        # PARSE → ENRICH
        parsed, strategy = parse_with_strategy(raw, scope)
        result = enrich(parsed, scope, variant, generated_at=self._clock())

        # CACHE_WRITE
        await self.cache.put(
            resource_id, scope, variant, result,
            ttl=settings.cache_ttl(scope),
            source_date=_source_date(payload),
        )

        logger.info("Gateway OK | scope=%s | resource=%d | strategy=%s", scope, resource_id, strategy)
        return OkResponse(
            result=result,
            remaining=decision.remaining,
            dailyLimit=daily_limit,
            strategy=strategy,
        )
