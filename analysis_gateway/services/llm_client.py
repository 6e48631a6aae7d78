"""Async Anthropic API wrapper — the gateway's upstream invoker.

Every failure mode (hard timeout, API status error, connection error, empty
content) is raised as UpstreamError so the orchestrator has exactly one
failure branch after the call.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

import anthropic
import httpx

from analysis_gateway.config import settings
from analysis_gateway.errors import UpstreamError

logger = logging.getLogger(__name__)

Invoker = Callable[[str, int], Awaitable[str]]

# Singleton client, initialized lazily
_client: anthropic.AsyncAnthropic | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        _client = anthropic.AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=httpx.Timeout(settings.llm_timeout_seconds, connect=10.0),
            max_retries=0,
        )
    return _client


async def call_model(prompt: str, max_tokens: int = 3000) -> str:
    """Call the configured Claude model and return raw text."""
    model = settings.anthropic_model
    client = _get_client()
    max_attempts = settings.llm_max_retries + 1
    hard_timeout = settings.llm_timeout_seconds

    for attempt in range(1, max_attempts + 1):
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=hard_timeout,
            )
        except asyncio.TimeoutError:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning(
                "LLM timeout | model=%s | %dms (hard limit %ds) — no retry",
                model, elapsed_ms, hard_timeout,
            )
            raise UpstreamError("Model request timed out", details=f"{elapsed_ms}ms")

        except anthropic.APIStatusError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning(
                "LLM error | model=%s | status=%d | attempt=%d/%d | %dms | %s",
                model, e.status_code, attempt, max_attempts,
                elapsed_ms, str(e)[:200],
            )
            if e.status_code in (429, 500, 502, 503, 529) and attempt < max_attempts:
                continue
            raise UpstreamError("Model API error", details=str(e)[:300], status_code=e.status_code) from e

        except (anthropic.APITimeoutError, anthropic.APIConnectionError) as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning(
                "LLM connection error | model=%s | attempt=%d/%d | %dms",
                model, attempt, max_attempts, elapsed_ms,
            )
            if attempt < max_attempts:
                continue
            raise UpstreamError("Model API unreachable", details=str(e)[:300]) from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = response.usage
        logger.info(
            "LLM OK | model=%s | tokens_in=%d tokens_out=%d | %dms",
            model, usage.input_tokens, usage.output_tokens, elapsed_ms,
        )
        if not text.strip():
            raise UpstreamError("Model returned empty content")
        return text

    raise UpstreamError("Model call failed after all retries")
