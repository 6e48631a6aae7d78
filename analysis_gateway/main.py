"""Football Analysis Gateway — FastAPI application entry point.

Provides /api/analysis and /api/predictions for the mobile client, plus
cache-first reads of the reference data kept fresh by the sync job.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from analysis_gateway.config import settings
from analysis_gateway.errors import InvalidRequestError
from analysis_gateway.orchestrator.router import AnalysisGateway
from analysis_gateway.orchestrator.schemas import SCOPES, OkResponse, ThrottledResponse
from analysis_gateway.services.identity import caller_identity, client_ip, resource_key
from analysis_gateway.services.reference_data import reference_data

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("analysis_gateway")

gateway = AnalysisGateway()


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Gateway starting | demo_mode=%s", settings.is_demo_mode)

    # Quota ledger + result cache (quota fails closed, cache fails open without it)
    from analysis_gateway.database import close_db, init_db
    db_ok = await init_db()
    logger.info("Database: %s", "connected" if db_ok else "unavailable")

    # Reference data (graceful degradation if unavailable)
    redis_ok = await reference_data.connect()
    logger.info("Redis: %s", "connected" if redis_ok else "unavailable (using in-memory fallback)")

    yield

    await reference_data.disconnect()
    await close_db()
    logger.info("Gateway shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="Football Analysis Gateway",
    description="Quota-limited, cached AI match analysis",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["Content-Type", "Authorization"],
)


# ═══════════════ ENDPOINTS ═══════════════

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "demo_mode": settings.is_demo_mode,
        "has_anthropic": settings.has_anthropic_key,
    }


@app.post("/api/{scope}")
async def analyze(scope: str, request: Request):
    """Analysis / predictions endpoint for one fixture."""
    if scope not in SCOPES:
        return JSONResponse(status_code=404, content={"error": "unknown_scope", "message": scope})

    ip = client_ip(request)

    # Parse request
    try:
        body = await request.json()
    except Exception:
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_request", "message": "Request body must be valid JSON."},
        )

    try:
        req = resource_key(body)
    except InvalidRequestError as e:
        return JSONResponse(status_code=400, content={"error": e.code, "message": e.message})

    start = time.monotonic()
    try:
        resp = await gateway.handle(
            identity=caller_identity(ip),
            resource_id=req.resource_id,
            scope=scope,
            variant=req.variant,
            daily_limit=settings.daily_limit(req.is_pro),
            payload=req.payload,
        )
    except Exception as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.error("Gateway failed | scope=%s | %dms | %s", scope, elapsed_ms, str(e)[:300])
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "Analysis failed. Please try again later."},
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        "Request done | scope=%s | kind=%s | fixture=%d | %dms | ip=%s",
        scope, resp.kind, req.resource_id, elapsed_ms, ip,
    )

    if isinstance(resp, OkResponse):
        content = dict(resp.result)
        content["_gateway"] = {
            "remaining": resp.remaining,
            "dailyLimit": resp.dailyLimit,
            "cached": resp.cached,
            "strategy": resp.strategy,
            "ms": elapsed_ms,
        }
        return JSONResponse(content=content)

    content = resp.model_dump(mode="json", exclude={"kind", "errorKind"})
    content["error"] = resp.errorKind
    if isinstance(resp, ThrottledResponse):
        status = 503 if resp.reason == "quota_unavailable" else 429
    else:
        status = 502
    return JSONResponse(status_code=status, content=content)


@app.get("/api/fixtures/{day}")
async def fixtures(day: date):
    """Fixtures for one day, as last written by the sync job."""
    snapshot = await reference_data.get("fixtures", day.isoformat())
    if snapshot is None:
        return JSONResponse(status_code=404, content={"error": "not_synced", "message": day.isoformat()})
    return snapshot.to_dict()


@app.get("/api/standings/{league_id}/{season}")
async def standings(league_id: int, season: int):
    """League table for one season, as last written by the sync job."""
    snapshot = await reference_data.get("standings", league_id, season)
    if snapshot is None:
        return JSONResponse(status_code=404, content={"error": "not_synced", "message": f"{league_id}/{season}"})
    return snapshot.to_dict()
