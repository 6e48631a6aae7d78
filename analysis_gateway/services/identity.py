"""Caller identity and resource key derivation — pure functions, no state."""

import hashlib
from typing import Any

from fastapi import Request

from analysis_gateway.config import settings
from analysis_gateway.errors import InvalidRequestError
from analysis_gateway.orchestrator.schemas import GatewayRequest


def _trusted_proxy(peer: str | None) -> bool:
    hosts = settings.proxy_hosts
    return "*" in hosts or (peer is not None and peer in hosts)


def client_ip(request: Request) -> str:
    """Client address. Proxy headers count only when the peer is a trusted proxy."""
    peer = request.client.host if request.client else None
    if _trusted_proxy(peer):
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if forwarded:
            return forwarded
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip
    return peer or "unknown"


def caller_identity(ip: str) -> str:
    """Stable, coarse identity for quota purposes. The raw address is never stored."""
    return hashlib.sha256(ip.encode()).hexdigest()


def normalize_locale(value: Any) -> str:
    if isinstance(value, str):
        loc = value.strip().lower().replace("_", "-").split("-")[0]
        if loc in settings.locales:
            return loc
    return settings.default_locale


def resource_key(body: Any) -> GatewayRequest:
    """Validate an inbound body and extract (fixture id, locale, tier, match context)."""
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object.")

    raw_id = body.get("fixtureId", body.get("fixture_id"))
    # bool is an int subclass; "true" is not a fixture id
    if isinstance(raw_id, bool) or raw_id is None:
        raise InvalidRequestError("fixtureId and matchData are required")
    try:
        resource_id = int(raw_id)
    except (TypeError, ValueError):
        raise InvalidRequestError("fixtureId must be an integer", details=str(raw_id)[:50])
    if isinstance(raw_id, float) and not raw_id.is_integer():
        raise InvalidRequestError("fixtureId must be an integer", details=str(raw_id)[:50])

    payload = body.get("matchData", body.get("match_data"))
    if not isinstance(payload, dict) or not payload:
        raise InvalidRequestError("fixtureId and matchData are required")

    return GatewayRequest(
        resource_id=resource_id,
        variant=normalize_locale(body.get("language", body.get("locale"))),
        is_pro=bool(body.get("isPro", body.get("is_pro", False))),
        payload=payload,
    )
