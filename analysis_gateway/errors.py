"""Typed errors raised inside the gateway.

Every error here is converted into a structured response at the HTTP or
orchestrator boundary; none of them is meant to reach the client as a 500.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for gateway errors."""

    code = "gateway_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class InvalidRequestError(GatewayError):
    """The inbound body is missing a fixture id or match context."""

    code = "invalid_request"


class QuotaUnavailableError(GatewayError):
    """The quota store could not be read or written. Callers must fail closed."""

    code = "quota_unavailable"


class UpstreamError(GatewayError):
    """The generative backend timed out, errored, or returned no content."""

    code = "upstream_failure"

    def __init__(self, message: str, details: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, details)
        self.status_code = status_code
