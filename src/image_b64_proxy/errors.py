"""
Request-level failures and the fixed bodies returned to callers.
"""
from __future__ import annotations


class ProxyError(Exception):
    """Base class for failures that end a request with a non-200 status."""

    status_code: int = 500
    message: str = "Internal error"

    def to_body(self) -> dict[str, str]:
        return {"error": self.message}


class RequestMalformed(ProxyError):
    status_code = 400
    message = "Invalid JSON"


class UpstreamError(ProxyError):
    """The upstream generation call did not yield a usable result."""


class UpstreamUnavailable(UpstreamError):
    status_code = 502
    message = "Upstream service unavailable"


class UpstreamMalformed(UpstreamError):
    """Upstream answered, but its body did not decode into a generation result.

    The raw body is kept for diagnostics only and is never sent to the caller.
    """

    status_code = 500
    message = "Invalid upstream response"

    def __init__(self, detail: str, body: str = "") -> None:
        super().__init__(detail)
        self.body = body
