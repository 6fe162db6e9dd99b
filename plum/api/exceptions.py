"""
Edge error taxonomy.

Every error leaves the edge as {"error": <message>, "code": <code>}; provider
and parsing failures carry a generic message, never upstream detail.
"""

from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class EdgeError(Exception):
    """Base class for errors rendered as structured JSON responses."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.headers = headers or {}


class InvalidRequestError(EdgeError):
    status_code = 400
    code = "INVALID_REQUEST"


class PayloadTooLargeError(EdgeError):
    status_code = 400
    code = "PAYLOAD_TOO_LARGE"


class RateLimitExceededError(EdgeError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self):
        super().__init__(
            "Rate limit exceeded. Please try again in a minute.",
            headers={"Retry-After": "60"},
        )


class ProviderError(EdgeError):
    """AI provider or output-parsing failure. The message is always generic."""
    status_code = 500
    code = "GENERATION_ERROR"


async def edge_error_handler(request: Request, exc: EdgeError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
        headers=exc.headers,
    )
