"""
CORS policy for the edge services.

Production (an allow-list is configured): exact or wildcard-suffix matching.
Development (no allow-list): localhost, private network ranges, the native
app scheme and common tunnelling domains are echoed back.
"""

import re
from typing import Dict, List, Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, x-app-version"
ALLOW_METHODS = "POST, OPTIONS"
MAX_AGE = "86400"

DEV_FALLBACK_ORIGIN = "http://localhost:3000"

_PRIVATE_NETWORK_RE = re.compile(r"^https?://(192\.168\.|10\.|172\.(1[6-9]|2[0-9]|3[01])\.)")

NATIVE_APP_SCHEME = "capacitor://"

TUNNEL_SUFFIXES = (
    ".trycloudflare.com",
    ".loca.lt",
    ".ngrok-free.app",
    ".ngrok.io",
)


def _matches_allowed(origin: str, allowed: str) -> bool:
    if origin == allowed:
        return True
    if "*" not in allowed:
        return False
    # "*.plum.kitchen" or "https://*.plum.kitchen"
    prefix, _, suffix = allowed.partition("*")
    return origin.startswith(prefix) and origin.endswith(suffix) and len(origin) > len(prefix) + len(suffix)


def is_dev_origin(origin: Optional[str]) -> bool:
    if not origin:
        return False
    return bool(
        "localhost" in origin
        or "127.0.0.1" in origin
        or _PRIVATE_NETWORK_RE.match(origin)
        or origin.startswith(NATIVE_APP_SCHEME)
        or origin.endswith(TUNNEL_SUFFIXES)
    )


def get_cors_headers(origin: Optional[str], allowed_origins: Optional[List[str]] = None) -> Dict[str, str]:
    """
    Resolve CORS response headers for a request origin.

    Args:
        origin: Value of the request's Origin header, if any
        allowed_origins: Production allow-list; empty or None selects dev mode

    Returns:
        Header dict to attach to every response
    """
    if allowed_origins:
        is_allowed = bool(origin) and any(_matches_allowed(origin, a) for a in allowed_origins)
        allow_origin = origin if is_allowed else allowed_origins[0]
    else:
        allow_origin = origin if is_dev_origin(origin) else DEV_FALLBACK_ORIGIN

    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Max-Age": MAX_AGE,
    }


class CORSPolicyMiddleware(BaseHTTPMiddleware):
    """Answers preflight requests and attaches CORS headers to every response."""

    def __init__(self, app, allowed_origins: Optional[List[str]] = None):
        super().__init__(app)
        self.allowed_origins = allowed_origins or []

    async def dispatch(self, request: Request, call_next):
        headers = get_cors_headers(request.headers.get("origin"), self.allowed_origins)

        if request.method == "OPTIONS":
            return PlainTextResponse("ok", status_code=200, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
