"""
Security utilities shared by the edge services.

Protects prompt construction against injection and oversized payloads, and
provides the fixed-window rate limiter used by every endpoint.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_MS = 60 * 1000

MAX_OBJECT_KEYS = 100
MAX_LEAF_LENGTH = 2000

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(previous|above|all)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
    re.compile(r"system\s*:\s*(you\s+are|act\s+as|pretend)", re.IGNORECASE),
    re.compile(r"\[INST\]|\[/INST\]|<<SYS>>|<</SYS>>", re.IGNORECASE),
    re.compile(r"(roleplay|jailbreak|bypass|override)", re.IGNORECASE),
]

COOKING_KEYWORDS = [
    "recipe", "cook", "ingredient", "food", "meal", "dish", "kitchen",
    "bake", "fry", "boil", "grill", "roast", "steam", "sauté",
    "pantry", "spice", "herb", "sauce", "dressing", "marinade",
    "breakfast", "lunch", "dinner", "snack", "appetizer", "dessert",
    "chicken", "beef", "pork", "fish", "vegetable", "fruit", "dairy",
    "flour", "sugar", "salt", "pepper", "oil", "butter", "cheese",
]


def _strip_injection_patterns(text: str) -> str:
    # Removing one match can splice together a new one ("jailjailbreakbreak"),
    # so repeat until nothing changes.
    while True:
        stripped = text
        for pattern in INJECTION_PATTERNS:
            stripped = pattern.sub("", stripped)
        if stripped == text:
            return stripped
        text = stripped


def sanitize_input(text: Any, max_length: int = 1000) -> str:
    """
    Sanitize user text before it is embedded in a model prompt.

    Truncates to max_length, strips tags and control characters (newline and
    tab are kept), removes known prompt-injection phrasing, and trims.
    Idempotent: sanitize_input(sanitize_input(s)) == sanitize_input(s).

    Args:
        text: User-supplied text; non-strings sanitize to ""
        max_length: Maximum number of characters kept

    Returns:
        Sanitized text
    """
    if not text or not isinstance(text, str):
        return ""

    sanitized = text[:max_length]
    sanitized = _TAG_RE.sub("", sanitized)
    sanitized = _CONTROL_CHARS_RE.sub("", sanitized)
    sanitized = _strip_injection_patterns(sanitized)
    return sanitized.strip()


def sanitize_object(value: Any, max_depth: int = 5, current_depth: int = 0) -> Any:
    """
    Recursively sanitize every string leaf of a JSON value.

    Strings are capped at 2000 characters, objects keep at most 100 keys, and
    anything nested deeper than max_depth collapses to None.
    """
    if current_depth > max_depth:
        return None

    if value is None:
        return None

    if isinstance(value, str):
        return sanitize_input(value, MAX_LEAF_LENGTH)

    if isinstance(value, list):
        return [sanitize_object(item, max_depth, current_depth + 1) for item in value]

    if isinstance(value, dict):
        sanitized = {}
        for key, item in value.items():
            if len(sanitized) >= MAX_OBJECT_KEYS:
                break
            sanitized[key] = sanitize_object(item, max_depth, current_depth + 1)
        return sanitized

    return value


def is_cooking_related(text: str) -> bool:
    """Keyword heuristic: does the text mention anything food related?"""
    if not text or len(text) < 3:
        return False

    lower = text.lower()
    return any(keyword in lower for keyword in COOKING_KEYWORDS)


def escape_xml(text: str) -> str:
    """Escape the five XML special characters."""
    if not text:
        return ""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def validate_length(text: Optional[str], min_length: int = 1, max_length: int = 1000) -> bool:
    """Inclusive length check. Empty input is valid only when min_length is 0."""
    if not text:
        return min_length == 0
    return min_length <= len(text) <= max_length


def get_user_id(request) -> str:
    """
    Derive a rate-limit bucket key from request headers.

    Uses the first dot-delimited segment of the bearer token, then the
    x-client-info header, then "anonymous". The token is NOT verified: this
    key is for throttling only and must never be used for authorization.
    """
    auth_header = request.headers.get("authorization")
    if auth_header:
        token = auth_header
        if token.lower().startswith("bearer "):
            token = token[len("bearer "):]
        first_segment = token.strip().split(".")[0]
        if first_segment:
            return first_segment

    return request.headers.get("x-client-info") or "anonymous"


# --- Rate limiting ---

@dataclass
class RateLimitEntry:
    count: int
    reset_at: float  # Epoch milliseconds


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # Epoch milliseconds


class RateLimitStore(ABC):
    """Storage backend for rate-limit counters."""

    @abstractmethod
    def get(self, key: str) -> Optional[RateLimitEntry]:
        pass

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        pass


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local counter storage.

    Limitations:
    - Single process only: replicas each keep their own counters
    - Counters lost on restart
    """

    def __init__(self):
        self._entries: Dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    def clear(self) -> None:
        self._entries.clear()


def _now_ms() -> float:
    return time.time() * 1000


class RateLimiter:
    """
    Fixed-window request limiter.

    The first request in a window (or the first after it expires) resets the
    count to 1. Later requests are allowed while the count is below the cap.
    Concurrent read-modify-write on one replica may let a few extra requests
    through; the limiter is an abuse deterrent, not a security boundary.
    """

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = _now_ms,
    ):
        self.store = store or InMemoryRateLimitStore()
        self.clock = clock

    def check(
        self,
        identity_key: str,
        max_requests: int = 10,
        window_ms: float = RATE_LIMIT_WINDOW_MS,
    ) -> RateLimitResult:
        now = self.clock()
        entry = self.store.get(identity_key)

        if entry is None or now > entry.reset_at:
            entry = RateLimitEntry(count=1, reset_at=now + window_ms)
            self.store.set(identity_key, entry)
            return RateLimitResult(allowed=True, remaining=max_requests - 1, reset_at=entry.reset_at)

        if entry.count >= max_requests:
            logger.info(f"Rate limit reached for bucket {identity_key[:24]}")
            return RateLimitResult(allowed=False, remaining=0, reset_at=entry.reset_at)

        entry.count += 1
        self.store.set(identity_key, entry)
        return RateLimitResult(
            allowed=True, remaining=max_requests - entry.count, reset_at=entry.reset_at
        )


_default_limiter = RateLimiter()


def check_rate_limit(
    identity_key: str,
    max_requests: int = 10,
    window_ms: float = RATE_LIMIT_WINDOW_MS,
) -> RateLimitResult:
    """Check the process-wide default limiter."""
    return _default_limiter.check(identity_key, max_requests, window_ms)
