"""
FastAPI dependency management for the edge services.
"""

import logging
from functools import lru_cache
from typing import Optional, Type, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel, ValidationError

from plum.api.exceptions import InvalidRequestError, ProviderError, RateLimitExceededError
from plum.config import EdgeSettings
from plum.image_provider import ImageProvider, require_image_provider
from plum.llm_provider import LLMProvider, require_llm_provider
from plum.security import RateLimiter, RateLimitResult, get_user_id

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Singleton instances
_rate_limiter = RateLimiter()
_llm_provider: Optional[LLMProvider] = None
_image_provider: Optional[ImageProvider] = None


@lru_cache()
def get_settings() -> EdgeSettings:
    return EdgeSettings.from_env()


def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter shared by all endpoints."""
    return _rate_limiter


def get_llm_provider() -> LLMProvider:
    """LLM provider singleton. A missing key fails the request, not startup."""
    global _llm_provider

    if _llm_provider is None:
        settings = get_settings()
        try:
            _llm_provider = require_llm_provider(settings.gemini_api_key, settings.gemini_model)
        except ValueError as e:
            logger.error(f"LLM provider unavailable: {e}")
            raise ProviderError(
                "Service temporarily unavailable. Please try again.", code="SERVICE_UNAVAILABLE"
            )

    return _llm_provider


def get_image_provider() -> ImageProvider:
    """Image provider singleton."""
    global _image_provider

    if _image_provider is None:
        try:
            _image_provider = require_image_provider(get_settings().runware_api_key)
        except ValueError as e:
            logger.error(f"Image provider unavailable: {e}")
            raise ProviderError(
                "Service temporarily unavailable. Please try again.", code="SERVICE_UNAVAILABLE"
            )

    return _image_provider


def rate_limit(endpoint: str, max_requests: int):
    """
    Build a dependency enforcing a per-endpoint request cap.

    Buckets are keyed by endpoint and the coarse identity from get_user_id().
    """
    def dependency(
        request: Request,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> RateLimitResult:
        result = limiter.check(f"{endpoint}:{get_user_id(request)}", max_requests)
        if not result.allowed:
            raise RateLimitExceededError()
        return result

    return dependency


async def parse_body(request: Request, model: Type[ModelT]) -> ModelT:
    """Read and validate a JSON body, mapping failures to 400 responses."""
    try:
        payload = await request.json()
    except ValueError:
        raise InvalidRequestError("Invalid JSON body", code="INVALID_JSON")

    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    try:
        return model.model_validate(payload)
    except ValidationError:
        raise InvalidRequestError("Invalid request body")
