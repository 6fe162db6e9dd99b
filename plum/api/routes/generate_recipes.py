"""
generate-recipes edge route.

Turns a pantry, preferences and generation context into a batch of
schema-constrained recipes.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from plum.api.dependencies import get_llm_provider, parse_body, rate_limit
from plum.api.exceptions import InvalidRequestError, PayloadTooLargeError, ProviderError
from plum.api.prompts import RECIPE_SYSTEM_INSTRUCTION, build_recipe_prompt
from plum.api.schemas import GenerateRecipesRequest, RecipeOut, recipe_response_schema
from plum.llm_provider import LLMProvider
from plum.security import RateLimitResult, sanitize_input, sanitize_object

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_REQUESTS_PER_MINUTE = 10
MAX_PANTRY_ITEMS = 100
MAX_EXISTING_TITLES = 50
DEFAULT_RECIPE_COUNT = 4
MAX_RECIPE_COUNT = 10


def clamp_recipe_count(count: Any) -> int:
    """Parse the requested count and clamp it to [1, 10]."""
    try:
        value = int(count)
    except (TypeError, ValueError):
        value = DEFAULT_RECIPE_COUNT
    return min(max(1, value), MAX_RECIPE_COUNT)


def shape_recipes(raw: Any, recipe_count: int) -> List[Dict[str, Any]]:
    """
    Validate provider output and keep at most recipe_count recipes.

    The response schema already fixes the array length; this is the second
    line of defense against a provider that ignores it. Individual malformed
    recipes are dropped.

    Raises:
        ValueError: If the output has no recipes array at all
    """
    candidates = raw.get("recipes") if isinstance(raw, dict) else None
    if not isinstance(candidates, list):
        raise ValueError("Provider output has no recipes array")

    shaped = []
    for item in candidates:
        if len(shaped) >= recipe_count:
            break
        try:
            shaped.append(RecipeOut.model_validate(item).model_dump(exclude_none=True))
        except ValidationError as e:
            logger.warning(f"Dropping malformed recipe from provider output ({e.error_count()} errors)")
    return shaped


@router.post("/generate-recipes")
async def generate_recipes(
    request: Request,
    limit: RateLimitResult = Depends(rate_limit("generate-recipes", MAX_REQUESTS_PER_MINUTE)),
    llm: LLMProvider = Depends(get_llm_provider),
):
    """
    Generate recipes from the user's pantry.

    Returns:
        {"recipes": [...]} with X-RateLimit-Remaining / X-RateLimit-Reset headers
    """
    body = await parse_body(request, GenerateRecipesRequest)

    if not body.pantry:
        raise InvalidRequestError("Pantry inventory is required")

    pantry = sanitize_object(body.pantry)
    preferences = sanitize_object(body.preferences or {}) or {}
    context = sanitize_object(body.context or {}) or {}
    existing_titles = [
        title
        for title in (sanitize_input(t, 200) for t in body.existingTitles or [])
        if title
    ]

    if len(pantry) > MAX_PANTRY_ITEMS or len(existing_titles) > MAX_EXISTING_TITLES:
        raise PayloadTooLargeError("Input too large")

    recipe_count = clamp_recipe_count(body.count)
    prompt = build_recipe_prompt(pantry, preferences, context, existing_titles, recipe_count)

    try:
        raw = await llm.generate_json(
            RECIPE_SYSTEM_INSTRUCTION, prompt, recipe_response_schema(recipe_count)
        )
        recipes = shape_recipes(raw, recipe_count)
    except Exception as e:
        logger.exception(f"Generate recipes error: {type(e).__name__}")
        raise ProviderError("Failed to generate recipes. Please try again.", code="GENERATION_ERROR")

    logger.info(f"Generated {len(recipes)}/{recipe_count} recipes for {len(pantry)} pantry items")

    return JSONResponse(
        content={"recipes": recipes},
        headers={
            "X-RateLimit-Remaining": str(limit.remaining),
            "X-RateLimit-Reset": str(int(limit.reset_at)),
        },
    )
