"""
Recipe generation orchestration on the client side.

RecipeService composes pantry, preferences and generation context into a
generate-recipes call, then post-processes the batch locally:
- staple ingredients are marked available
- match scores are recomputed from ingredient availability
- recipes are sorted (expiring-first when requested, then by score)
- thumbnails are fetched in parallel; a failed thumbnail only drops that image

The assistive calls (thumbnails, pantry scans, step questions) degrade to
None, [] or a canned answer instead of raising.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from plum.client.api_client import ApiClient, ApiError
from plum.config import ClientConfig
from plum.data.database import LocalStore
from plum.data.models import GenerationContext, PantryItem, Recipe, UserPreferences

logger = logging.getLogger(__name__)

DEFAULT_RECIPE_COUNT = 4
CHEF_DISCONNECTED = "Chef is disconnected."
INVALID_RESPONSE_MESSAGE = "Invalid response from server. Please try again."
NO_RECIPES_MESSAGE = (
    "No recipes generated. Try adjusting your filters or adding more items to your pantry."
)
THUMBNAIL_DATA_URL_PREFIX = "data:image/webp;base64,"

_DATA_URL_PREFIX_RE = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,")

SALTS = {"salt", "sea salt", "kosher salt", "table salt", "fine salt"}
PEPPERS = {"pepper", "black pepper", "ground black pepper", "white pepper"}
OILS = {"oil", "cooking oil", "vegetable oil", "canola oil", "olive oil"}
ICE = {"ice", "ice cubes", "tap water"}
WATER_LOOKALIKES = ("melon", "cress", "chestnut")


class RecipeGenerationError(Exception):
    """Raised when a generation batch cannot be produced."""
    pass


def is_basic_staple(name: str) -> bool:
    """
    Check whether an ingredient is assumed to be in every kitchen.

    Water counts unless it is part of watermelon, watercress or water
    chestnut. Salt, pepper and oil match a fixed list of exact names.
    """
    n = name.lower().strip()
    if "water" in n and not any(word in n for word in WATER_LOOKALIKES):
        return True
    return n in ICE or n in SALTS or n in PEPPERS or n in OILS


def compute_match_score(recipe: Recipe) -> int:
    """Percentage of ingredients available, 0 for an empty ingredient list."""
    total = len(recipe.ingredients)
    if total == 0:
        return 0
    # Half-up rounding: 62.5 -> 63
    return int(100 * recipe.available_count / total + 0.5)


def post_process_recipes(recipes: List[Recipe]) -> List[Recipe]:
    """Mark staple ingredients available and recompute match scores in place."""
    for recipe in recipes:
        for ingredient in recipe.ingredients:
            ingredient.is_available_in_pantry = (
                ingredient.is_available_in_pantry or is_basic_staple(ingredient.name)
            )
        recipe.match_score = compute_match_score(recipe)
    return recipes


def sort_recipes(recipes: List[Recipe], prioritize_expiring: bool = False) -> List[Recipe]:
    """
    Order recipes for display.

    With prioritize_expiring, recipes using expiring ingredients come first
    regardless of score. Ties keep their upstream order.
    """
    if prioritize_expiring:
        return sorted(
            recipes,
            key=lambda r: (not r.uses_expiring_ingredients, -r.match_score),
        )
    return sorted(recipes, key=lambda r: -r.match_score)


def _as_dict(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    return value.to_dict()


class RecipeService:
    """Client-side entry point for generation features."""

    def __init__(
        self,
        api: Optional[ApiClient] = None,
        answer_cache: Optional[LocalStore] = None,
        config: Optional[ClientConfig] = None,
    ):
        """
        Initialize the service.

        Args:
            api: HTTP client for the edge functions
            answer_cache: Store for ask-step answers; answers are not cached if None
            config: Endpoint paths (defaults to the ApiClient's config)
        """
        self.api = api or ApiClient(config)
        self.answer_cache = answer_cache
        self.config = config or self.api.config

    def _endpoint(self, name: str) -> str:
        return self.config.endpoints[name]

    async def generate_recipes(
        self,
        pantry: Sequence[Union[PantryItem, Dict[str, Any]]],
        preferences: Union[UserPreferences, Dict[str, Any], None],
        context: Union[GenerationContext, Dict[str, Any], None],
        existing_titles: Optional[List[str]] = None,
        count: int = DEFAULT_RECIPE_COUNT,
    ) -> List[Recipe]:
        """
        Generate, score, sort and illustrate a batch of recipes.

        Args:
            pantry: Pantry items; only name, quantity and unit are sent
            preferences: User preferences
            context: Generation context (meal type, time, cuisine, ...)
            existing_titles: Titles to avoid repeating
            count: Maximum number of recipes to return

        Returns:
            Recipes sorted for display, with thumbnails where they succeeded

        Raises:
            ApiError: If the generation call fails
            RecipeGenerationError: If the response is malformed or empty
        """
        context_dict = _as_dict(context)
        body = {
            "pantry": [
                item.to_request_dict() if isinstance(item, PantryItem)
                else {"name": item.get("name"), "quantity": item.get("quantity"), "unit": item.get("unit")}
                for item in pantry
            ],
            "preferences": _as_dict(preferences),
            "context": context_dict,
            "existingTitles": list(existing_titles or []),
            "count": count,
        }

        try:
            res = await self.api.post(self._endpoint("generate_recipes"), body)
        except ApiError as e:
            logger.error(f"Backend generation failed: status={e.status} code={e.code} message={e.message}")
            raise

        raw_recipes = res.get("recipes") if isinstance(res, dict) else None
        if not isinstance(raw_recipes, list):
            logger.error("Invalid response format from generate-recipes")
            raise RecipeGenerationError(INVALID_RESPONSE_MESSAGE)

        limited = raw_recipes[:count]
        if not limited:
            logger.warning("No recipes returned from API")
            raise RecipeGenerationError(NO_RECIPES_MESSAGE)

        recipes = []
        for raw in limited:
            try:
                recipes.append(Recipe.from_dict(raw))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed recipe: {e}")
        if not recipes:
            raise RecipeGenerationError(INVALID_RESPONSE_MESSAGE)

        post_process_recipes(recipes)
        recipes = sort_recipes(recipes, bool(context_dict.get("prioritizeExpiring")))

        await self._attach_thumbnails(recipes)

        logger.info(f"Generated {len(recipes)} recipes from {len(body['pantry'])} pantry items")
        return recipes

    async def _attach_thumbnails(self, recipes: List[Recipe]):
        """Fetch all thumbnails concurrently; each failure only affects its own recipe."""
        results = await asyncio.gather(
            *(
                self.generate_thumbnail(r.title, r.image_prompt or r.description)
                for r in recipes
            ),
            return_exceptions=True,
        )
        for recipe, result in zip(recipes, results):
            if isinstance(result, BaseException):
                logger.warning(f"Failed to generate thumbnail for {recipe.title}: {result}")
            elif result:
                recipe.generated_image = result

    async def generate_thumbnail(self, title: str, description: str) -> Optional[str]:
        """Generate a thumbnail data URL, or None on failure."""
        try:
            res = await self.api.post(
                self._endpoint("generate_thumbnail"),
                {"title": title, "description": description},
            )
        except ApiError as e:
            logger.error(f"Thumbnail generation failed: {e.message}")
            return None

        image = res.get("image") if isinstance(res, dict) else None
        if not image:
            return None
        if not image.startswith("data:"):
            return f"{THUMBNAIL_DATA_URL_PREFIX}{image}"
        return image

    async def identify_items_from_image(self, base64_image: str) -> List[Dict[str, Any]]:
        """Identify pantry items in a photo. Returns [] on failure."""
        clean = _DATA_URL_PREFIX_RE.sub("", base64_image)
        try:
            res = await self.api.post(self._endpoint("parse_pantry"), {"type": "image", "data": clean})
        except ApiError as e:
            logger.error(f"Backend image parse failed: {e.message}")
            return []
        return list(res.get("items") or []) if isinstance(res, dict) else []

    async def parse_pantry_natural_language(self, text: str) -> List[Dict[str, Any]]:
        """Parse typed or dictated pantry text. Returns [] on failure."""
        try:
            res = await self.api.post(self._endpoint("parse_pantry"), {"type": "text", "data": text})
        except ApiError as e:
            logger.error(f"Voice parse failed: {e.message}")
            return []
        return list(res.get("items") or []) if isinstance(res, dict) else []

    async def ask_ai_about_step(self, title: str, step: str, question: Optional[str] = None) -> str:
        """
        Answer a question about a recipe step, using the local cache first.

        Returns:
            The answer, or a fixed fallback if the service is unavailable
        """
        if self.answer_cache is not None:
            cached = self.answer_cache.get_cached_answer(title, step, question)
            if cached:
                logger.info(f"Ask step cache hit: {title}")
                return cached

        body = {"title": title, "step": step}
        if question:
            body["question"] = question

        try:
            res = await self.api.post(self._endpoint("ask_step"), body)
        except ApiError as e:
            logger.error(f"Ask step failed: {e.message}")
            return CHEF_DISCONNECTED

        answer = res.get("answer") if isinstance(res, dict) else None
        if not answer:
            return CHEF_DISCONNECTED

        if self.answer_cache is not None:
            self.answer_cache.set_cached_answer(title, step, answer, question)
        return answer
