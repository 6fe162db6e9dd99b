"""
generate-thumbnail edge route.

Builds a food-photography prompt, runs image generation, and returns the
image re-encoded as base64 so clients never handle provider URLs.
"""

import base64
import logging

from fastapi import APIRouter, Depends, Request

from plum.api.dependencies import get_image_provider, parse_body, rate_limit
from plum.api.exceptions import InvalidRequestError, ProviderError
from plum.api.prompts import THUMBNAIL_NEGATIVE_PROMPT, build_thumbnail_prompt
from plum.api.schemas import ThumbnailRequest
from plum.image_provider import ImageProvider
from plum.security import sanitize_input, validate_length

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_REQUESTS_PER_MINUTE = 30


@router.post(
    "/generate-thumbnail",
    dependencies=[Depends(rate_limit("generate-thumbnail", MAX_REQUESTS_PER_MINUTE))],
)
async def generate_thumbnail(
    request: Request,
    images: ImageProvider = Depends(get_image_provider),
):
    """
    Generate a recipe thumbnail.

    Request body: {"title": str, "description"?: str}
    Returns: {"image": <base64 WEBP>}
    """
    body = await parse_body(request, ThumbnailRequest)

    if not body.title:
        raise InvalidRequestError("Title is required")

    title = sanitize_input(body.title, 200)
    description = sanitize_input(body.description, 500) if body.description else ""

    if not validate_length(title, 1, 200):
        raise InvalidRequestError("Invalid title length")

    try:
        image_bytes = await images.generate_image(
            build_thumbnail_prompt(title, description), THUMBNAIL_NEGATIVE_PROMPT
        )
    except Exception as e:
        logger.exception(f"Thumbnail generation error: {type(e).__name__}")
        raise ProviderError("Failed to generate thumbnail. Please try again.", code="GENERATION_ERROR")

    return {"image": base64.b64encode(image_bytes).decode("ascii")}
