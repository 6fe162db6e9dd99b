"""
parse-pantry edge route.

Identifies pantry items from a photo (base64) or free text (typed or
dictated) and returns them in the closed unit/category vocabulary.
"""

import base64
import binascii
import logging
from datetime import date
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from plum.api.dependencies import get_llm_provider, parse_body, rate_limit
from plum.api.exceptions import InvalidRequestError, PayloadTooLargeError, ProviderError
from plum.api.prompts import (
    PANTRY_SYSTEM_INSTRUCTION,
    build_pantry_image_prompt,
    build_pantry_text_prompt,
)
from plum.api.schemas import PANTRY_SCAN_SCHEMA, PantryItemOut, ParsePantryRequest
from plum.llm_provider import LLMProvider
from plum.security import sanitize_input, validate_length

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_REQUESTS_PER_MINUTE = 20
MAX_IMAGE_BASE64_LENGTH = 10 * 1024 * 1024  # 10MB
MAX_TEXT_LENGTH = 5000


def shape_items(raw: Any) -> List[Dict[str, Any]]:
    """Validate identified items, dropping any outside the unit/category vocabulary."""
    candidates = raw.get("items") if isinstance(raw, dict) else None
    if not isinstance(candidates, list):
        raise ValueError("Provider output has no items array")

    items = []
    for item in candidates:
        try:
            items.append(PantryItemOut.model_validate(item).model_dump(exclude_none=True))
        except ValidationError:
            logger.warning("Dropping invalid pantry item from provider output")
    return items


@router.post(
    "/parse-pantry",
    dependencies=[Depends(rate_limit("parse-pantry", MAX_REQUESTS_PER_MINUTE))],
)
async def parse_pantry(
    request: Request,
    llm: LLMProvider = Depends(get_llm_provider),
):
    """
    Parse pantry items from an image or text.

    Request body: {"type": "image" | "text", "data": <base64 or text>}
    Returns: {"items": [{name, quantity, unit, category, expiryDate?}, ...]}
    """
    body = await parse_body(request, ParsePantryRequest)

    if body.type not in ("image", "text"):
        raise InvalidRequestError('Invalid type. Must be "image" or "text".')

    if not body.data:
        raise InvalidRequestError("Data is required")

    today = date.today().isoformat()
    image_data = None

    if body.type == "text":
        text = sanitize_input(str(body.data), MAX_TEXT_LENGTH)
        if not validate_length(text, 1, MAX_TEXT_LENGTH):
            raise InvalidRequestError("Invalid input length")
        prompt = build_pantry_text_prompt(text, today)
    else:
        image_data = str(body.data)
        if len(image_data) > MAX_IMAGE_BASE64_LENGTH:
            raise PayloadTooLargeError("Image too large. Maximum size is 10MB.")
        try:
            base64.b64decode(image_data, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidRequestError("Invalid image data")
        prompt = build_pantry_image_prompt(today)

    try:
        raw = await llm.generate_json(
            PANTRY_SYSTEM_INSTRUCTION, prompt, PANTRY_SCAN_SCHEMA, image_base64=image_data
        )
        items = shape_items(raw)
    except Exception as e:
        logger.exception(f"Parse pantry error: {type(e).__name__}")
        raise ProviderError("Failed to parse pantry items. Please try again.", code="PARSING_ERROR")

    logger.info(f"Parsed {len(items)} pantry items from {body.type} input")
    return {"items": items}
