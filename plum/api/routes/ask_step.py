"""
ask-step edge route: short in-context answers about a recipe step.
"""

import logging

from fastapi import APIRouter, Depends, Request

from plum.api.dependencies import get_llm_provider, parse_body, rate_limit
from plum.api.exceptions import InvalidRequestError, ProviderError
from plum.api.prompts import ASK_STEP_SYSTEM_INSTRUCTION, build_ask_step_prompt
from plum.api.schemas import AskStepRequest
from plum.llm_provider import LLMProvider
from plum.security import sanitize_input, validate_length

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_REQUESTS_PER_MINUTE = 20
DEFAULT_QUESTION = "Explain this step"


@router.post(
    "/ask-step",
    dependencies=[Depends(rate_limit("ask-step", MAX_REQUESTS_PER_MINUTE))],
)
async def ask_step(
    request: Request,
    llm: LLMProvider = Depends(get_llm_provider),
):
    """
    Answer a question about one recipe step.

    Request body: {"title": str, "step": str, "question"?: str}
    Returns: {"answer": str}
    """
    body = await parse_body(request, AskStepRequest)

    if not body.title or not body.step:
        raise InvalidRequestError("Title and step are required")

    title = sanitize_input(body.title, 200)
    step = sanitize_input(body.step, 1000)
    question = sanitize_input(body.question, 500) if body.question else ""
    question = question or DEFAULT_QUESTION

    if not validate_length(title, 1, 200) or not validate_length(step, 1, 1000):
        raise InvalidRequestError("Invalid input length")

    try:
        answer = await llm.generate_text(
            ASK_STEP_SYSTEM_INSTRUCTION, build_ask_step_prompt(title, step, question)
        )
    except Exception as e:
        logger.exception(f"Ask step error: {type(e).__name__}")
        raise ProviderError("Failed to process request. Please try again.", code="PROCESSING_ERROR")

    return {"answer": answer}
