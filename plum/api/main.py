"""
FastAPI application hosting the Plum edge functions.

Each function is mounted under /functions/v1/<name>, matching the path
layout the mobile client is configured against.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from plum.api.cors import CORSPolicyMiddleware, get_cors_headers
from plum.api.dependencies import get_settings
from plum.api.exceptions import EdgeError, edge_error_handler
from plum.api.routes import ask_step, generate_recipes, generate_thumbnail, parse_pantry

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

FUNCTIONS_PREFIX = "/functions/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    mode = "production" if settings.cors_origins else "development"
    logger.info(f"Starting Plum edge API ({mode} CORS, model={settings.gemini_model})")
    if settings.use_null_llm:
        logger.warning("USE_NULL_LLM is set; recipe and pantry calls return stub output")

    yield

    logger.info("Plum edge API shutdown complete")


app = FastAPI(
    title="Plum Edge API",
    description="Recipe generation, pantry parsing, step Q&A and thumbnails",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CORSPolicyMiddleware, allowed_origins=get_settings().cors_origins)
app.add_exception_handler(EdgeError, edge_error_handler)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler. Runs outside the CORS middleware, so headers are added here."""
    logger.exception(f"Unhandled error on {request.url.path}: {type(exc).__name__}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
        headers=get_cors_headers(request.headers.get("origin"), get_settings().cors_origins),
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint for load balancers and container orchestration.

    Reports which AI providers are configured; a missing key does not make
    the service unhealthy, only the affected functions fail.
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "providers": {
            "gemini": settings.use_null_llm or bool(settings.gemini_api_key),
            "runware": settings.use_null_llm or bool(settings.runware_api_key),
        },
    }


app.include_router(generate_recipes.router, prefix=FUNCTIONS_PREFIX, tags=["recipes"])
app.include_router(parse_pantry.router, prefix=FUNCTIONS_PREFIX, tags=["pantry"])
app.include_router(ask_step.router, prefix=FUNCTIONS_PREFIX, tags=["cooking"])
app.include_router(generate_thumbnail.router, prefix=FUNCTIONS_PREFIX, tags=["images"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "plum.api.main:app",
        host="0.0.0.0",
        port=get_settings().port,
        reload=get_settings().debug,
        log_level="debug" if get_settings().debug else "info",
    )
