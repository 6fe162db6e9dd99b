"""
Configuration for the Plum recipe pipeline.

Both halves of the system read their settings from environment variables,
optionally loaded from a .env file:
- ClientConfig: backend base URL, anonymous credential, timeout/retry defaults
- EdgeSettings: AI provider keys, CORS allow-list, model selection
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_TIMEOUT_SECONDS = 30.0

DEFAULT_ENDPOINTS = {
    "parse_pantry": "/parse-pantry",
    "generate_recipes": "/generate-recipes",
    "generate_thumbnail": "/generate-thumbnail",
    "ask_step": "/ask-step",
}


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


@dataclass
class ClientConfig:
    """Settings consumed by the client-side ApiClient and RecipeService."""

    base_url: str = "http://localhost:8000/functions/v1"
    anon_key: str = ""
    app_version: str = "1.0.0"
    timeout: float = DEFAULT_TIMEOUT_SECONDS  # Seconds, covers all retries
    retries: int = 3
    retry_base_delay: float = 1.0  # Seconds; doubles on each attempt
    endpoints: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENDPOINTS))

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build client configuration from the environment.

        Recipe generation plus image generation with large pantries can take
        well over the generic default, so the app default is two minutes.
        """
        return cls(
            base_url=os.environ.get("PLUM_API_BASE_URL", cls.base_url).rstrip("/"),
            anon_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            app_version=os.environ.get("PLUM_APP_VERSION", cls.app_version),
            timeout=float(os.environ.get("PLUM_API_TIMEOUT", "120")),
            retries=int(os.environ.get("PLUM_API_RETRIES", "3")),
        )


@dataclass
class EdgeSettings:
    """Settings consumed by the edge FastAPI application."""

    gemini_api_key: Optional[str] = None
    runware_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    cors_origins: List[str] = field(default_factory=list)  # Empty = development mode
    use_null_llm: bool = False
    debug: bool = False
    port: int = 8000

    @classmethod
    def from_env(cls) -> "EdgeSettings":
        raw_origins = os.environ.get("CORS_ORIGINS", "")
        origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
        return cls(
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            runware_api_key=os.environ.get("RUNWARE_API_KEY") or None,
            gemini_model=os.environ.get("GEMINI_MODEL", cls.gemini_model),
            cors_origins=origins,
            use_null_llm=_env_bool("USE_NULL_LLM"),
            debug=_env_bool("DEBUG"),
            port=int(os.environ.get("PORT", "8000")),
        )
