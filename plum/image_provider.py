"""
Image generation providers.

- RunwareProvider: Runware image inference, downloads the result bytes
- NullImageProvider: canned bytes for tests and keyless development
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

RUNWARE_API_URL = "https://api.runware.ai/v1"
RUNWARE_MODEL = "runware:111@1"


class ImageProvider(ABC):
    """Abstract base class for image providers."""

    @abstractmethod
    async def generate_image(self, prompt: str, negative_prompt: str = "") -> bytes:
        """Generate an image and return its raw bytes."""
        pass


class RunwareProvider(ImageProvider):
    """Runware image inference provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or os.environ.get("RUNWARE_API_KEY")
        if not self.api_key:
            raise ValueError("RUNWARE_API_KEY required for RunwareProvider")
        self.http_client = http_client
        self.timeout = timeout

    async def generate_image(self, prompt: str, negative_prompt: str = "") -> bytes:
        """
        Run an imageInference task and download the resulting image.

        Raises:
            RuntimeError: If Runware fails or returns no image URL
            httpx.HTTPError: On transport failures
        """
        task = {
            "taskType": "imageInference",
            "taskUUID": str(uuid.uuid4()),
            "positivePrompt": prompt,
            "negativePrompt": negative_prompt,
            "height": 576,
            "width": 1024,
            "model": RUNWARE_MODEL,
            "steps": 25,
            "CFGScale": 7.5,
            "numberResults": 1,
            "outputFormat": "WEBP",
            "includeCost": False,
        }

        if self.http_client is not None:
            return await self._run(self.http_client, task)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._run(client, task)

    async def _run(self, client: httpx.AsyncClient, task: dict) -> bytes:
        response = await client.post(
            RUNWARE_API_URL,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            json=[task],
        )
        if response.status_code >= 400:
            logger.error(f"Runware API error: {response.status_code}")
            raise RuntimeError(f"Runware API error: {response.status_code}")

        results = response.json().get("data")
        if not isinstance(results, list) or not results:
            raise RuntimeError("No image data in response")

        image_result = next(
            (item for item in results if item.get("taskType") == "imageInference"), None
        )
        if not image_result or not image_result.get("imageURL"):
            raise RuntimeError("No image URL in response")

        image_response = await client.get(image_result["imageURL"])
        if image_response.status_code >= 400:
            raise RuntimeError("Failed to fetch generated image")

        return image_response.content


class NullImageProvider(ImageProvider):
    """Returns fixed bytes; records the last prompt."""

    def __init__(self, image_bytes: bytes = b"RIFF\x00\x00\x00\x00WEBPVP8 "):
        self.image_bytes = image_bytes
        self.call_count = 0
        self.last_prompt = None

    async def generate_image(self, prompt: str, negative_prompt: str = "") -> bytes:
        self.call_count += 1
        self.last_prompt = prompt
        return self.image_bytes


def require_image_provider(api_key: Optional[str] = None) -> ImageProvider:
    """Get an image provider, raising if no API key is available."""
    if os.environ.get("USE_NULL_LLM", "").lower() == "true":
        return NullImageProvider()

    api_key = api_key or os.environ.get("RUNWARE_API_KEY")
    if not api_key:
        raise ValueError("RUNWARE_API_KEY required. Set environment variable.")

    return RunwareProvider(api_key=api_key)
