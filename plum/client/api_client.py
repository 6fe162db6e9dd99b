"""
HTTP client for the Plum edge functions.

Every call goes through ApiClient.post(), which:
- resolves the target URL (absolute endpoints pass through untouched)
- attaches a credential, falling back to the anonymous key
- enforces one deadline across all attempts
- retries 5xx, network and timeout failures with exponential backoff
- normalizes failures into ApiError
"""

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from plum.config import ClientConfig

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timeout"
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class ApiError(Exception):
    """Structured failure from an edge call.

    status is None for timeouts and transport failures.
    """

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    @property
    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "status": self.status, "code": self.code}


class ApiClient:
    """Authenticated POST client with timeout and retry."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        token_provider: Optional[TokenProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            config: Base URL, credentials and timeout/retry defaults
            token_provider: Coroutine returning the session access token, if any
            http_client: Shared httpx client; one is created per call when omitted
            sleep: Backoff delay coroutine
        """
        self.config = config or ClientConfig.from_env()
        self.token_provider = token_provider
        self.http_client = http_client
        self.sleep = sleep

    async def _get_auth_token(self) -> str:
        """Session token if one is available, otherwise the anonymous key. Never raises."""
        if self.token_provider is None:
            return self.config.anon_key
        try:
            token = await self.token_provider()
        except Exception as e:
            logger.warning(f"Failed to get session, using anon key: {type(e).__name__}")
            return self.config.anon_key
        return token or self.config.anon_key

    async def _send(self, url: str, headers: Dict[str, str], body: Any) -> Any:
        """Make one attempt and normalize its outcome."""
        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, headers=headers, json=body)
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    response = await client.post(url, headers=headers, json=body)
        except httpx.TimeoutException:
            raise ApiError(TIMEOUT_MESSAGE)
        except httpx.TransportError:
            raise ApiError(NETWORK_ERROR_MESSAGE)

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            message = None
            code = None
            if isinstance(data, dict):
                message = data.get("error") or data.get("message")
                code = data.get("code")
            raise ApiError(message or f"API Error: {response.status_code}", response.status_code, code)

        # Some functions report failures in a 200 body
        if isinstance(data, dict) and data.get("error") and not data.get("recipes"):
            raise ApiError(data["error"], response.status_code, data.get("code"))

        return data

    async def _retry_with_backoff(self, attempt_fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run attempt_fn, retrying everything except 4xx responses."""
        max_retries = self.config.retries
        last_error: Optional[ApiError] = None

        for attempt in range(max_retries + 1):
            try:
                return await attempt_fn()
            except ApiError as e:
                last_error = e
                if e.is_client_error:
                    raise
                if attempt == max_retries:
                    break

                delay = self.config.retry_base_delay * (2 ** attempt)
                logger.debug(f"Attempt {attempt + 1} failed ({e.message}); retrying in {delay}s")
                await self.sleep(delay)

        raise last_error

    @staticmethod
    async def _until_signalled(operation: Awaitable[Any], signal: asyncio.Event) -> Any:
        """Run operation, cancelling it if signal is set first."""
        task = asyncio.ensure_future(operation)
        waiter = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise ApiError(TIMEOUT_MESSAGE)

    async def post(
        self,
        endpoint: str,
        body: Any,
        timeout: Optional[float] = None,
        signal: Optional[asyncio.Event] = None,
        skip_retry: bool = False,
    ) -> Any:
        """
        POST a JSON body to an edge function.

        Args:
            endpoint: Path relative to the base URL, or an absolute URL
            body: JSON-serializable request body
            timeout: Deadline in seconds covering all attempts (config default otherwise)
            signal: Caller-owned cancellation event; replaces the internal deadline
            skip_retry: Make exactly one attempt

        Returns:
            Decoded JSON response

        Raises:
            ApiError: On any failure
        """
        is_absolute = endpoint.startswith("http")
        url = endpoint if is_absolute else f"{self.config.base_url}{endpoint}"

        token = await self._get_auth_token()
        headers = {
            "Content-Type": "application/json",
            "X-App-Version": self.config.app_version,
            "apikey": self.config.anon_key,
            "Authorization": f"Bearer {token}",
        }

        async def attempt():
            return await self._send(url, headers, body)

        operation = attempt() if skip_retry else self._retry_with_backoff(attempt)

        try:
            if signal is not None:
                return await self._until_signalled(operation, signal)
            return await asyncio.wait_for(operation, timeout or self.config.timeout)
        except asyncio.TimeoutError:
            error = ApiError(TIMEOUT_MESSAGE)
            self._log_failure(endpoint, is_absolute, error)
            raise error
        except ApiError as e:
            self._log_failure(endpoint, is_absolute, e)
            raise

    @staticmethod
    def _log_failure(endpoint: str, is_absolute: bool, error: ApiError):
        # Absolute URLs may carry upstream structure in the query string
        sanitized_url = endpoint.split("?")[0] if is_absolute else endpoint
        logger.error(
            f"API POST failed for {sanitized_url}: "
            f"status={error.status} code={error.code} message={error.message}"
        )
