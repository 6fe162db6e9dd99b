"""
Tests for ApiClient: URL/credential resolution, retry policy, deadlines
and error normalization. Transport is httpx.MockTransport throughout.
"""

import asyncio
import json

import httpx
import pytest

from plum.client.api_client import (
    NETWORK_ERROR_MESSAGE,
    TIMEOUT_MESSAGE,
    ApiClient,
    ApiError,
)
from plum.config import ClientConfig

BASE_URL = "https://edge.test/functions/v1"


class Recorder:
    """Transport handler replaying scripted responses and recording requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        status, body = response
        return httpx.Response(status, json=body)


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_client(handler, token_provider=None, retries=3):
    config = ClientConfig(base_url=BASE_URL, anon_key="anon-key", app_version="9.9.9", retries=retries)
    sleep = SleepRecorder()
    client = ApiClient(
        config,
        token_provider=token_provider,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep=sleep,
    )
    return client, sleep


# ============================================================================
# Request shape
# ============================================================================

class TestRequestShape:
    """Test URL resolution and headers."""

    def test_relative_endpoint_joins_base_url(self):
        handler = Recorder((200, {"ok": True}))
        client, _ = make_client(handler)

        result = asyncio.run(client.post("/ask-step", {"title": "Soup"}))

        assert result == {"ok": True}
        request = handler.requests[0]
        assert str(request.url) == f"{BASE_URL}/ask-step"
        assert json.loads(request.content) == {"title": "Soup"}

    def test_absolute_endpoint_used_as_is(self):
        handler = Recorder((200, {}))
        client, _ = make_client(handler)

        asyncio.run(client.post("https://other.test/fn?x=1", {}))

        assert str(handler.requests[0].url) == "https://other.test/fn?x=1"

    def test_headers_with_session_token(self):
        async def token_provider():
            return "session-token"

        handler = Recorder((200, {}))
        client, _ = make_client(handler, token_provider=token_provider)
        asyncio.run(client.post("/x", {}))

        headers = handler.requests[0].headers
        assert headers["authorization"] == "Bearer session-token"
        assert headers["apikey"] == "anon-key"
        assert headers["x-app-version"] == "9.9.9"
        assert headers["content-type"] == "application/json"

    def test_token_failure_falls_back_to_anon_key(self):
        async def broken_provider():
            raise RuntimeError("session store unavailable")

        handler = Recorder((200, {}))
        client, _ = make_client(handler, token_provider=broken_provider)
        asyncio.run(client.post("/x", {}))

        assert handler.requests[0].headers["authorization"] == "Bearer anon-key"

    def test_missing_session_falls_back_to_anon_key(self):
        async def no_session():
            return None

        handler = Recorder((200, {}))
        client, _ = make_client(handler, token_provider=no_session)
        asyncio.run(client.post("/x", {}))

        assert handler.requests[0].headers["authorization"] == "Bearer anon-key"


# ============================================================================
# Retry policy
# ============================================================================

class TestRetry:
    """Test exponential backoff and the no-retry-on-4xx rule."""

    def test_retries_server_errors_until_success(self):
        """500, 500, 200 succeeds on the third attempt with doubling delays."""
        handler = Recorder((500, {"error": "boom"}), (500, {"error": "boom"}), (200, {"recipes": []}))
        client, sleep = make_client(handler)

        result = asyncio.run(client.post("/generate-recipes", {}))

        assert result == {"recipes": []}
        assert len(handler.requests) == 3
        assert sleep.delays == [1.0, 2.0]

    def test_client_error_not_retried(self):
        handler = Recorder((404, {"error": "Not found", "code": "NOT_FOUND"}))
        client, sleep = make_client(handler)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.post("/missing", {}))

        assert len(handler.requests) == 1
        assert sleep.delays == []
        assert exc_info.value.status == 404
        assert exc_info.value.code == "NOT_FOUND"
        assert exc_info.value.message == "Not found"

    def test_rate_limit_not_retried(self):
        handler = Recorder((429, {"error": "Rate limit exceeded", "code": "RATE_LIMIT_EXCEEDED"}))
        client, _ = make_client(handler)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.post("/x", {}))

        assert len(handler.requests) == 1
        assert exc_info.value.code == "RATE_LIMIT_EXCEEDED"

    def test_gives_up_after_max_retries(self):
        handler = Recorder((503, {}))
        client, sleep = make_client(handler)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.post("/x", {}))

        assert len(handler.requests) == 4
        assert sleep.delays == [1.0, 2.0, 4.0]
        assert exc_info.value.status == 503
        assert exc_info.value.message == "API Error: 503"

    def test_skip_retry_makes_one_attempt(self):
        handler = Recorder((500, {}))
        client, sleep = make_client(handler)

        with pytest.raises(ApiError):
            asyncio.run(client.post("/x", {}, skip_retry=True))

        assert len(handler.requests) == 1
        assert sleep.delays == []


# ============================================================================
# Error normalization
# ============================================================================

class TestErrorNormalization:
    """Test conversion of failures into ApiError."""

    def test_error_field_in_200_body(self):
        handler = Recorder((200, {"error": "Quota exhausted", "code": "QUOTA"}))
        client, _ = make_client(handler)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.post("/x", {}, skip_retry=True))

        assert exc_info.value.message == "Quota exhausted"
        assert exc_info.value.status == 200
        assert exc_info.value.code == "QUOTA"

    def test_error_field_with_null_recipes_is_a_failure(self):
        client, _ = make_client(Recorder((200, {"error": "Quota", "code": "Q", "recipes": None})))

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.post("/x", {}, skip_retry=True))

        assert exc_info.value.message == "Quota"
        assert exc_info.value.code == "Q"

    def test_error_field_alongside_recipes_is_not_a_failure(self):
        body = {"recipes": [{"title": "Soup"}], "error": "partial"}
        client, _ = make_client(Recorder((200, body)))

        assert asyncio.run(client.post("/x", {})) == body

    def test_network_error(self):
        handler = Recorder(httpx.ConnectError("connection refused"))
        client, sleep = make_client(handler, retries=1)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.post("/x", {}))

        assert exc_info.value.message == NETWORK_ERROR_MESSAGE
        assert exc_info.value.status is None
        # Network failures are retried like 5xx
        assert len(handler.requests) == 2

    def test_deadline_covers_whole_call(self):
        async def slow_handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        client, _ = make_client(slow_handler)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.post("/x", {}, timeout=0.05))

        assert exc_info.value.message == TIMEOUT_MESSAGE

    def test_caller_signal_cancels_request(self):
        async def slow_handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        client, _ = make_client(slow_handler)

        async def run():
            signal = asyncio.Event()
            asyncio.get_running_loop().call_later(0.05, signal.set)
            return await client.post("/x", {}, signal=signal)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(run())

        assert exc_info.value.message == TIMEOUT_MESSAGE

    def test_failure_log_strips_query_string(self, caplog):
        client, _ = make_client(Recorder((400, {"error": "bad"})))

        with pytest.raises(ApiError):
            asyncio.run(client.post("https://other.test/fn?secret=abc", {}))

        assert "https://other.test/fn" in caplog.text
        assert "secret=abc" not in caplog.text
