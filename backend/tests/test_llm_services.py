"""
Bug Tracker Backend: LLM Provider and Circuit Breaker Unit Tests
==================================================================

What:  Tests for OpenRouterService (canned HTTP via httpx.MockTransport),
       GeminiService (patched SDK) and the CircuitBreaker state machine.
Why:   Tests must never call a real model (costs money, needs network).

What we test:
    ✅ Request shape: URL, bearer header, model, messages, max_tokens
    ✅ Text extraction from choices[0].message.content
    ✅ HTTP errors, timeouts and malformed bodies → LLMServiceError
    ✅ Breaker opens at threshold, half-opens after recovery, recloses
    ❌ Real API calls
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from bugtracker.exceptions import CircuitBreakerOpenError, LLMServiceError
from bugtracker.services.circuit_breaker import CircuitBreaker
from bugtracker.services.gemini_service import GeminiService
from bugtracker.services.openrouter_service import OpenRouterService


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _service(handler) -> OpenRouterService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenRouterService(
        api_key="sk-test",
        model="deepseek/deepseek-r1-0528:free",
        base_url="https://openrouter.test/api/v1",
        timeout=5.0,
        client=client,
    )


class TestOpenRouterService:

    @pytest.mark.asyncio
    async def test_complete_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion("  auth, login \n"))

        service = _service(handler)
        result = await service.complete("system text", "user text")

        assert result == "auth, login"
        assert seen["url"] == "https://openrouter.test/api/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "deepseek/deepseek-r1-0528:free"
        assert seen["body"]["max_tokens"] == 1024
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": "user text"},
        ]

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        service = _service(lambda request: httpx.Response(500, json={"error": "down"}))

        with pytest.raises(LLMServiceError) as exc_info:
            await service.complete("s", "u")
        assert exc_info.value.context["status_code"] == 500

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(LLMServiceError, match="timed out"):
            await _service(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMServiceError):
            await _service(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        service = _service(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(LLMServiceError):
            await service.complete("s", "u")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{}, {"choices": []}, {"choices": [{"message": {}}]}, _completion(None)],
    )
    async def test_unexpected_shape(self, body):
        service = _service(lambda request: httpx.Response(200, json=body))
        with pytest.raises(LLMServiceError):
            await service.complete("s", "u")

    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await _service(lambda r: httpx.Response(200, json={"data": []})).health_check()
        assert not await _service(lambda r: httpx.Response(503)).health_check()

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        service = OpenRouterService(api_key="k", model="m", client=client)
        await service.aclose()
        assert not client.is_closed
        await client.aclose()


class TestGeminiServiceMocked:

    @pytest.mark.asyncio
    async def test_complete_success(self):
        with patch("bugtracker.services.gemini_service.genai") as mock_genai:
            mock_response = MagicMock()
            mock_response.text = " ui, crash "
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiService(api_key="test-key", model="gemini-1.5-flash", timeout=7)
            result = await service.complete("system text", "user text")

            assert result == "ui, crash"
            mock_genai.configure.assert_called_once_with(api_key="test-key")
            mock_genai.GenerativeModel.assert_called_once_with(
                "gemini-1.5-flash", system_instruction="system text"
            )
            mock_model.generate_content_async.assert_awaited_once_with(
                "user text", request_options={"timeout": 7}
            )

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_llm_service_error(self):
        with patch("bugtracker.services.gemini_service.genai") as mock_genai:
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota"))
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiService(api_key="test-key")
            with pytest.raises(LLMServiceError) as exc_info:
                await service.complete("s", "u")
            assert exc_info.value.context["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_health_check_returns_bool(self):
        with patch("bugtracker.services.gemini_service.genai") as mock_genai:
            mock_genai.list_models.side_effect = RuntimeError("no network")
            service = GeminiService(api_key="test-key")
            assert await service.health_check() is False


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestCircuitBreaker:
    """Tests for the CircuitBreaker state machine, driven by a fake clock."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60, clock=self.clock)

    def test_initial_state_is_closed(self):
        assert self.cb.state == CircuitBreaker.CLOSED
        assert self.cb.failure_count == 0
        assert self.cb.can_execute()

    def test_stays_closed_under_threshold(self):
        self.cb.record_failure()
        self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.CLOSED
        self.cb.can_execute()

    def test_opens_at_threshold_and_rejects(self):
        for _ in range(3):
            self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.OPEN

        self.clock.now += 30
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            self.cb.can_execute()
        assert exc_info.value.recovery_time == 30

    def test_half_open_after_recovery_timeout(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.now += 60

        assert self.cb.can_execute()
        assert self.cb.state == CircuitBreaker.HALF_OPEN

    def test_half_open_failure_reopens(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.now += 60
        self.cb.can_execute()

        self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            self.cb.can_execute()

    def test_half_open_success_closes(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.now += 61
        self.cb.can_execute()

        self.cb.record_success()
        assert self.cb.state == CircuitBreaker.CLOSED
        assert self.cb.failure_count == 0

    def test_half_open_admits_a_single_trial(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.now += 60

        assert self.cb.can_execute()
        with pytest.raises(CircuitBreakerOpenError):
            self.cb.can_execute()
        assert self.cb.state == CircuitBreaker.HALF_OPEN

        self.cb.record_success()
        assert self.cb.can_execute()
        assert self.cb.can_execute()

    def test_abandoned_trial_is_replaced(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.now += 60
        self.cb.can_execute()

        self.clock.now += 59
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            self.cb.can_execute()
        assert exc_info.value.recovery_time == 1

        self.clock.now += 1
        assert self.cb.can_execute()
