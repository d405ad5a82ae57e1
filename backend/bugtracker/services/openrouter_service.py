"""
Bug Tracker Backend: OpenRouter Chat Completion Service
=========================================================

What:  LLMService over OpenRouter's OpenAI-compatible chat completion API.
How:   One POST to {base_url}/chat/completions per call, authenticated with
       a bearer token, through a shared httpx.AsyncClient.
Who:   Default provider of the TagGenerator (LLM_PROVIDER=openrouter).

Request shape:
    {
        "model": "<model id>",
        "messages": [
            {"role": "system", "content": "<system prompt>"},
            {"role": "user", "content": "<user prompt>"}
        ],
        "max_tokens": 1024
    }

Response text is read from choices[0].message.content. Every transport,
status or shape problem is raised as LLMServiceError; nothing is retried.
"""

import logging
import time
from typing import Optional

import httpx

from bugtracker.exceptions import LLMServiceError
from bugtracker.services.llm_base import LLMService

logger = logging.getLogger(__name__)


class OpenRouterService(LLMService):
    name = "openrouter"

    MAX_TOKENS = 1024

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        referer: str = "http://localhost:3000",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Bearer credential for OpenRouter
            model: Model identifier, e.g. "deepseek/deepseek-r1-0528:free"
            base_url: API root without trailing slash
            referer: Sent as HTTP-Referer (OpenRouter app attribution)
            timeout: Seconds allowed for the whole request
            client: Pre-built client (tests pass one with a MockTransport)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.referer = referer
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

        logger.info("OpenRouterService initialized with model=%s", model)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
        }

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self.MAX_TOKENS,
        }
        start_time = time.perf_counter()

        try:
            response = await self._get_client().post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise LLMServiceError(
                message="Tag model request timed out",
                context={"provider": self.name, "error_type": type(e).__name__},
            ) from e
        except httpx.HTTPStatusError as e:
            raise LLMServiceError(
                message=f"Tag model returned HTTP {e.response.status_code}",
                context={"provider": self.name, "status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers a body that is not JSON
            raise LLMServiceError(
                message="Tag model request failed",
                context={"provider": self.name, "error_type": type(e).__name__},
            ) from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMServiceError(
                message="Tag model response had an unexpected shape",
                context={"provider": self.name},
            ) from e
        if not isinstance(content, str):
            raise LLMServiceError(
                message="Tag model response content was not text",
                context={"provider": self.name},
            )

        logger.info(
            "OpenRouter completion in %.0fms (%d chars)",
            (time.perf_counter() - start_time) * 1000,
            len(content),
        )
        return content.strip()

    async def health_check(self) -> bool:
        """GET /models: free, unauthenticated, proves the API is reachable."""
        try:
            response = await self._get_client().get(
                f"{self.base_url}/models", timeout=self.timeout
            )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("OpenRouter health check failed: %s", str(e))
            return False

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
