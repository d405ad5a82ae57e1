"""
Bug Tracker Backend: Google Gemini Service
============================================

What:  LLMService backed by the Google Generative AI SDK.
How:   Builds a GenerativeModel carrying the system prompt as its system
       instruction and sends the user prompt with generate_content_async.
Who:   Alternative TagGenerator provider (LLM_PROVIDER=gemini).

The SDK keeps its API key in module-level state (genai.configure), so the key
is applied once at construction.
"""

import logging
import time

import google.generativeai as genai

from bugtracker.exceptions import LLMServiceError
from bugtracker.services.llm_base import LLMService

logger = logging.getLogger(__name__)


class GeminiService(LLMService):
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash", timeout: float = 30.0):
        if api_key:
            genai.configure(api_key=api_key)
        self.model_name = model
        self.timeout = timeout
        logger.info("GeminiService initialized with model=%s", model)

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        start_time = time.perf_counter()
        try:
            model = genai.GenerativeModel(self.model_name, system_instruction=system_prompt)
            response = await model.generate_content_async(
                user_prompt,
                request_options={"timeout": self.timeout},
            )
            # .text raises ValueError when the candidate was blocked or empty
            text = response.text or ""
        except Exception as e:
            # The SDK surfaces API, auth and transport problems as assorted
            # google.api_core exceptions; all of them mean "no tags from Gemini".
            raise LLMServiceError(
                message="Gemini request failed",
                context={"provider": self.name, "error_type": type(e).__name__},
            ) from e

        logger.info(
            "Gemini completion in %.0fms (%d chars)",
            (time.perf_counter() - start_time) * 1000,
            len(text),
        )
        return text.strip()

    async def health_check(self) -> bool:
        """list_models is free and proves both connectivity and the API key."""
        try:
            models = genai.list_models()
            names = [m.name for m in models]
            target = f"models/{self.model_name}"
            if target not in names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
