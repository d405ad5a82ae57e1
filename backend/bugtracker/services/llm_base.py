"""
Bug Tracker Backend: Abstract LLM Service Interface
=====================================================

What:  Abstract base class for chat-completion providers used to suggest
       bug tags.
Why:   The TagGenerator only needs "send a system + user prompt, get text
       back". Keeping providers behind this contract lets configuration pick
       OpenRouter or Gemini, and lets tests substitute canned responses.
Who:   Implemented by OpenRouterService and GeminiService; called by
       TagGenerator.
"""

from abc import ABC, abstractmethod


class LLMService(ABC):
    """
    Abstract interface for a single-turn chat completion.

    Contract:
        - complete() returns the model's raw text answer
        - Every provider-specific failure is raised as LLMServiceError
        - No retries: one upstream request per call
    """

    name: str = "llm"

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send one system + user prompt pair and return the answer text.

        Returns:
            str: The raw text produced by the model, stripped of surrounding
                 whitespace. May be empty.

        Raises:
            LLMServiceError: network failure, timeout, non-2xx status,
                authentication failure or an unexpected response shape.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Cheap reachability probe for /health. Never raises."""
        ...

    async def aclose(self) -> None:
        """Release network resources. Called on application shutdown."""
        return None
