"""
Bug Tracker Backend: Tag Generator
====================================

What:  Suggests 1-5 short categorization tags for a bug from its title and
       description.
How:   Sends a fixed prompt to the configured LLMService, then parses the
       free-text answer as a comma-separated list.
Who:   Called by BugMutationService on create, on title/description edits and
       on explicit regeneration.

Failure policy:
    generate_tags() never raises. Upstream errors, timeouts, an open circuit
    breaker or an answer with no usable tags all produce FALLBACK_TAGS. There
    is exactly one upstream call per invocation (or none while the breaker is
    open).

Parsing rules (parse_tags):
    "  UI , 'crash', \"login\",, performance, api, extra "
      → split on ","            ["  UI ", " 'crash'", ...]
      → trim whitespace         ["UI", "'crash'", "\"login\"", "", ...]
      → strip one leading and one trailing quote (" or ')
      → drop empty tokens and tokens over MAX_TAG_LENGTH characters
      → keep the first 5        ["UI", "crash", "login", "performance", "api"]

    A comma-free sentence is one token; past MAX_TAG_LENGTH it is dropped
    rather than stored, and the caller falls back.
"""

import logging
from typing import List, Optional

from bugtracker.config import Settings
from bugtracker.exceptions import CircuitBreakerOpenError, LLMServiceError
from bugtracker.models.bug import MAX_TAG_LENGTH, MAX_TAGS
from bugtracker.services.circuit_breaker import CircuitBreaker
from bugtracker.services.llm_base import LLMService

logger = logging.getLogger(__name__)

FALLBACK_TAGS = ("bug", "issue")

QUOTE_CHARS = "\"'"

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates relevant tags for bug reports. "
    "Return only comma-separated tags without any additional text."
)

USER_PROMPT_TEMPLATE = """Analyze the following bug report and generate 3-5 relevant tags that would help categorize and search for this bug. The tags should be concise, descriptive, and relevant to the technical nature of the issue.

Bug Title: {title}
Bug Description: {description}

Generate tags that could include:
- Technology/component affected (e.g., "frontend", "database", "API", "UI", "authentication")
- Type of issue (e.g., "crash", "performance", "security", "usability", "data-loss")
- Specific features or areas (e.g., "login", "search", "payment", "reporting")

Return only the tags as a comma-separated list, without any additional text or formatting."""


def build_user_prompt(title: str, description: str) -> str:
    return USER_PROMPT_TEMPLATE.format(title=title, description=description)


def _strip_one_quote(token: str) -> str:
    if token and token[0] in QUOTE_CHARS:
        token = token[1:]
    if token and token[-1] in QUOTE_CHARS:
        token = token[:-1]
    return token


def parse_tags(text: str, limit: int = MAX_TAGS) -> List[str]:
    """
    Turn a model answer into an ordered list of at most `limit` tags.

    Pure function; see the module docstring for the rules. Returns an empty
    list when nothing usable is found (the caller decides on a fallback).
    """
    tags = []
    for raw in text.split(","):
        token = _strip_one_quote(raw.strip())
        if not token:
            continue
        if len(token) > MAX_TAG_LENGTH:
            logger.debug("Dropping %d-character tag token", len(token))
            continue
        tags.append(token)
    return tags[:limit]


class TagGenerator:
    """
    Narrow adapter between bug content and the tag model.

    Holds the provider and a circuit breaker; otherwise stateless, so one
    instance is shared by every request in the process.
    """

    def __init__(
        self,
        llm: LLMService,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.llm = llm
        self.circuit_breaker = circuit_breaker or CircuitBreaker()

    @property
    def fallback_tags(self) -> List[str]:
        return list(FALLBACK_TAGS)

    async def generate_tags(self, title: str, description: str) -> List[str]:
        """
        Ask the model for tags; never raises.

        Returns:
            Between 1 and 5 tags in the order the model gave them, or
            ["bug", "issue"] when the model could not be used.
        """
        try:
            self.circuit_breaker.can_execute()
        except CircuitBreakerOpenError as e:
            logger.warning("Skipping tag model call: %s", e.message)
            return self.fallback_tags

        try:
            text = await self.llm.complete(SYSTEM_PROMPT, build_user_prompt(title, description))
        except LLMServiceError as e:
            self.circuit_breaker.record_failure()
            logger.warning("Error generating tags: %s | Context: %s", e.message, e.context)
            return self.fallback_tags
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error("Unexpected error generating tags: %s", str(e), exc_info=True)
            return self.fallback_tags

        self.circuit_breaker.record_success()
        logger.debug("Tag model answer: %r", text)

        tags = parse_tags(text)
        if not tags:
            logger.warning("Tag model answer contained no usable tags; using fallback")
            return self.fallback_tags
        return tags

    async def health_check(self) -> str:
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        return "available" if await self.llm.health_check() else "unavailable"

    async def aclose(self) -> None:
        await self.llm.aclose()


def build_tag_generator(config: Settings) -> TagGenerator:
    """Wire the configured provider and breaker thresholds into a TagGenerator."""
    if config.llm_provider == "gemini":
        from bugtracker.services.gemini_service import GeminiService

        llm: LLMService = GeminiService(
            api_key=config.gemini_api_key,
            model=config.gemini_model,
            timeout=config.llm_timeout_seconds,
        )
    else:
        from bugtracker.services.openrouter_service import OpenRouterService

        llm = OpenRouterService(
            api_key=config.openrouter_api_key,
            model=config.openrouter_model,
            base_url=config.openrouter_base_url,
            referer=config.openrouter_referer,
            timeout=config.llm_timeout_seconds,
        )
    return TagGenerator(
        llm=llm,
        circuit_breaker=CircuitBreaker(
            failure_threshold=config.cb_failure_threshold,
            recovery_timeout=config.cb_recovery_timeout,
        ),
    )
