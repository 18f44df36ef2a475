"""
AI generation client with provider fallback.

Preference order when no provider is requested: Ollama (local) -> Gemini ->
OpenAI (only when ALLOW_EXTERNAL_AI is set).
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from ai.errors import ProviderUnavailableError
from ai.providers.base import AIProvider
from ai.providers.gemini_provider import GeminiProvider
from ai.providers.openai_provider import OpenAIProvider, build_ollama_provider
from ai.schemas.questions import GeneratedQuestion
from config.settings import (
    ALLOW_EXTERNAL_AI,
    GEMINI_API_KEY,
    GEMINI_MODEL,
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
    OPENAI_API_KEY,
    OPENAI_GENERATION_MODEL,
)

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """A generated question and the provider that produced it."""

    question: GeneratedQuestion
    provider: str


class GenerationClient:
    def __init__(self, providers: List[AIProvider]):
        self._providers = list(providers)

    @property
    def providers(self) -> List[AIProvider]:
        return list(self._providers)

    async def get_provider(self, preferred: Optional[str] = None) -> AIProvider:
        """
        Return the preferred provider if it is available, else the first
        available provider in order.

        Raises:
            ProviderUnavailableError: if no provider is available.
        """
        if preferred:
            for provider in self._providers:
                if provider.name == preferred and await provider.is_available():
                    logger.debug(f"Using {provider.name} provider")
                    return provider

        for provider in self._providers:
            if provider.name == preferred:
                continue
            if await provider.is_available():
                logger.debug(f"Using {provider.name} provider (fallback)")
                return provider

        raise ProviderUnavailableError("No AI provider available")

    async def available_providers(self) -> List[str]:
        return [provider.name for provider in self._providers if await provider.is_available()]

    async def generate(
        self,
        topic: str,
        difficulty: str,
        preferred: Optional[str] = None,
        variation: Optional[str] = None,
        focus: Optional[str] = None,
    ) -> Candidate:
        """Generate one question with the best available provider."""
        provider = await self.get_provider(preferred)
        question = await provider.generate_question(
            topic=topic,
            difficulty=difficulty,
            question_type="true-false",
            variation=variation,
            focus=focus,
        )
        return Candidate(question=question, provider=provider.name)


@lru_cache(maxsize=1)
def get_generation_client() -> GenerationClient:
    providers: List[AIProvider] = [build_ollama_provider(OLLAMA_BASE_URL, OLLAMA_MODEL)]

    if GEMINI_API_KEY:
        providers.append(GeminiProvider(api_key=GEMINI_API_KEY, model=GEMINI_MODEL))

    if ALLOW_EXTERNAL_AI and OPENAI_API_KEY:
        providers.append(OpenAIProvider(api_key=OPENAI_API_KEY, model=OPENAI_GENERATION_MODEL))

    logger.info(f"Generation providers configured: {[p.name for p in providers]}")
    return GenerationClient(providers)
