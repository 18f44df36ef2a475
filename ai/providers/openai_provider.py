"""
OpenAI chat-completions provider.

Also serves local Ollama models through Ollama's OpenAI-compatible endpoint
(`<OLLAMA_BASE_URL>/v1`), see `build_ollama_provider`.
"""

import json
import logging
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from ai.errors import GenerationError, MalformedCandidateError, ProviderUnavailableError
from ai.prompts.generation import build_generation_prompt
from ai.providers.base import AIProvider
from ai.retry import call_with_retries
from ai.schemas.questions import GeneratedQuestion, parse_candidate

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def extract_json_object(raw: str) -> dict[str, Any]:
    """Return the outermost JSON object found in model output text."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise MalformedCandidateError("No JSON object found in model output")
    try:
        return json.loads(raw[start : end + 1])
    except ValueError as e:
        raise MalformedCandidateError(f"Model output is not valid JSON: {e}") from e


class OpenAIProvider(AIProvider):
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        name: str = "openai",
        base_url: Optional[str] = None,
        enabled: bool = True,
        check_models: bool = False,
        client: Optional[AsyncOpenAI] = None,
        retries: int = 3,
    ):
        self.name = name
        self.model = model
        self._api_key = api_key
        self._base_url = base_url
        self._enabled = enabled and bool(api_key or client)
        # Local servers may be down, so availability is checked against /models.
        self._check_models = check_models
        self._client = client
        self._retries = retries

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    async def is_available(self) -> bool:
        if not self._enabled:
            return False
        if not self._check_models:
            return True

        try:
            page = await self._get_client().models.list()
        except openai.APIError as e:
            logger.debug(f"{self.name} provider not reachable: {e}")
            return False

        model_ids = {model.id for model in page.data}
        if self.model not in model_ids:
            logger.debug(f"{self.name} model {self.model} is not loaded")
            return False
        return True

    async def generate_question(
        self,
        topic: str,
        difficulty: str,
        question_type: str = "true-false",
        variation: Optional[str] = None,
        focus: Optional[str] = None,
    ) -> GeneratedQuestion:
        if not self._enabled:
            raise ProviderUnavailableError(f"{self.name} provider disabled")

        client = self._get_client()
        prompt = build_generation_prompt(topic, difficulty, question_type, variation, focus)

        try:
            completion = await call_with_retries(
                f"{self.name}.generate_question",
                lambda: client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": "Return ONLY valid JSON."},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=0.7,
                ),
                retry_on=TRANSIENT_ERRORS,
                retries=self._retries,
            )
        except TRANSIENT_ERRORS as e:
            raise ProviderUnavailableError(f"{self.name} call failed: {e}") from e
        except openai.APIError as e:
            raise GenerationError(f"{self.name} rejected the request: {e}") from e

        if not completion.choices:
            raise MalformedCandidateError(f"{self.name} returned no choices")

        raw = completion.choices[0].message.content or ""
        return parse_candidate(extract_json_object(raw))


def build_ollama_provider(base_url: str, model: str) -> OpenAIProvider:
    """Ollama ignores the API key but the OpenAI client requires one."""
    return OpenAIProvider(
        api_key="ollama",
        model=model,
        name="ollama",
        base_url=f"{base_url.rstrip('/')}/v1",
        check_models=True,
    )
