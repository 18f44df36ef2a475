"""
Gemini provider using structured JSON output.
"""

import json
import logging
from typing import Optional

from google import genai
from google.genai import errors as genai_errors

from ai.errors import MalformedCandidateError, ProviderUnavailableError
from ai.prompts.generation import build_generation_prompt
from ai.providers.base import AIProvider
from ai.retry import call_with_retries
from ai.schemas.questions import GeneratedQuestion, GeneratedQuestionDraft, parse_candidate

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        client: Optional[genai.Client] = None,
        retries: int = 3,
    ):
        self.model = model
        self._api_key = api_key
        self._client = client
        self._retries = retries

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def is_available(self) -> bool:
        return bool(self._client is not None or self._api_key)

    async def generate_question(
        self,
        topic: str,
        difficulty: str,
        question_type: str = "true-false",
        variation: Optional[str] = None,
        focus: Optional[str] = None,
    ) -> GeneratedQuestion:
        if not await self.is_available():
            raise ProviderUnavailableError("Gemini provider is not configured")

        client = self._get_client()
        prompt = build_generation_prompt(topic, difficulty, question_type, variation, focus)

        try:
            response = await call_with_retries(
                "gemini.generate_question",
                lambda: client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config={
                        "response_mime_type": "application/json",
                        "response_schema": GeneratedQuestionDraft,
                    },
                ),
                retry_on=(genai_errors.ServerError,),
                retries=self._retries,
            )
        except genai_errors.APIError as e:
            raise ProviderUnavailableError(f"Gemini call failed: {e}") from e

        parsed = getattr(response, "parsed", None)
        if parsed is not None:
            return parse_candidate(parsed)

        try:
            raw_data = json.loads(response.text or "")
        except (TypeError, ValueError) as e:
            raise MalformedCandidateError(f"Gemini returned invalid JSON: {e}") from e
        return parse_candidate(raw_data)
