"""
Shared Gemini mock implementation for provider tests.

MockGeminiClient mimics the `client.aio.models.generate_content` surface of
google.genai.Client and returns a structured-output response.

Usage:
    from tests.utils.mock_gemini import MockGeminiClient

    provider = GeminiProvider(api_key=None, client=MockGeminiClient())
"""

from typing import Any, Optional
from unittest.mock import MagicMock

from ai.schemas.questions import GeneratedQuestionDraft
from tests.utils.factories import create_test_question_data


class MockParsedResponse:
    """Mock for Gemini API response with both .parsed and .text attributes."""

    def __init__(self, parsed_obj: Any, text: str = ""):
        self._parsed = parsed_obj
        self._text = text

    @property
    def parsed(self):
        return self._parsed

    @property
    def text(self):
        return self._text


class MockGeminiModels:
    """Mock for gemini_client.aio.models that records generate_content calls."""

    def __init__(self, response: Optional[MockParsedResponse] = None, error: Optional[Exception] = None):
        self.calls: list[dict] = []
        self._response = response
        self._error = error

    async def generate_content(self, model: str, contents: Any, config: dict) -> MockParsedResponse:
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self._error is not None:
            raise self._error
        if self._response is not None:
            return self._response
        return MockParsedResponse(GeneratedQuestionDraft(**create_test_question_data()))


class MockAioNamespace:
    def __init__(self, models: MockGeminiModels):
        self.models = models


class MockGeminiClient:
    """Mock Gemini client that mimics real client interface."""

    def __init__(self, response: Optional[MockParsedResponse] = None, error: Optional[Exception] = None):
        self.aio = MockAioNamespace(MockGeminiModels(response=response, error=error))
        self.models = MagicMock()
