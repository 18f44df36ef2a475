"""
Interface shared by all AI question providers.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ai.schemas.questions import GeneratedQuestion


class AIProvider(ABC):
    """A model backend able to produce one quiz question per call."""

    name: str
    model: str

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if the provider is configured and reachable."""

    @abstractmethod
    async def generate_question(
        self,
        topic: str,
        difficulty: str,
        question_type: str = "true-false",
        variation: Optional[str] = None,
        focus: Optional[str] = None,
    ) -> GeneratedQuestion:
        """
        Generate one question.

        Raises:
            ProviderUnavailableError: the provider could not be reached.
            MalformedCandidateError: the output did not validate.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, model={self.model!r})"
