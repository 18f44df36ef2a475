"""
Errors raised by the AI generation layer.
"""


class GenerationError(Exception):
    """Base class for a failed question generation attempt."""


class ProviderUnavailableError(GenerationError):
    """Raised when no AI provider can be reached, or a provider call keeps failing."""


class MalformedCandidateError(GenerationError):
    """Raised when a provider returns data that does not validate as a question."""
