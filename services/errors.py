"""
Errors raised by the persistence services.
"""


class StoreUnavailableError(Exception):
    """Raised when Supabase cannot be reached at all."""


class QuestionWriteError(Exception):
    """Raised when a single question row could not be written."""


class DuplicateQuestionError(Exception):
    """Raised when a generated question already exists in the store."""
