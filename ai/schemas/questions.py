"""
Schemas for AI-generated quiz questions.

`GeneratedQuestionDraft` is the loose shape handed to models as a structured
output schema. `GeneratedQuestion` is the validated candidate that is allowed
into the question pool.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from ai.errors import MalformedCandidateError

Difficulty = Literal["easy", "medium", "hard"]
QuestionType = Literal["multiple-choice", "true-false", "scenario"]


class GeneratedQuestionDraft(BaseModel):
    """Question schema for structured model output. Every field is optional."""

    question_text: Optional[str] = Field(
        default=None, description="The question statement, clear and unambiguous"
    )
    options: Optional[List[str]] = Field(
        default=None,
        description="Answer options. Exactly 4 for multiple-choice, two for true-false",
    )
    correct_answer: Optional[str] = Field(
        default=None, description="Must match one of the options exactly"
    )
    explanation: Optional[str] = Field(
        default=None, description="Concise but technically accurate explanation"
    )
    mitre_techniques: Optional[List[str]] = Field(
        default=None, description="Relevant MITRE ATT&CK technique identifiers, if any"
    )
    tags: Optional[List[str]] = Field(default=None, description="Short topical tags")
    estimated_difficulty: Optional[float] = Field(
        default=None, description="Estimated difficulty between 0 and 1"
    )


class GeneratedQuestion(BaseModel):
    """A validated question candidate."""

    question_text: str = Field(..., min_length=10)
    options: List[str] = Field(..., min_length=2)
    correct_answer: str
    explanation: str = Field(..., min_length=10)
    mitre_techniques: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    estimated_difficulty: float = Field(default=0.5, ge=0, le=1)

    @model_validator(mode="after")
    def check_correct_answer_is_an_option(self) -> "GeneratedQuestion":
        if any(not option.strip() for option in self.options):
            raise ValueError("Options must not be empty.")
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must match one of the options.")
        return self


def parse_candidate(data: Any) -> GeneratedQuestion:
    """
    Validate raw model output into a GeneratedQuestion.

    Accepts a dict or any pydantic model (e.g. a parsed GeneratedQuestionDraft).
    None values are dropped so that schema defaults apply.

    Raises:
        MalformedCandidateError: if the data is missing fields or has invalid options.
    """
    if hasattr(data, "model_dump"):
        data = data.model_dump()

    if not isinstance(data, dict):
        raise MalformedCandidateError(f"Expected a JSON object, got {type(data).__name__}")

    cleaned = {key: value for key, value in data.items() if value is not None}

    try:
        return GeneratedQuestion.model_validate(cleaned)
    except ValidationError as e:
        raise MalformedCandidateError(f"Generated question failed validation: {e}") from e
