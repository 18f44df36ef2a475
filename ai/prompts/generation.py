"""
Prompt template for generating a single quiz question.
"""

from typing import Optional


def build_generation_prompt(
    topic: str,
    difficulty: str,
    question_type: str = "true-false",
    variation: Optional[str] = None,
    focus: Optional[str] = None,
) -> str:
    """
    Build the prompt asking a model for one question as a JSON object.

    `focus` narrows the question to a skill type and granularity when the
    structured generation space picked the slot. `variation` is appended on
    retries after a duplicate so the model moves away from the question it
    produced before.
    """
    if question_type == "multiple-choice":
        options_rule = "Include exactly 4 options."
    else:
        options_rule = 'Use exactly the two options ["True", "False"].'

    focus_line = f"\n    Focus: {focus}" if focus else ""
    variation_block = (
        f"\n{variation}. Generate a DIFFERENT question than previous attempts. "
        "Be creative and vary the focus.\n"
        if variation
        else ""
    )

    return f"""
    You are a cybersecurity expert writing one {question_type} quiz question.

    Topic: {topic}
    Difficulty: {difficulty}{focus_line}

    Requirements:
    - Write a clear, unambiguous question statement.
    - {options_rule}
    - correct_answer must match one of the options exactly.
    - Give a concise but technically accurate explanation.
    - Add relevant MITRE ATT&CK technique identifiers when applicable.
    - Return ONLY valid JSON with the fields: question_text, options,
      correct_answer, explanation, mitre_techniques (array), tags (array),
      estimated_difficulty (number between 0 and 1).
    {variation_block}"""
