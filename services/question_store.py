"""
Access to the `questions` and `generation_logs` tables.

The schema is owned by the quiz application; this module only counts pool
questions, inserts generated ones and records generation runs.
"""

import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from ai.schemas.questions import GeneratedQuestion
from services.errors import QuestionWriteError, StoreUnavailableError

if TYPE_CHECKING:
    from services.generation_space import GenerationSlot

logger = logging.getLogger(__name__)

QUESTIONS_TABLE = "questions"
GENERATION_LOGS_TABLE = "generation_logs"

STATUS_TO_REVIEW = "to_review"


def question_hash(question_text: str) -> str:
    """
    SHA-256 of the normalized question text (lowercase, punctuation removed,
    whitespace collapsed), so "What is HTTPS?" and "what is https" collide.
    """
    normalized = question_text.lower()
    normalized = re.sub(r"[^\w\s]", "", normalized)
    normalized = re.sub(r"\s+", " ", normalized).strip()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def map_numeric_to_admin_difficulty(value: float) -> str:
    """Map a 0-1 difficulty to the admin review level."""
    if value <= 0.35:
        return "Beginner"
    if value <= 0.60:
        return "Intermediate"
    if value <= 0.80:
        return "Advanced"
    return "Expert"


def execute_query(query, action: str):
    try:
        return query.execute()
    except httpx.TransportError as e:
        logger.error(f"Supabase unreachable during {action}: {e}")
        raise StoreUnavailableError(f"Question store unreachable during {action}") from e


class QuestionStore:
    def __init__(self, supabase_client: Client):
        self._client = supabase_client

    def count(self, status: str = STATUS_TO_REVIEW) -> int:
        """Return the number of questions with the given status."""
        response = execute_query(
            self._client.table(QUESTIONS_TABLE)
            .select("id", count="exact")
            .eq("status", status)
            .limit(1),
            "count",
        )
        return response.count or 0

    def exists_by_hash(self, hash_value: str) -> bool:
        response = execute_query(
            self._client.table(QUESTIONS_TABLE)
            .select("id")
            .eq("question_hash", hash_value)
            .limit(1),
            "duplicate check",
        )
        return bool(response.data)

    def insert(
        self,
        question: GeneratedQuestion,
        topic: str,
        provider: str,
        hash_value: Optional[str] = None,
        question_type: str = "true-false",
        slot: Optional["GenerationSlot"] = None,
    ) -> Any:
        """
        Store a generated question with status `to_review`.

        When the question was generated for a structured slot, the slot is
        recorded on the row and its difficulty replaces the model estimate.

        Returns:
            The id of the new row.

        Raises:
            QuestionWriteError: if the row was rejected by the database.
            StoreUnavailableError: if Supabase cannot be reached.
        """
        payload = {
            "question_text": question.question_text,
            "question_hash": hash_value or question_hash(question.question_text),
            "options": question.options,
            "correct_answer": question.correct_answer,
            "explanation": question.explanation,
            "difficulty": question.estimated_difficulty,
            "admin_difficulty": map_numeric_to_admin_difficulty(question.estimated_difficulty),
            "category": topic,
            "question_type": question_type,
            "status": STATUS_TO_REVIEW,
            "ai_provider": provider,
            "mitre_techniques": question.mitre_techniques,
            "tags": question.tags,
        }
        if slot is not None:
            payload.update(
                {
                    "difficulty": slot.difficulty_score,
                    "admin_difficulty": slot.difficulty,
                    "generation_domain": slot.domain,
                    "generation_skill_type": slot.skill_type,
                    "generation_difficulty": slot.difficulty,
                    "generation_granularity": slot.granularity,
                }
            )

        try:
            response = execute_query(self._client.table(QUESTIONS_TABLE).insert(payload), "insert")
        except APIError as e:
            raise QuestionWriteError(f"Failed to insert question: {e.message}") from e

        if not response.data:
            raise QuestionWriteError("Insert returned no row")

        return response.data[0]["id"]


class GenerationLogRepository:
    """Records one row per pool maintenance run. Write failures are logged, not raised."""

    def __init__(self, supabase_client: Client):
        self._client = supabase_client

    def start(
        self,
        settings_id: Any,
        topic: str,
        difficulty: str,
        batch_size: int,
        pool_size_before: int,
    ) -> Optional[Any]:
        payload = {
            "settings_id": settings_id,
            "topic": topic,
            "difficulty": difficulty,
            "batch_size": batch_size,
            "generated_count": 0,
            "saved_count": 0,
            "failed_count": 0,
            "pool_size_before_gen": pool_size_before,
            "pool_size_after_gen": pool_size_before,
            "duration_ms": 0,
        }
        try:
            response = execute_query(self._client.table(GENERATION_LOGS_TABLE).insert(payload), "log start")
        except APIError as e:
            logger.warning(f"Failed to create generation log: {e.message}")
            return None

        return response.data[0]["id"] if response.data else None

    def finish(
        self,
        log_id: Optional[Any],
        generated: int,
        failed: int,
        pool_size_after: int,
        duration_ms: int,
        error: Optional[str] = None,
    ) -> None:
        if log_id is None:
            return

        update = {
            "generated_count": generated,
            "saved_count": generated,
            "failed_count": failed,
            "pool_size_after_gen": pool_size_after,
            "duration_ms": duration_ms,
            "completed_at": datetime.now(timezone.utc).isoformat(),
        }
        if error:
            update["error"] = error

        try:
            execute_query(
                self._client.table(GENERATION_LOGS_TABLE).update(update).eq("id", log_id),
                "log finish",
            )
        except APIError as e:
            logger.warning(f"Failed to update generation log {log_id}: {e.message}")
