"""
Structured generation space.

When enabled, each generated question is assigned a slot (domain, skill type,
difficulty, granularity) before the model is called. Slots used in the last
24 hours are avoided, so consecutive runs spread over the whole space instead
of repeating the configured topic.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional

from postgrest.exceptions import APIError
from pydantic import BaseModel
from supabase import Client

from services.question_store import execute_query

logger = logging.getLogger(__name__)

SLOT_HISTORY_TABLE = "generation_slot_history"
SLOT_HISTORY_WINDOW_HOURS = 24
SLOT_HISTORY_LIMIT = 100

DEFAULT_DOMAINS = [
    "Network Security",
    "Application Security",
    "Cloud Security",
    "Identity & Access",
    "Threat Intelligence",
    "Incident Response",
    "Cryptography",
    "Compliance & Governance",
]
DEFAULT_SKILL_TYPES = ["Detection", "Prevention", "Analysis", "Configuration", "Best Practices"]
DEFAULT_DIFFICULTIES = ["Beginner", "Intermediate", "Advanced", "Expert"]
DEFAULT_GRANULARITIES = ["Conceptual", "Procedural", "Technical", "Strategic"]

SLOT_DIFFICULTY_LEVELS = {
    "Beginner": "easy",
    "Intermediate": "medium",
    "Advanced": "hard",
    "Expert": "hard",
}
SLOT_DIFFICULTY_SCORES = {
    "Beginner": 0.25,
    "Intermediate": 0.50,
    "Advanced": 0.75,
    "Expert": 0.95,
}


class GenerationSlot(BaseModel):
    domain: str
    skill_type: str
    difficulty: str
    granularity: str

    @property
    def signature(self) -> tuple[str, str, str, str]:
        return (self.domain, self.skill_type, self.difficulty, self.granularity)

    @property
    def difficulty_level(self) -> str:
        """easy / medium / hard, as used by the prompts and settings."""
        return SLOT_DIFFICULTY_LEVELS.get(self.difficulty, "medium")

    @property
    def difficulty_score(self) -> float:
        return SLOT_DIFFICULTY_SCORES.get(self.difficulty, 0.5)

    @property
    def focus(self) -> str:
        return f"{self.skill_type}, {self.granularity.lower()} level"


class GenerationSpaceConfig(BaseModel):
    enabled: bool = False
    enabled_domains: List[str] = DEFAULT_DOMAINS
    enabled_skill_types: List[str] = DEFAULT_SKILL_TYPES
    enabled_difficulties: List[str] = DEFAULT_DIFFICULTIES
    enabled_granularities: List[str] = DEFAULT_GRANULARITIES

    def combinations(self) -> List[GenerationSlot]:
        return [
            GenerationSlot(domain=d, skill_type=s, difficulty=diff, granularity=g)
            for d in self.enabled_domains
            for s in self.enabled_skill_types
            for diff in self.enabled_difficulties
            for g in self.enabled_granularities
        ]


def select_generation_slot(
    config: GenerationSpaceConfig,
    recent: Iterable[GenerationSlot],
    rng: Optional[random.Random] = None,
) -> GenerationSlot:
    """
    Pick a random slot that is not in `recent`. When every combination was
    used recently the whole space is eligible again.

    Raises:
        ValueError: if one of the dimensions has no enabled values.
    """
    combinations = config.combinations()
    if not combinations:
        raise ValueError("No enabled values in generation space")

    used = {slot.signature for slot in recent}
    available = [slot for slot in combinations if slot.signature not in used]
    if not available:
        logger.info("Every generation slot was used recently, starting a new cycle")
        available = combinations

    return (rng or random).choice(available)


class SlotHistoryRepository:
    """Recently used slots. Reads and writes are best effort."""

    def __init__(self, supabase_client: Client):
        self._client = supabase_client

    def recent(
        self,
        window_hours: int = SLOT_HISTORY_WINDOW_HOURS,
        limit: int = SLOT_HISTORY_LIMIT,
    ) -> List[GenerationSlot]:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=window_hours)
        try:
            response = execute_query(
                self._client.table(SLOT_HISTORY_TABLE)
                .select("domain, skill_type, difficulty, granularity")
                .gte("used_at", cutoff.isoformat())
                .order("used_at", desc=True)
                .limit(limit),
                "slot history read",
            )
        except APIError as e:
            logger.warning(f"Failed to read generation slot history: {e.message}")
            return []

        return [GenerationSlot.model_validate(row) for row in response.data or []]

    def record(self, slot: GenerationSlot, question_id: Optional[Any] = None) -> None:
        payload = {
            **slot.model_dump(),
            "question_id": question_id,
            "used_at": datetime.now(timezone.utc).isoformat(),
        }
        # Rows older than twice the window are never read again.
        cutoff = datetime.now(timezone.utc) - timedelta(hours=SLOT_HISTORY_WINDOW_HOURS * 2)
        try:
            execute_query(self._client.table(SLOT_HISTORY_TABLE).insert(payload), "slot history write")
            execute_query(
                self._client.table(SLOT_HISTORY_TABLE).delete().lt("used_at", cutoff.isoformat()),
                "slot history cleanup",
            )
        except APIError as e:
            logger.warning(f"Failed to record generation slot: {e.message}")
