"""
Persisted generation settings (single row in `generation_settings`).
"""

import logging
from typing import Any, List, Literal, Optional

from postgrest.exceptions import APIError
from pydantic import BaseModel, Field
from supabase import Client

from services.generation_space import (
    DEFAULT_DIFFICULTIES,
    DEFAULT_DOMAINS,
    DEFAULT_GRANULARITIES,
    DEFAULT_SKILL_TYPES,
    GenerationSpaceConfig,
)
from services.question_store import execute_query

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "generation_settings"

DEFAULT_SETTINGS = {
    "target_pool_size": 50,
    "auto_generate_enabled": True,
    "generation_topic": "Cybersecurity",
    "generation_difficulty": "medium",
    "max_concurrent_generation": 5,
    "buffer_size": 10,
    "auto_refill_enabled": True,
    "default_model": "ollama",
    "structured_space_enabled": False,
    "enabled_domains": DEFAULT_DOMAINS,
    "enabled_skill_types": DEFAULT_SKILL_TYPES,
    "enabled_difficulties": DEFAULT_DIFFICULTIES,
    "enabled_granularities": DEFAULT_GRANULARITIES,
}


class GenerationSettings(BaseModel):
    """Generation settings as stored in Supabase."""

    id: Optional[Any] = None
    target_pool_size: int = DEFAULT_SETTINGS["target_pool_size"]
    auto_generate_enabled: bool = DEFAULT_SETTINGS["auto_generate_enabled"]
    generation_topic: str = DEFAULT_SETTINGS["generation_topic"]
    generation_difficulty: str = DEFAULT_SETTINGS["generation_difficulty"]
    max_concurrent_generation: int = DEFAULT_SETTINGS["max_concurrent_generation"]
    buffer_size: int = DEFAULT_SETTINGS["buffer_size"]
    auto_refill_enabled: bool = DEFAULT_SETTINGS["auto_refill_enabled"]
    default_model: Optional[str] = DEFAULT_SETTINGS["default_model"]
    structured_space_enabled: bool = DEFAULT_SETTINGS["structured_space_enabled"]
    enabled_domains: List[str] = DEFAULT_DOMAINS
    enabled_skill_types: List[str] = DEFAULT_SKILL_TYPES
    enabled_difficulties: List[str] = DEFAULT_DIFFICULTIES
    enabled_granularities: List[str] = DEFAULT_GRANULARITIES

    def space_config(self) -> GenerationSpaceConfig:
        return GenerationSpaceConfig(
            enabled=self.structured_space_enabled,
            enabled_domains=self.enabled_domains,
            enabled_skill_types=self.enabled_skill_types,
            enabled_difficulties=self.enabled_difficulties,
            enabled_granularities=self.enabled_granularities,
        )


class GenerationSettingsUpdate(BaseModel):
    """Partial update accepted from the admin UI."""

    target_pool_size: Optional[int] = Field(default=None, ge=1, le=500)
    auto_generate_enabled: Optional[bool] = None
    generation_topic: Optional[str] = Field(default=None, min_length=1, max_length=255)
    generation_difficulty: Optional[Literal["easy", "medium", "hard"]] = None
    max_concurrent_generation: Optional[int] = Field(default=None, ge=1, le=20)
    buffer_size: Optional[int] = Field(default=None, ge=1, le=500)
    auto_refill_enabled: Optional[bool] = None
    default_model: Optional[Literal["ollama", "gemini", "openai"]] = None
    structured_space_enabled: Optional[bool] = None
    enabled_domains: Optional[List[str]] = Field(default=None, min_length=1)
    enabled_skill_types: Optional[List[str]] = Field(default=None, min_length=1)
    enabled_difficulties: Optional[List[Literal["Beginner", "Intermediate", "Advanced", "Expert"]]] = Field(
        default=None, min_length=1
    )
    enabled_granularities: Optional[List[str]] = Field(default=None, min_length=1)


class SettingsRepository:
    def __init__(self, supabase_client: Client):
        self._client = supabase_client

    def read(self) -> GenerationSettings:
        """Return the settings row, creating it with defaults if none exists."""
        response = execute_query(
            self._client.table(SETTINGS_TABLE).select("*").limit(1),
            "settings read",
        )
        if response.data:
            return GenerationSettings.model_validate(response.data[0])

        logger.info("No generation settings found, creating defaults")
        try:
            created = execute_query(
                self._client.table(SETTINGS_TABLE).insert(DEFAULT_SETTINGS),
                "settings create",
            )
        except APIError as e:
            logger.warning(f"Failed to persist default settings: {e.message}")
            return GenerationSettings()

        if created.data:
            return GenerationSettings.model_validate(created.data[0])
        return GenerationSettings()

    def update(self, changes: GenerationSettingsUpdate) -> GenerationSettings:
        current = self.read()
        data = changes.model_dump(exclude_none=True)
        if not data:
            return current

        if current.id is None:
            query = self._client.table(SETTINGS_TABLE).insert({**DEFAULT_SETTINGS, **data})
        else:
            query = self._client.table(SETTINGS_TABLE).update(data).eq("id", current.id)

        response = execute_query(query, "settings update")
        logger.info("Generation settings updated", extra={"changes": data})

        if response.data:
            return GenerationSettings.model_validate(response.data[0])
        return current.model_copy(update=data)
