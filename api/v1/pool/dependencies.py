"""
Process-wide instances for the pool maintenance routes.

Overridden in tests through `app.dependency_overrides`.
"""

from functools import lru_cache

from ai.generation_client import GenerationClient, get_generation_client
from api.v1.auth import get_supabase_client
from config.settings import GENERATION_CALL_TIMEOUT_SECONDS, MAX_BATCHES_PER_RUN
from services.generation_settings import SettingsRepository
from services.generation_space import SlotHistoryRepository
from services.question_store import GenerationLogRepository, QuestionStore

from .service import PoolMaintenanceController


@lru_cache(maxsize=1)
def get_question_store() -> QuestionStore:
    return QuestionStore(get_supabase_client())


@lru_cache(maxsize=1)
def get_settings_repository() -> SettingsRepository:
    return SettingsRepository(get_supabase_client())


def get_ai_client() -> GenerationClient:
    return get_generation_client()


@lru_cache(maxsize=1)
def get_pool_controller() -> PoolMaintenanceController:
    """The single controller owning the generation flags for this process."""
    client = get_supabase_client()
    return PoolMaintenanceController(
        store=get_question_store(),
        settings_repository=get_settings_repository(),
        generation_client=get_generation_client(),
        log_repository=GenerationLogRepository(client),
        call_timeout=GENERATION_CALL_TIMEOUT_SECONDS,
        max_batches_per_run=MAX_BATCHES_PER_RUN,
        slot_history=SlotHistoryRepository(client),
    )
