"""
Shared fixtures for unit tests.

The pool maintenance controller is wired to in-memory fakes; Supabase and the
AI providers are never contacted.
"""

from unittest.mock import MagicMock

import pytest

from api.v1.pool.service import PoolMaintenanceController
from services.generation_settings import GenerationSettings
from tests.utils.fakes import FakeGenerationClient, FakeQuestionStore, FakeSettingsRepository


@pytest.fixture
def store() -> FakeQuestionStore:
    return FakeQuestionStore(initial_pool=45)


@pytest.fixture
def settings_repository() -> FakeSettingsRepository:
    return FakeSettingsRepository(
        GenerationSettings(id="settings-1", target_pool_size=50, max_concurrent_generation=5)
    )


@pytest.fixture
def generation_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def log_repository() -> MagicMock:
    repository = MagicMock()
    repository.start.return_value = "log-1"
    return repository


@pytest.fixture
def make_controller(store, settings_repository, generation_client, log_repository):
    """Build a controller; keyword arguments override the default fakes."""

    def _make(**overrides) -> PoolMaintenanceController:
        params = {
            "store": store,
            "settings_repository": settings_repository,
            "generation_client": generation_client,
            "log_repository": log_repository,
            "call_timeout": 5.0,
            "max_batches_per_run": 10,
        }
        params.update(overrides)
        return PoolMaintenanceController(**params)

    return _make


@pytest.fixture
def controller(make_controller) -> PoolMaintenanceController:
    return make_controller()
