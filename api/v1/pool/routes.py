"""
Admin endpoints for pool maintenance: pause/resume, status, manual runs and
the review buffer.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from postgrest.exceptions import APIError

from ai.generation_client import GenerationClient
from services.errors import StoreUnavailableError
from services.generation_settings import SettingsRepository
from services.question_store import STATUS_TO_REVIEW, QuestionStore

from .dependencies import (
    get_ai_client,
    get_pool_controller,
    get_question_store,
    get_settings_repository,
)
from .models import MaintenanceResult, RunOutcome
from .service import PoolMaintenanceController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pool_maintenance"])

PROVIDER_NOT_READY = "AI provider not ready. Models may still be loading."
STORE_UNAVAILABLE = "Question store unavailable"
STORE_QUERY_FAILED = "Internal server error querying the question store"


def _store_query_failed(action: str, e: APIError) -> HTTPException:
    logger.error(f"Question store query failed during {action}: {e.message}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=STORE_QUERY_FAILED)


def _run_result(result: MaintenanceResult) -> MaintenanceResult:
    if result.outcome == RunOutcome.NO_PROVIDER:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=PROVIDER_NOT_READY)
    return result


@router.post("/generation/{action}")
def control_generation(
    action: str,
    controller: PoolMaintenanceController = Depends(get_pool_controller),
) -> dict:
    """Pause or resume automatic generation."""
    if action == "pause":
        flags = controller.pause_generation()
    elif action == "resume":
        flags = controller.resume_generation()
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid action. Use 'pause' or 'resume'",
        )
    return {"success": True, "action": action, **flags}


@router.get("/generation/status")
def generation_status(
    controller: PoolMaintenanceController = Depends(get_pool_controller),
    store: QuestionStore = Depends(get_question_store),
    settings_repository: SettingsRepository = Depends(get_settings_repository),
) -> dict:
    state = controller.get_generation_status()
    try:
        pool_size = store.count(STATUS_TO_REVIEW)
        settings = settings_repository.read()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE) from e
    except APIError as e:
        raise _store_query_failed("generation status", e) from e

    return {
        **state,
        "pool_size": pool_size,
        "target_pool_size": settings.target_pool_size,
        "settings": settings.model_dump(),
    }


@router.post("/maintain-pool", response_model=MaintenanceResult)
async def maintain_pool(
    controller: PoolMaintenanceController = Depends(get_pool_controller),
) -> MaintenanceResult:
    """Run one maintenance cycle and return its summary."""
    try:
        result = await controller.maintain_pool()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE) from e
    except APIError as e:
        raise _store_query_failed("pool maintenance", e) from e

    return _run_result(result)


@router.get("/buffer/status")
async def buffer_status(
    controller: PoolMaintenanceController = Depends(get_pool_controller),
    settings_repository: SettingsRepository = Depends(get_settings_repository),
) -> dict:
    """Review buffer fill level and the structured generation space in use."""
    try:
        buffer = await controller.get_buffer_status()
        settings = await asyncio.to_thread(settings_repository.read)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE) from e
    except APIError as e:
        raise _store_query_failed("buffer status", e) from e

    return {"buffer": buffer, "structured_space": settings.space_config().model_dump()}


@router.post("/buffer/refill", response_model=MaintenanceResult)
async def refill_buffer(
    controller: PoolMaintenanceController = Depends(get_pool_controller),
) -> MaintenanceResult:
    """Refill the review buffer now instead of waiting for the next tick."""
    logger.info("Manual buffer refill triggered")
    try:
        result = await controller.ensure_buffer_filled()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE) from e
    except APIError as e:
        raise _store_query_failed("buffer refill", e) from e

    return _run_result(result)


@router.get("/models/available")
async def available_models(client: GenerationClient = Depends(get_ai_client)) -> dict:
    providers = await client.available_providers()
    configured: list[dict[str, str | bool]] = [
        {"name": p.name, "model": p.model, "available": p.name in providers} for p in client.providers
    ]
    return {"available": providers, "providers": configured}
