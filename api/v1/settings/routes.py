import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from postgrest.exceptions import APIError

from api.v1.pool.dependencies import get_pool_controller, get_settings_repository
from api.v1.pool.service import PoolMaintenanceController
from services.errors import StoreUnavailableError
from services.generation_settings import (
    GenerationSettings,
    GenerationSettingsUpdate,
    SettingsRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generation-settings", tags=["generation_settings"])

SETTINGS_QUERY_FAILED = "Internal server error querying generation settings"


async def _refill_buffer(controller: PoolMaintenanceController) -> None:
    try:
        result = await controller.ensure_buffer_filled()
    except (StoreUnavailableError, APIError) as e:
        logger.error(f"Buffer refill after settings update failed: {e}")
        return
    logger.info(f"Buffer refill after settings update: {result.outcome.value}")


@router.get("", response_model=GenerationSettings)
def get_generation_settings(
    settings_repository: SettingsRepository = Depends(get_settings_repository),
) -> GenerationSettings:
    try:
        return settings_repository.read()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    except APIError as e:
        logger.error(f"Error reading generation settings: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=SETTINGS_QUERY_FAILED
        ) from e


@router.post("", response_model=GenerationSettings)
def update_generation_settings(
    changes: GenerationSettingsUpdate,
    background_tasks: BackgroundTasks,
    settings_repository: SettingsRepository = Depends(get_settings_repository),
    controller: PoolMaintenanceController = Depends(get_pool_controller),
) -> GenerationSettings:
    """
    Partially update the generation settings. Out-of-range values are
    rejected with 422 by the request model. Turning auto-refill on refills
    the review buffer once the response is sent.
    """
    try:
        updated = settings_repository.update(changes)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    except APIError as e:
        logger.error(f"Error updating generation settings: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=SETTINGS_QUERY_FAILED
        ) from e

    if changes.auto_refill_enabled:
        background_tasks.add_task(_refill_buffer, controller)
    return updated
