"""
Exposes the function to create the FastAPI application instance. To be used by main.py
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.v1.pool.dependencies import get_pool_controller
from api.v1.pool.scheduler import PoolMaintenanceScheduler
from api.v1.router import router as v1_router
from config.settings import (
    CORS_ORIGIN_REGEX,
    POOL_MAINTENANCE_ENABLED,
    POOL_MAINTENANCE_INTERVAL_SECONDS,
    PRODUCTION,
)

logger = logging.getLogger(__name__)


def create_app(start_maintenance: Optional[bool] = None) -> FastAPI:
    """
    The function to create the FastAPI application instance. To be used by main.py

    Args:
        start_maintenance: run the pool maintenance scheduler during the app
            lifespan. Defaults to POOL_MAINTENANCE_ENABLED.
    """
    if start_maintenance is None:
        start_maintenance = POOL_MAINTENANCE_ENABLED

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.pool_scheduler = None
        if start_maintenance:
            try:
                scheduler = PoolMaintenanceScheduler(
                    get_pool_controller(), POOL_MAINTENANCE_INTERVAL_SECONDS
                )
            except RuntimeError as e:
                logger.warning(f"Pool maintenance disabled: {e}")
            else:
                scheduler.start()
                app.state.pool_scheduler = scheduler

        yield

        if app.state.pool_scheduler is not None:
            await app.state.pool_scheduler.stop()

    app = FastAPI(title="Question Pool Service", lifespan=lifespan)

    app.include_router(v1_router)

    if PRODUCTION:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=CORS_ORIGIN_REGEX,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("🌐 Configuring CORS for production")
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],  # Development mode
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
