from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from assessment_service.api.assessments import router as assessments_router
from assessment_service.api.health import router as health_router
from assessment_service.api.submissions import router as submissions_router
from assessment_service.core.config import SETTINGS
from assessment_service.core.logging import setup_logging
from assessment_service.db.engine import lifespan_db
from assessment_service.db.redis import lifespan_redis
from assessment_service.middleware.metrics import MetricsMiddleware
from assessment_service.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)
from assessment_service.services.backends import session_registry

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


def _idle_sweep_interval() -> float:
    # Sweep a few times per idle window, at most once a minute.
    return min(60.0, SETTINGS.session_idle_seconds / 4)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown runs in reverse order: open sessions flush their last
    # answers while the database is still up.
    async with lifespan_db():
        async with lifespan_redis():
            sweeper = asyncio.create_task(
                session_registry.run_idle_sweeper(_idle_sweep_interval())
            )
            try:
                yield
            finally:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
                await session_registry.shutdown()


app = FastAPI(
    title="assessment-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext → Metrics → CORS → route handler.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(health_router)
app.include_router(assessments_router)
app.include_router(submissions_router)

logger.info(
    "assessment-service started  env=%s log_level=%s port=%d quiet_period=%.1fs docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.autosave_quiet_seconds,
    "on" if SETTINGS.is_dev else "off",
)
