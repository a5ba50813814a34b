from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from academy.api import errors
from academy.api.certificates import router as certificates_router
from academy.api.courses import router as courses_router
from academy.api.enrollments import router as enrollments_router
from academy.api.health import router as health_router
from academy.api.metrics_endpoint import router as metrics_router
from academy.api.payments import router as payments_router
from academy.api.progress import router as progress_router
from academy.api.quizzes import router as quizzes_router
from academy.core.config import SETTINGS
from academy.core.logging import setup_logging
from academy.db import unit_of_work
from academy.db.engine import lifespan_db
from academy.db.seed import seed_sample_catalog
from academy.middleware.metrics import MetricsMiddleware
from academy.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        if SETTINGS.is_dev and isinstance(unit_of_work.store, unit_of_work.InMemoryStore):
            await seed_sample_catalog(unit_of_work.store)
            logger.info("Seeded sample catalog into the in-memory store")
        yield


# only app setup + router registration

app = FastAPI(
    title="academy-enrollment",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) -> Metrics -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

errors.install(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(enrollments_router)
app.include_router(payments_router)
app.include_router(progress_router)
app.include_router(quizzes_router)
app.include_router(certificates_router)
app.include_router(courses_router)

logger.info(
    "academy-enrollment started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
