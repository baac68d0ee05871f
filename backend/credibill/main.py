"""Main module of the FastAPI application.

This module sets up the FastAPI application, the middleware to log incoming requests
and unhandled exceptions, and the billing scheduler that runs alongside the API.
"""

import os
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from credibill.api.middleware import (
    add_request_id,
    credibill_exception_handler,
    exception_logging_middleware,
    invalid_state_exception_handler,
    log_requests,
    not_found_exception_handler,
    validation_exception_handler,
)
from credibill.api.router import TrailingSlashRouter
from credibill.api.v1.api import api_router
from credibill.core.config import settings
from credibill.core.exceptions import CrediBillException, InvalidStateError, NotFoundException
from credibill.core.logging import logger
from credibill.db.init_db import init_db
from credibill.db.session import async_engine
from credibill.platform.scheduler import billing_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Runs alembic migrations, creates missing tables when asked to and runs the
    billing scheduler for the lifetime of the app.
    """
    if settings.RUN_ALEMBIC_MIGRATIONS:
        logger.info("Running alembic migrations...")
        env = os.environ.copy()
        backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        env["PYTHONPATH"] = backend_dir
        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            cwd=backend_dir,
            env=env,
        )
    if settings.CREATE_TABLES_ON_STARTUP:
        await init_db(async_engine)

    if settings.SCHEDULER_ENABLED:
        await billing_scheduler.start()

    yield

    if settings.SCHEDULER_ENABLED:
        await billing_scheduler.stop()


# Create FastAPI app with our custom router and disable FastAPI's built-in redirects
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
    router=TrailingSlashRouter(),
    redirect_slashes=False,
)

app.include_router(api_router)

# Register middleware directly
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)
app.exception_handler(CrediBillException)(credibill_exception_handler)
