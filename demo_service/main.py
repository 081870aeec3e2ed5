from __future__ import annotations

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from demo_service.adapters.metrics import RequestMetrics
from demo_service.api.info import router as info_router
from demo_service.api.metrics import router as metrics_router
from demo_service.api.users import router as users_router
from demo_service.db.base import dispose_engine, get_engine
from demo_service.db.models import Base
from demo_service.middleware.request_metrics import RequestMetricsMiddleware
from demo_service.utils.config import get_settings


logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", *, json_logs: bool = True) -> None:
    """Configure structlog output.

    JSON lines by default; `json_logs=False` switches to the human-readable
    console renderer used for local development.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    if json_logs:
        processors += [
            structlog.processors.EventRenamer("message"),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Route stdlib records through the same stdout handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if settings.create_schema_on_startup:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("app.startup", app_env=settings.app_env, version=settings.app_version)
    yield
    await dispose_engine()
    logger.info(
        "app.shutdown",
        total_requests=app.state.request_metrics.get_request_count(),
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.app_env != "local")
    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    # Counters live for the lifetime of this app instance.
    app.state.request_metrics = RequestMetrics()
    app.add_middleware(RequestMetricsMiddleware, metrics=app.state.request_metrics)

    app.include_router(info_router)
    app.include_router(metrics_router)
    app.include_router(users_router)
    return app


app = create_app()
