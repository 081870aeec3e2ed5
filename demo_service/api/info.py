from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from typing_extensions import TypedDict

import structlog
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from demo_service.db.base import get_session
from demo_service.services.users import UserService
from demo_service.utils.config import Settings, get_settings


logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["system"])


class HealthChecks(TypedDict, total=False):
    config: bool
    db: bool


class InfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    application: str
    version: str
    timestamp: datetime
    status: str
    total_users: int = Field(..., alias="totalUsers")


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: str
    checks: HealthChecks


class EchoResponse(BaseModel):
    received: Dict[str, Any]
    timestamp: datetime
    service: str


@router.get("/info", response_model=InfoResponse, response_model_by_alias=True)
async def info(
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_session),
) -> InfoResponse:
    total_users = await UserService(session).count_active_users()
    return InfoResponse(
        application=settings.app_name,
        version=settings.app_version,
        timestamp=datetime.now(),
        status="running",
        total_users=total_users,
    )


@router.get("/health", response_model=HealthResponse)
async def health(
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_session),
) -> HealthResponse:
    """Return basic service health.

    - Confirms config loads
    - Probes the database with a trivial query; a failed probe is reported
      but does not flip the overall status
    """
    db_ok = True
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db_ok = False
        logger.warning("health_check.db_unavailable", error=str(exc))

    checks: HealthChecks = {
        "config": True,  # settings loaded if we are here
        "db": db_ok,
    }
    payload: dict[str, Any] = {
        "status": "UP",
        "service": settings.app_name,
        "timestamp": datetime.now().isoformat(),
        "checks": checks,
    }

    logger.info("health_check", **payload)
    return HealthResponse(**payload)


@router.post("/echo", response_model=EchoResponse)
def echo(
    payload: Dict[str, Any] = Body(...),
    settings: Settings = Depends(get_settings),
) -> EchoResponse:
    return EchoResponse(received=payload, timestamp=datetime.now(), service=settings.app_name)
