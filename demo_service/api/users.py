from __future__ import annotations

from datetime import datetime
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from demo_service.db.base import get_session
from demo_service.services.users import DuplicateUserError, UserFields, UserNotFoundError, UserService


router = APIRouter(prefix="/api/users", tags=["users"])
logger = structlog.get_logger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserIn(_CamelModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., min_length=3, max_length=100, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    is_active: bool = True

    def to_fields(self) -> UserFields:
        return UserFields(
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            is_active=self.is_active,
        )


class UserUpdate(UserIn):
    # Omitted on update keeps the stored flag
    is_active: bool | None = None


class UserOut(_CamelModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


def _not_found(exc: UserNotFoundError) -> HTTPException:
    logger.info("user.not_found", user_id=exc.user_id)
    return HTTPException(status_code=404, detail=str(exc))


def _conflict(exc: DuplicateUserError) -> HTTPException:
    logger.info("user.conflict", field=exc.field, value=exc.value)
    return HTTPException(status_code=409, detail=str(exc))


@router.get("", response_model=List[UserOut], response_model_by_alias=True)
async def list_users(service: UserService = Depends(get_user_service)):
    return await service.find_all_users()


@router.get("/active", response_model=List[UserOut], response_model_by_alias=True)
async def list_active_users(service: UserService = Depends(get_user_service)):
    return await service.find_active_users()


@router.get("/search", response_model=List[UserOut], response_model_by_alias=True)
async def search_users(
    name: str = Query(..., min_length=1),
    service: UserService = Depends(get_user_service),
):
    return await service.search_by_name(name)


@router.get("/count/active", response_model=int)
async def count_active_users(service: UserService = Depends(get_user_service)) -> int:
    return await service.count_active_users()


@router.get("/username/{username}", response_model=UserOut, response_model_by_alias=True)
async def get_user_by_username(username: str, service: UserService = Depends(get_user_service)):
    user = await service.find_by_username(username)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User not found with username: {username}")
    return user


@router.get("/{user_id}", response_model=UserOut, response_model_by_alias=True)
async def get_user(user_id: int, service: UserService = Depends(get_user_service)):
    user = await service.find_by_id(user_id)
    if user is None:
        raise _not_found(UserNotFoundError(user_id))
    return user


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserOut, response_model_by_alias=True)
async def create_user(payload: UserIn, service: UserService = Depends(get_user_service)):
    try:
        return await service.create_user(payload.to_fields())
    except DuplicateUserError as exc:
        raise _conflict(exc)


@router.put("/{user_id}", response_model=UserOut, response_model_by_alias=True)
async def update_user(user_id: int, payload: UserUpdate, service: UserService = Depends(get_user_service)):
    try:
        return await service.update_user(user_id, payload.to_fields())
    except UserNotFoundError as exc:
        raise _not_found(exc)
    except DuplicateUserError as exc:
        raise _conflict(exc)


@router.put("/{user_id}/deactivate", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_user(user_id: int, service: UserService = Depends(get_user_service)) -> Response:
    try:
        await service.deactivate_user(user_id)
    except UserNotFoundError as exc:
        raise _not_found(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, service: UserService = Depends(get_user_service)) -> Response:
    try:
        await service.delete_user(user_id)
    except UserNotFoundError as exc:
        raise _not_found(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
