from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from demo_service.db.models import User
from demo_service.repositories.users import UserRepository


logger = structlog.get_logger(__name__)


class UserNotFoundError(Exception):
    def __init__(self, user_id: int):
        super().__init__(f"User not found with id: {user_id}")
        self.user_id = user_id


class DuplicateUserError(Exception):
    """Raised when a username or email is already taken by another user."""

    def __init__(self, field: str, value: str):
        super().__init__(f"{field.capitalize()} already exists: {value}")
        self.field = field
        self.value = value


@dataclass
class UserFields:
    username: str
    email: str
    first_name: str
    last_name: str
    # None on update means "keep the stored value"
    is_active: bool | None = True


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)

    async def find_all_users(self) -> list[User]:
        return await self.users.find_all()

    async def find_active_users(self) -> list[User]:
        return await self.users.find_active()

    async def find_by_id(self, user_id: int) -> User | None:
        return await self.users.get_by_id(user_id)

    async def find_by_username(self, username: str) -> User | None:
        return await self.users.get_by_username(username)

    async def find_by_email(self, email: str) -> User | None:
        return await self.users.get_by_email(email)

    async def search_by_name(self, name: str) -> list[User]:
        return await self.users.search_by_name(name)

    async def count_active_users(self) -> int:
        return await self.users.count_active()

    async def create_user(self, fields: UserFields) -> User:
        if await self.users.exists_by_username(fields.username):
            raise DuplicateUserError("username", fields.username)
        if await self.users.exists_by_email(fields.email):
            raise DuplicateUserError("email", fields.email)

        user = User(
            username=fields.username,
            email=fields.email,
            first_name=fields.first_name,
            last_name=fields.last_name,
            is_active=True if fields.is_active is None else fields.is_active,
        )
        try:
            user = await self.users.save(user)
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same username or email
            raise await self._duplicate_after_conflict(fields) from exc
        logger.info("user.created", user_id=user.id, username=user.username)
        return user

    async def update_user(self, user_id: int, fields: UserFields) -> User:
        existing = await self.users.get_by_id(user_id)
        if existing is None:
            raise UserNotFoundError(user_id)

        # Only check uniqueness for values that actually change
        if existing.username != fields.username and await self.users.exists_by_username(fields.username):
            raise DuplicateUserError("username", fields.username)
        if existing.email != fields.email and await self.users.exists_by_email(fields.email):
            raise DuplicateUserError("email", fields.email)

        existing.username = fields.username
        existing.email = fields.email
        existing.first_name = fields.first_name
        existing.last_name = fields.last_name
        if fields.is_active is not None:
            existing.is_active = fields.is_active

        try:
            user = await self.users.save(existing)
        except IntegrityError as exc:
            raise await self._duplicate_after_conflict(fields, user_id=user_id) from exc
        logger.info("user.updated", user_id=user.id)
        return user

    async def delete_user(self, user_id: int) -> None:
        if not await self.users.exists_by_id(user_id):
            raise UserNotFoundError(user_id)
        await self.users.delete_by_id(user_id)
        logger.info("user.deleted", user_id=user_id)

    async def deactivate_user(self, user_id: int) -> None:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        user.is_active = False
        await self.users.save(user)
        logger.info("user.deactivated", user_id=user_id)

    async def _duplicate_after_conflict(self, fields: UserFields, *, user_id: int | None = None) -> DuplicateUserError:
        """Name the column a unique-constraint violation was raised for."""
        holder = await self.users.get_by_username(fields.username)
        if holder is not None and holder.id != user_id:
            return DuplicateUserError("username", fields.username)
        return DuplicateUserError("email", fields.email)
