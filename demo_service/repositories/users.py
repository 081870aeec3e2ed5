from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from demo_service.db.models import User


class UserRepository:
    """Repository for the users table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_all(self) -> list[User]:
        res = await self.session.execute(select(User).order_by(User.id))
        return list(res.scalars().all())

    async def find_active(self) -> list[User]:
        stmt = select(User).where(User.is_active.is_(True)).order_by(User.id)
        res = await self.session.execute(stmt)
        return list(res.scalars().all())

    async def get_by_id(self, id: int) -> Optional[User]:
        stmt = select(User).where(User.id == id)
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(User.username == username)
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email)
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def search_by_name(self, name: str) -> list[User]:
        """Case-insensitive substring match on first or last name."""
        pattern = f"%{name.lower()}%"
        stmt = (
            select(User)
            .where(
                or_(
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
            .order_by(User.id)
        )
        res = await self.session.execute(stmt)
        return list(res.scalars().all())

    async def count_active(self) -> int:
        stmt = select(func.count()).select_from(User).where(User.is_active.is_(True))
        res = await self.session.execute(stmt)
        return int(res.scalar() or 0)

    async def exists_by_id(self, id: int) -> bool:
        stmt = select(User.id).where(User.id == id).limit(1)
        res = await self.session.execute(stmt)
        return res.first() is not None

    async def exists_by_username(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username).limit(1)
        res = await self.session.execute(stmt)
        return res.first() is not None

    async def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email).limit(1)
        res = await self.session.execute(stmt)
        return res.first() is not None

    async def save(self, user: User) -> User:
        """Insert or update a user and return the refreshed row."""
        self.session.add(user)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        await self.session.refresh(user)
        return user

    async def delete_by_id(self, id: int) -> None:
        try:
            await self.session.execute(delete(User).where(User.id == id))
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
