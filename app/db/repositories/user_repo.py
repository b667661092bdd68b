# app/db/repositories/user_repo.py
from typing import List, Optional
from sqlmodel import select
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import User
from app.db.repositories.base import BaseRepository

class UserRepository(BaseRepository[User]):
    async def get_by_email(self, session: AsyncSession, *, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        result = await session.execute(statement)
        return result.scalars().first()

    async def get_all_ordered(self, session: AsyncSession) -> List[User]:
        statement = select(User).order_by(User.first_name.desc())
        result = await session.execute(statement)
        return result.scalars().all()

    async def search_by_name(self, session: AsyncSession, *, name: str) -> List[User]:
        """Case-insensitive substring match on either first or last name."""
        pattern = f"%{name}%"
        statement = (
            select(User)
            .where(or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern)))
            .order_by(User.first_name.desc())
        )
        result = await session.execute(statement)
        return result.scalars().all()

user_repo = UserRepository(User)
