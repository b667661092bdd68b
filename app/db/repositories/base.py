# app/db/repositories/base.py
from typing import Generic, Type, TypeVar, Optional
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession

ModelType = TypeVar("ModelType", bound=SQLModel)

class BaseRepository(Generic[ModelType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, session: AsyncSession, id: str) -> Optional[ModelType]:
        return await session.get(self.model, id)

    async def create(self, session: AsyncSession, *, obj_in: ModelType) -> ModelType:
        """Stage a new row and flush it; the surrounding unit of work commits."""
        session.add(obj_in)
        await session.flush()
        return obj_in

    async def delete(self, session: AsyncSession, *, obj: ModelType) -> None:
        await session.delete(obj)
        await session.flush()
