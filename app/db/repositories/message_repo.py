# app/db/repositories/message_repo.py
from typing import List, Optional
from sqlmodel import select
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models import Conversation, Message, MessageReadLink
from app.db.repositories.base import BaseRepository

class MessageRepository(BaseRepository[Message]):
    async def get_with_readers(self, session: AsyncSession, *, id: str) -> Optional[Message]:
        statement = (
            select(Message)
            .where(Message.id == id)
            .options(selectinload(Message.read_by))
            .execution_options(populate_existing=True)
        )
        result = await session.execute(statement)
        return result.scalars().first()

    async def get_with_conversation(self, session: AsyncSession, *, id: str) -> Optional[Message]:
        """Message, its readers, and the member set of its conversation."""
        statement = (
            select(Message)
            .where(Message.id == id)
            .options(
                selectinload(Message.read_by),
                selectinload(Message.conversation).selectinload(Conversation.users),
            )
            .execution_options(populate_existing=True)
        )
        result = await session.execute(statement)
        return result.scalars().first()

    async def get_recent_for_conversation(
        self, session: AsyncSession, *, conversation_id: str, limit: int = 10
    ) -> List[Message]:
        """Most recent messages first."""
        statement = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .options(selectinload(Message.read_by))
            .order_by(Message.created_at.desc())
            .limit(limit)
        )
        result = await session.execute(statement)
        return result.scalars().all()

    async def add_reader(self, session: AsyncSession, *, message_id: str, user_id: str) -> None:
        session.add(MessageReadLink(message_id=message_id, user_id=user_id))
        await session.flush()

    async def forget_reader(self, session: AsyncSession, *, user_id: str) -> None:
        await session.execute(delete(MessageReadLink).where(MessageReadLink.user_id == user_id))

    async def orphan_sender(self, session: AsyncSession, *, user_id: str) -> None:
        """Keep the messages of a deleted account but drop the sender reference."""
        await session.execute(update(Message).where(Message.sender_id == user_id).values(sender_id=None))

message_repo = MessageRepository(Message)
