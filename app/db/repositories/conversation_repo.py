# app/db/repositories/conversation_repo.py
from typing import List, Optional
from sqlmodel import select
from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models import (
    Conversation,
    ConversationAdminLink,
    ConversationUserLink,
    Message,
    MessageReadLink,
)
from app.db.repositories.base import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    async def get_with_members(
        self, session: AsyncSession, *, id: str, for_update: bool = False
    ) -> Optional[Conversation]:
        """Load a conversation with its member and admin sets, optionally locking the row."""
        statement = (
            select(Conversation)
            .where(Conversation.id == id)
            .options(selectinload(Conversation.users), selectinload(Conversation.admins))
            .execution_options(populate_existing=True)
        )
        if for_update:
            statement = statement.with_for_update()
        result = await session.execute(statement)
        return result.scalars().first()

    async def get_for_user(
        self, session: AsyncSession, *, id: str, user_id: str
    ) -> Optional[Conversation]:
        """Full conversation (members, admins, ascending history) if `user_id` is a member."""
        statement = (
            select(Conversation)
            .join(ConversationUserLink, Conversation.id == ConversationUserLink.conversation_id)
            .where(Conversation.id == id, ConversationUserLink.user_id == user_id)
            .options(
                selectinload(Conversation.users),
                selectinload(Conversation.admins),
                selectinload(Conversation.messages).selectinload(Message.read_by),
            )
            .execution_options(populate_existing=True)
        )
        result = await session.execute(statement)
        return result.scalars().first()

    async def list_for_user(self, session: AsyncSession, *, user_id: str) -> List[Conversation]:
        statement = (
            select(Conversation)
            .join(ConversationUserLink, Conversation.id == ConversationUserLink.conversation_id)
            .where(ConversationUserLink.user_id == user_id)
            .options(selectinload(Conversation.users))
            .order_by(Conversation.updated_at.desc())
        )
        result = await session.execute(statement)
        return result.scalars().all()

    async def list_ids_for_user(self, session: AsyncSession, *, user_id: str) -> List[str]:
        statement = select(ConversationUserLink.conversation_id).where(ConversationUserLink.user_id == user_id)
        result = await session.execute(statement)
        return list(result.scalars().all())

    async def get_longest_standing_member(
        self, session: AsyncSession, *, conversation_id: str
    ) -> Optional[str]:
        statement = (
            select(ConversationUserLink.user_id)
            .where(ConversationUserLink.conversation_id == conversation_id)
            .order_by(ConversationUserLink.joined_at.asc(), ConversationUserLink.user_id.asc())
            .limit(1)
        )
        result = await session.execute(statement)
        return result.scalars().first()

    async def add_member(self, session: AsyncSession, *, conversation_id: str, user_id: str) -> None:
        session.add(ConversationUserLink(conversation_id=conversation_id, user_id=user_id))
        await session.flush()

    async def remove_member(self, session: AsyncSession, *, conversation_id: str, user_id: str) -> None:
        """Disconnect the user from both the member and the admin set."""
        await session.execute(
            delete(ConversationAdminLink).where(
                ConversationAdminLink.conversation_id == conversation_id,
                ConversationAdminLink.user_id == user_id,
            )
        )
        await session.execute(
            delete(ConversationUserLink).where(
                ConversationUserLink.conversation_id == conversation_id,
                ConversationUserLink.user_id == user_id,
            )
        )

    async def add_admin(self, session: AsyncSession, *, conversation_id: str, user_id: str) -> None:
        session.add(ConversationAdminLink(conversation_id=conversation_id, user_id=user_id))
        await session.flush()

    async def remove_admin(self, session: AsyncSession, *, conversation_id: str, user_id: str) -> None:
        await session.execute(
            delete(ConversationAdminLink).where(
                ConversationAdminLink.conversation_id == conversation_id,
                ConversationAdminLink.user_id == user_id,
            )
        )

    async def count_members(self, session: AsyncSession, *, conversation_id: str) -> int:
        statement = select(func.count()).select_from(ConversationUserLink).where(
            ConversationUserLink.conversation_id == conversation_id
        )
        result = await session.execute(statement)
        return result.scalar_one()

    async def make_direct(self, session: AsyncSession, *, conversation_id: str) -> None:
        """Turn a group into a direct conversation, which has no admins."""
        await session.execute(
            delete(ConversationAdminLink).where(ConversationAdminLink.conversation_id == conversation_id)
        )
        await session.execute(
            update(Conversation).where(Conversation.id == conversation_id).values(is_group=False)
        )

    async def bump_version(self, session: AsyncSession, *, conversation: Conversation) -> bool:
        """
        Compare-and-set the conversation version.

        Returns False when another transaction changed the conversation after
        it was loaded, in which case nothing is written.
        """
        expected = conversation.version
        result = await session.execute(
            update(Conversation)
            .where(Conversation.id == conversation.id, Conversation.version == expected)
            .values(version=expected + 1)
        )
        return result.rowcount == 1

    async def delete_with_messages(self, session: AsyncSession, *, conversation_id: str) -> None:
        """Hard delete a conversation, its messages, their read receipts and its link rows."""
        message_ids = select(Message.id).where(Message.conversation_id == conversation_id)
        await session.execute(
            delete(MessageReadLink)
            .where(MessageReadLink.message_id.in_(message_ids))
            .execution_options(synchronize_session="fetch")
        )
        await session.execute(
            delete(Message)
            .where(Message.conversation_id == conversation_id)
            .execution_options(synchronize_session="fetch")
        )
        await session.execute(
            delete(ConversationAdminLink).where(ConversationAdminLink.conversation_id == conversation_id)
        )
        await session.execute(
            delete(ConversationUserLink).where(ConversationUserLink.conversation_id == conversation_id)
        )
        await session.execute(delete(Conversation).where(Conversation.id == conversation_id))


conversation_repo = ConversationRepository(Conversation)
