# app/services/message_service.py
import logging
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import guards
from app.db.models import Message, utcnow
from app.db.repositories.conversation_repo import ConversationRepository, conversation_repo
from app.db.repositories.message_repo import MessageRepository, message_repo
from app.db.session import unit_of_work
from app.errors import NotFoundError, UnauthorizedError
from app.schemas.messages import MessageCreate, MessageUpdate
from app.utils.helpers import unique_ids

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(self, messages: MessageRepository, conversations: ConversationRepository):
        self.messages = messages
        self.conversations = conversations

    async def _get_own_message(self, session: AsyncSession, *, actor_id: str, message_id: str) -> Message:
        message = await self.messages.get_with_readers(session, id=message_id)
        if message is None:
            raise NotFoundError(f"Message with id {message_id} wasn't found")
        if not guards.is_sender(message, actor_id):
            raise UnauthorizedError("User is not authorized to make this request.")
        return message

    async def create_message(
        self, session: AsyncSession, *, sender_id: str, conversation_id: str, message_in: MessageCreate
    ) -> Message:
        """The sender is recorded as the first reader of their own message."""
        async with unit_of_work(session):
            conversation = await self.conversations.get_with_members(session, id=conversation_id)
            if conversation is None or not guards.is_participant(conversation, sender_id):
                raise NotFoundError(
                    f"Either conversation with id {conversation_id} wasn't found "
                    f"or user with id {sender_id} is not part of this conversation"
                )

            message = Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                text=message_in.text,
                img_url=message_in.img_url,
            )
            await self.messages.create(session, obj_in=message)
            await self.messages.add_reader(session, message_id=message.id, user_id=sender_id)

            conversation.updated_at = utcnow()
            session.add(conversation)

        return await self.messages.get_with_readers(session, id=message.id)

    async def edit_message(
        self, session: AsyncSession, *, actor_id: str, message_id: str, message_in: MessageUpdate
    ) -> Message:
        async with unit_of_work(session):
            message = await self._get_own_message(session, actor_id=actor_id, message_id=message_id)
            if message.deleted:
                raise UnauthorizedError("You can't edit a deleted message.")

            for field, value in message_in.model_dump(exclude_unset=True).items():
                setattr(message, field, value)
            session.add(message)

        return await self.messages.get_with_readers(session, id=message_id)

    async def delete_message(self, session: AsyncSession, *, actor_id: str, message_id: str) -> Message:
        """Soft delete. Deleting an already deleted message changes nothing."""
        async with unit_of_work(session):
            message = await self._get_own_message(session, actor_id=actor_id, message_id=message_id)
            if not message.deleted:
                message.deleted = True
                message.text = None
                message.img_url = None
                session.add(message)
                logger.info(f"Message {message_id} deleted by {actor_id}")

        return await self.messages.get_with_readers(session, id=message_id)

    async def mark_as_read(self, session: AsyncSession, *, reader_id: str, message_ids: List[str]) -> List[Message]:
        """
        Add the reader to each message's read receipts, one commit per message.

        Unknown messages, messages in conversations the reader is not part of,
        and deleted messages are skipped instead of failing the batch.
        """
        marked = []
        for message_id in unique_ids(message_ids):
            try:
                message = await self._mark_one(session, reader_id=reader_id, message_id=message_id)
            except SQLAlchemyError as e:
                logger.warning(f"Could not mark message {message_id} as read for {reader_id}: {e}")
                continue
            if message is not None:
                marked.append(message)
        return marked

    async def _mark_one(self, session: AsyncSession, *, reader_id: str, message_id: str) -> Optional[Message]:
        async with unit_of_work(session):
            message = await self.messages.get_with_conversation(session, id=message_id)
            if message is None or not guards.is_participant(message.conversation, reader_id):
                logger.debug(f"Skipping read receipt for inaccessible message {message_id}")
                return None
            if message.deleted:
                logger.debug(f"Skipping read receipt for deleted message {message_id}")
                return None
            if reader_id not in {str(user.id) for user in message.read_by}:
                await self.messages.add_reader(session, message_id=message_id, user_id=reader_id)

        return await self.messages.get_with_readers(session, id=message_id)

    async def detach_user(self, session: AsyncSession, *, user_id: str) -> None:
        """Drop a deleted account's read receipts and sender references; runs in the caller's unit of work."""
        await self.messages.forget_reader(session, user_id=user_id)
        await self.messages.orphan_sender(session, user_id=user_id)


message_service = MessageService(message_repo, conversation_repo)
