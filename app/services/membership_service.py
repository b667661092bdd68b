# app/services/membership_service.py
import logging
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import guards
from app.core.config import settings
from app.db.models import Conversation
from app.db.repositories.conversation_repo import ConversationRepository, conversation_repo
from app.db.repositories.message_repo import MessageRepository, message_repo
from app.db.repositories.user_repo import UserRepository, user_repo
from app.db.session import unit_of_work
from app.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from app.schemas.conversations import ConversationCreate, ConversationSummary
from app.utils.helpers import unique_ids

logger = logging.getLogger(__name__)


class MembershipService:
    """Creates conversations and moves users in and out of them."""

    def __init__(
        self,
        conversations: ConversationRepository,
        users: UserRepository,
        messages: MessageRepository,
    ):
        self.conversations = conversations
        self.users = users
        self.messages = messages

    # Shared checks, also used by the admin engine

    async def load_for_actor(
        self, session: AsyncSession, *, conversation_id: str, actor_id: str
    ) -> Conversation:
        """
        Load and lock a conversation the actor belongs to.

        A missing conversation and one the actor is not part of look the same
        to the caller, so existence is not leaked to outsiders.
        """
        conversation = await self.conversations.get_with_members(
            session, id=conversation_id, for_update=True
        )
        if conversation is None or not guards.is_participant(conversation, actor_id):
            raise NotFoundError(
                f"Either conversation with id {conversation_id} wasn't found "
                f"or user with id {actor_id} is not part of this conversation"
            )
        return conversation

    @staticmethod
    def require_group(conversation: Conversation, message: str = "This is not a group conversation") -> None:
        if not conversation.is_group:
            raise ValidationError(message)

    @staticmethod
    def require_admin(conversation: Conversation, actor_id: str, message: str) -> None:
        if not guards.is_admin(conversation, actor_id):
            raise UnauthorizedError(message)

    async def claim_version(self, session: AsyncSession, conversation: Conversation) -> None:
        if not await self.conversations.bump_version(session, conversation=conversation):
            raise ConflictError(
                f"Conversation with id {conversation.id} was modified by another request. Please retry."
            )

    async def settle_group(self, session: AsyncSession, conversation: Conversation) -> bool:
        """
        Re-derive the group flag after a member left; returns whether it is still a group.

        A group that is down to two members or fewer becomes a direct
        conversation and loses its admin set.
        """
        if not conversation.is_group:
            return False
        if await self.conversations.count_members(session, conversation_id=conversation.id) > 2:
            return True
        await self.conversations.make_direct(session, conversation_id=conversation.id)
        logger.info(f"Conversation {conversation.id} is now a direct conversation")
        return False

    # Operations

    async def create_conversation(
        self, session: AsyncSession, *, creator_id: str, conversation_in: ConversationCreate
    ) -> Conversation:
        user_ids = unique_ids(conversation_in.user_ids)
        admin_ids = unique_ids(conversation_in.admin_ids)

        if len(user_ids) < 2:
            raise ValidationError("There have to be at least two users to create a conversation")

        if creator_id not in user_ids:
            raise ValidationError("user_ids must contain the id of the user creating a conversation")

        is_group = len(user_ids) > 2
        if is_group:
            if creator_id not in admin_ids:
                raise ValidationError("admin_ids must contain the id of the user creating a group conversation")
            if not set(admin_ids).issubset(user_ids):
                raise ValidationError("Every admin must also be a member of the conversation")
        else:
            # direct conversations never have admins
            admin_ids = []

        async with unit_of_work(session):
            for user_id in user_ids:
                if await self.users.get(session, user_id) is None:
                    raise NotFoundError(f"User with id {user_id} wasn't found")

            conversation = Conversation(
                name=conversation_in.name,
                img_url=conversation_in.img_url,
                is_group=is_group,
            )
            await self.conversations.create(session, obj_in=conversation)
            for user_id in user_ids:
                await self.conversations.add_member(session, conversation_id=conversation.id, user_id=user_id)
            for admin_id in admin_ids:
                await self.conversations.add_admin(session, conversation_id=conversation.id, user_id=admin_id)

        logger.info(
            f"Conversation {conversation.id} created by {creator_id} "
            f"({len(user_ids)} members, group={is_group})"
        )
        return await self.conversations.get_for_user(session, id=conversation.id, user_id=creator_id)

    async def add_member(
        self, session: AsyncSession, *, actor_id: str, conversation_id: str, user_id: str
    ) -> Conversation:
        async with unit_of_work(session):
            conversation = await self.load_for_actor(session, conversation_id=conversation_id, actor_id=actor_id)
            self.require_group(conversation)
            self.require_admin(conversation, actor_id, "Only admins have permission to add users.")

            if guards.is_participant(conversation, user_id):
                raise ConflictError("This user is already in this group.")
            if await self.users.get(session, user_id) is None:
                raise NotFoundError(f"User with id {user_id} wasn't found")

            await self.claim_version(session, conversation)
            await self.conversations.add_member(session, conversation_id=conversation_id, user_id=user_id)

        logger.info(f"User {user_id} added to conversation {conversation_id} by {actor_id}")
        return await self.conversations.get_with_members(session, id=conversation_id)

    async def remove_member(
        self, session: AsyncSession, *, actor_id: str, conversation_id: str, user_id: str
    ) -> Conversation:
        if guards.is_self(actor_id, user_id):
            raise ValidationError("You can't leave the group this way. Use the leave endpoint instead.")

        async with unit_of_work(session):
            conversation = await self.load_for_actor(session, conversation_id=conversation_id, actor_id=actor_id)
            self.require_group(conversation)
            self.require_admin(conversation, actor_id, "Only admins have permission to remove users.")

            if not guards.is_participant(conversation, user_id):
                raise NotFoundError(f"User with id {user_id} is not part of this group conversation")

            await self.claim_version(session, conversation)
            await self.conversations.remove_member(session, conversation_id=conversation_id, user_id=user_id)
            await self.settle_group(session, conversation)

        logger.info(f"User {user_id} removed from conversation {conversation_id} by {actor_id}")
        return await self.conversations.get_with_members(session, id=conversation_id)

    async def leave_group(self, session: AsyncSession, *, user_id: str, conversation_id: str) -> None:
        async with unit_of_work(session):
            conversation = await self.load_for_actor(session, conversation_id=conversation_id, actor_id=user_id)
            self.require_group(conversation)

            if guards.is_sole_admin(conversation, user_id) and len(guards.member_ids(conversation)) > 1:
                raise ValidationError(
                    "You're trying to leave the group as the only admin user. "
                    "Try granting admin rights to another user before leaving the group."
                )

            await self.claim_version(session, conversation)
            await self.conversations.remove_member(session, conversation_id=conversation_id, user_id=user_id)
            await self.settle_group(session, conversation)

        logger.info(f"User {user_id} left conversation {conversation_id}")

    async def delete_conversation(self, session: AsyncSession, *, actor_id: str, conversation_id: str) -> None:
        async with unit_of_work(session):
            conversation = await self.load_for_actor(session, conversation_id=conversation_id, actor_id=actor_id)
            self.require_group(conversation, "You can only delete a group conversation")
            self.require_admin(conversation, actor_id, "Only admins have permission to delete group conversations")

            await self.conversations.delete_with_messages(session, conversation_id=conversation_id)

        logger.info(f"Conversation {conversation_id} deleted by {actor_id}")

    async def detach_user(self, session: AsyncSession, *, user_id: str) -> None:
        """
        Remove a user from every member and admin set ahead of account deletion.

        Runs inside the caller's unit of work. A group shrinking to two members
        becomes direct; a group that stays a group but loses its only admin
        gets its longest-standing member promoted.
        """
        for conversation_id in await self.conversations.list_ids_for_user(session, user_id=user_id):
            conversation = await self.conversations.get_with_members(
                session, id=conversation_id, for_update=True
            )
            was_sole_admin = guards.is_sole_admin(conversation, user_id)

            await self.claim_version(session, conversation)
            await self.conversations.remove_member(session, conversation_id=conversation_id, user_id=user_id)
            still_group = await self.settle_group(session, conversation)

            if still_group and was_sole_admin:
                successor = await self.conversations.get_longest_standing_member(
                    session, conversation_id=conversation_id
                )
                if successor is not None:
                    await self.conversations.add_admin(session, conversation_id=conversation_id, user_id=successor)
                    logger.info(f"User {successor} promoted to admin of conversation {conversation_id}")

    # Read views

    async def get_user_conversations(self, session: AsyncSession, *, user_id: str) -> List[ConversationSummary]:
        if await self.users.get(session, user_id) is None:
            raise NotFoundError(f"User with id {user_id} wasn't found")

        summaries = []
        for conversation in await self.conversations.list_for_user(session, user_id=user_id):
            recent = await self.messages.get_recent_for_conversation(
                session, conversation_id=conversation.id, limit=settings.SUMMARY_MESSAGE_LIMIT
            )
            summaries.append(ConversationSummary.from_conversation(conversation, recent))
        return summaries

    async def get_user_conversation(
        self, session: AsyncSession, *, user_id: str, conversation_id: str
    ) -> Conversation:
        conversation = await self.conversations.get_for_user(session, id=conversation_id, user_id=user_id)
        if conversation is None:
            raise NotFoundError(
                f"Conversation with id {conversation_id} for user with id {user_id} wasn't found"
            )
        return conversation


membership_service = MembershipService(conversation_repo, user_repo, message_repo)
