# app/services/admin_service.py
import logging
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import guards
from app.db.models import Conversation
from app.db.repositories.conversation_repo import ConversationRepository, conversation_repo
from app.db.session import unit_of_work
from app.errors import ConflictError, NotFoundError, ValidationError
from app.schemas.conversations import ConversationUpdate
from app.services.membership_service import MembershipService, membership_service

logger = logging.getLogger(__name__)


class AdminService:
    """Grants and revokes admin rights and edits conversation info."""

    def __init__(self, conversations: ConversationRepository, membership: MembershipService):
        self.conversations = conversations
        self.membership = membership

    async def grant_admin(
        self, session: AsyncSession, *, actor_id: str, conversation_id: str, user_id: str
    ) -> Conversation:
        async with unit_of_work(session):
            conversation = await self.membership.load_for_actor(
                session, conversation_id=conversation_id, actor_id=actor_id
            )
            self.membership.require_group(conversation)
            self.membership.require_admin(
                conversation, actor_id, "Only admins have permission to grant admin status to users"
            )

            if not guards.is_participant(conversation, user_id):
                raise NotFoundError(f"User with id {user_id} is not part of this group conversation")
            if guards.is_admin(conversation, user_id):
                raise ConflictError("This user is already an admin")

            await self.membership.claim_version(session, conversation)
            await self.conversations.add_admin(session, conversation_id=conversation_id, user_id=user_id)

        logger.info(f"User {user_id} granted admin in conversation {conversation_id} by {actor_id}")
        return await self.conversations.get_with_members(session, id=conversation_id)

    async def revoke_admin(
        self, session: AsyncSession, *, actor_id: str, conversation_id: str, user_id: str
    ) -> Conversation:
        if guards.is_self(actor_id, user_id):
            raise ValidationError("You can't remove admin status for yourself")

        async with unit_of_work(session):
            conversation = await self.membership.load_for_actor(
                session, conversation_id=conversation_id, actor_id=actor_id
            )
            self.membership.require_group(conversation)
            self.membership.require_admin(
                conversation, actor_id, "Only admins have permission to remove user admin status"
            )

            if not guards.is_admin(conversation, user_id):
                raise ConflictError("This user is already not an admin")
            if guards.is_sole_admin(conversation, user_id):
                raise ValidationError("There must be at least one admin in a group conversation")

            await self.membership.claim_version(session, conversation)
            await self.conversations.remove_admin(session, conversation_id=conversation_id, user_id=user_id)

        logger.info(f"User {user_id} lost admin in conversation {conversation_id} (revoked by {actor_id})")
        return await self.conversations.get_with_members(session, id=conversation_id)

    async def update_title_and_image(
        self,
        session: AsyncSession,
        *,
        actor_id: str,
        conversation_id: str,
        conversation_in: ConversationUpdate,
    ) -> Conversation:
        """Partial update: only fields present in the request change."""
        async with unit_of_work(session):
            conversation = await self.membership.load_for_actor(
                session, conversation_id=conversation_id, actor_id=actor_id
            )
            self.membership.require_admin(
                conversation, actor_id, f"User with id {actor_id} is not an admin of this conversation"
            )

            changes = conversation_in.model_dump(exclude_unset=True)
            if changes:
                await self.membership.claim_version(session, conversation)
                for field, value in changes.items():
                    setattr(conversation, field, value)
                session.add(conversation)

        return await self.conversations.get_with_members(session, id=conversation_id)


admin_service = AdminService(conversation_repo, membership_service)
