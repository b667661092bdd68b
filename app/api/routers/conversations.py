# app/api/routers/conversations.py
from fastapi import APIRouter, Depends, status
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.core.auth import get_current_user
from app.api.deps import require_self
from app.schemas.auth import StatusResponseModel, TokenUser
from app.schemas.conversations import (
    ConversationCreate,
    ConversationDetail,
    ConversationPublic,
    ConversationSummary,
    ConversationUpdate,
)
from app.services.admin_service import admin_service
from app.services.membership_service import membership_service

router = APIRouter()


@router.get("/user/{user_id}", response_model=List[ConversationSummary])
async def get_user_conversations(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(require_self),
):
    """
    All conversations of the caller, each with its 10 most recent messages.
    """
    return await membership_service.get_user_conversations(session, user_id=user_id)


@router.get("/{conversation_id}/user/{user_id}", response_model=ConversationDetail)
async def get_user_conversation(
    conversation_id: str,
    user_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(require_self),
):
    """
    A single conversation with members, admins and its full message history.
    """
    return await membership_service.get_user_conversation(
        session, user_id=user_id, conversation_id=conversation_id
    )


@router.post("/", response_model=ConversationDetail, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    conversation_in: ConversationCreate,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await membership_service.create_conversation(
        session, creator_id=current_user.id, conversation_in=conversation_in
    )


@router.patch("/{conversation_id}/info", response_model=ConversationPublic)
async def update_title_and_image(
    conversation_id: str,
    conversation_in: ConversationUpdate,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await admin_service.update_title_and_image(
        session,
        actor_id=current_user.id,
        conversation_id=conversation_id,
        conversation_in=conversation_in,
    )


@router.delete("/{conversation_id}", response_model=StatusResponseModel)
async def delete_conversation(
    conversation_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    await membership_service.delete_conversation(
        session, actor_id=current_user.id, conversation_id=conversation_id
    )
    return StatusResponseModel(status=True, message="Conversation was deleted")


@router.patch("/{conversation_id}/leave", response_model=StatusResponseModel)
async def leave_group(
    conversation_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    await membership_service.leave_group(session, user_id=current_user.id, conversation_id=conversation_id)
    return StatusResponseModel(status=True, message="You left the group conversation.")


@router.patch("/{conversation_id}/user/{user_id}/remove", response_model=ConversationPublic)
async def remove_user_from_group(
    conversation_id: str,
    user_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await membership_service.remove_member(
        session, actor_id=current_user.id, conversation_id=conversation_id, user_id=user_id
    )


@router.patch("/{conversation_id}/user/{user_id}/add", response_model=ConversationPublic)
async def add_user_to_group(
    conversation_id: str,
    user_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await membership_service.add_member(
        session, actor_id=current_user.id, conversation_id=conversation_id, user_id=user_id
    )


@router.patch("/{conversation_id}/user/{user_id}/admingive", response_model=ConversationPublic)
async def grant_admin_status(
    conversation_id: str,
    user_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await admin_service.grant_admin(
        session, actor_id=current_user.id, conversation_id=conversation_id, user_id=user_id
    )


@router.patch("/{conversation_id}/user/{user_id}/adminremove", response_model=ConversationPublic)
async def remove_admin_status(
    conversation_id: str,
    user_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await admin_service.revoke_admin(
        session, actor_id=current_user.id, conversation_id=conversation_id, user_id=user_id
    )
