from fastapi import APIRouter, Depends, status
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.core.auth import get_current_user
from app.schemas.auth import TokenUser
from app.schemas.messages import MarkReadRequest, MessageCreate, MessagePublic, MessageUpdate
from app.services.message_service import message_service

router = APIRouter()


@router.post("/conversation/{conversation_id}", response_model=MessagePublic, status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: str,
    message_in: MessageCreate,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await message_service.create_message(
        session, sender_id=current_user.id, conversation_id=conversation_id, message_in=message_in
    )


@router.patch("/markread", response_model=List[MessagePublic])
async def mark_messages_as_read(
    read_in: MarkReadRequest,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    """Best effort: messages the caller cannot see are skipped, not reported."""
    return await message_service.mark_as_read(
        session, reader_id=current_user.id, message_ids=read_in.message_ids
    )


@router.patch("/{message_id}/edit", response_model=MessagePublic)
async def edit_message(
    message_id: str,
    message_in: MessageUpdate,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await message_service.edit_message(
        session, actor_id=current_user.id, message_id=message_id, message_in=message_in
    )


@router.patch("/{message_id}/delete", response_model=MessagePublic)
async def delete_message(
    message_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    return await message_service.delete_message(session, actor_id=current_user.id, message_id=message_id)
