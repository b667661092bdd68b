# app/api/routers/users.py
from fastapi import APIRouter, Depends, status
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.core.auth import get_current_user
from app.api.deps import require_self
from app.schemas.auth import (
    StatusResponseModel,
    TokenResponseModel,
    TokenUser,
    UserCreateModel,
    UserLoginModel,
    UserPublic,
    UserUpdateModel,
)
from app.services.user_service import user_service

router = APIRouter()


@router.post("/", response_model=TokenResponseModel, status_code=status.HTTP_201_CREATED)
async def signup(user_in: UserCreateModel, session: AsyncSession = Depends(get_session)):
    """
    Register a new user and return a bearer token for them.
    """
    _, token = await user_service.create_user(user_in, session)
    return TokenResponseModel(access_token=token)


@router.post("/login", response_model=TokenResponseModel)
async def login(form_data: UserLoginModel, session: AsyncSession = Depends(get_session)):
    token = await user_service.login(form_data, session)
    return TokenResponseModel(access_token=token)


@router.get("/", response_model=List[UserPublic])
async def list_users(
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    """
    Get all users, public profile fields only.
    """
    return await user_service.list_users(session)


@router.get("/name/{name}", response_model=List[UserPublic])
async def search_users_by_name(
    name: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(get_current_user),
):
    """
    Search users by first or last name.
    """
    return await user_service.search_users(name, session)


@router.patch("/{user_id}", response_model=TokenResponseModel)
async def update_user(
    user_id: str,
    user_in: UserUpdateModel,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(require_self),
):
    _, token = await user_service.update_user(
        session, actor_id=current_user.id, user_id=user_id, user_data=user_in
    )
    return TokenResponseModel(access_token=token)


@router.delete("/{user_id}", response_model=StatusResponseModel)
async def delete_user(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: TokenUser = Depends(require_self),
):
    await user_service.delete_user(session, actor_id=current_user.id, user_id=user_id)
    return StatusResponseModel(status=True, message=f"User with id: {user_id} was deleted")
