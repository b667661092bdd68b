import logging
from typing import List, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import guards
from app.core.auth import create_access_token, generate_passwd_hash, verify_password
from app.db.models import User
from app.db.repositories.user_repo import UserRepository, user_repo
from app.db.session import unit_of_work
from app.errors import ConflictError, InvalidCredentials, NotFoundError, UnauthorizedError
from app.schemas.auth import UserCreateModel, UserLoginModel, UserUpdateModel
from app.services.membership_service import MembershipService, membership_service
from app.services.message_service import MessageService, message_service

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        users: UserRepository,
        membership: MembershipService,
        messages: MessageService,
    ):
        self.users = users
        self.membership = membership
        self.messages = messages

    async def get_user_by_email(self, email: str, session: AsyncSession):
        """Retrieve a user by their email address."""
        return await self.users.get_by_email(session, email=email)

    async def user_exists(self, email: str, session: AsyncSession) -> bool:
        """Check if a user with the given email already exists."""
        user = await self.get_user_by_email(email, session)
        return user is not None

    async def create_user(self, user_data: UserCreateModel, session: AsyncSession) -> Tuple[User, str]:
        """Create a new user in the database and issue their first token."""
        if await self.user_exists(user_data.email, session):
            raise ConflictError("User with this email already exists")

        try:
            async with unit_of_work(session):
                new_user = User(
                    first_name=user_data.first_name,
                    last_name=user_data.last_name,
                    email=user_data.email,
                    hashed_password=generate_passwd_hash(user_data.password),
                    img_url=user_data.img_url,
                    about=user_data.about,
                )
                await self.users.create(session, obj_in=new_user)
        except IntegrityError:
            raise ConflictError("User with this email already exists")

        logger.info(f"Created user {new_user.id}")
        return new_user, create_access_token(new_user)

    async def login(self, login_data: UserLoginModel, session: AsyncSession) -> str:
        user = await self.get_user_by_email(login_data.email, session)
        if not user:
            raise NotFoundError(f"User with email: {login_data.email} wasn't found")

        if not verify_password(login_data.password, user.hashed_password):
            raise InvalidCredentials()

        return create_access_token(user)

    async def list_users(self, session: AsyncSession) -> List[User]:
        return await self.users.get_all_ordered(session)

    async def search_users(self, name: str, session: AsyncSession) -> List[User]:
        return await self.users.search_by_name(session, name=name)

    async def update_user(
        self, session: AsyncSession, *, actor_id: str, user_id: str, user_data: UserUpdateModel
    ) -> Tuple[User, str]:
        """Partial self update; returns the user and a token carrying the new profile."""
        if not guards.is_self(actor_id, user_id):
            raise UnauthorizedError("User is not authorized to make this request.")

        changes = user_data.model_dump(exclude_unset=True)
        try:
            async with unit_of_work(session):
                user = await self.users.get(session, user_id)
                if user is None:
                    raise NotFoundError(f"User with id {user_id} wasn't found")

                email = changes.get("email")
                if email and email != user.email:
                    other = await self.users.get_by_email(session, email=email)
                    if other is not None and other.id != user.id:
                        raise ConflictError("User with this email already exists")

                password = changes.pop("password", None)
                if password:
                    user.hashed_password = generate_passwd_hash(password)

                for field, value in changes.items():
                    # first name and email are required columns
                    if value is None and field in ("first_name", "email"):
                        continue
                    setattr(user, field, value)
                session.add(user)
        except IntegrityError:
            raise ConflictError("User with this email already exists")

        logger.info(f"Updated user {user_id}")
        return user, create_access_token(user)

    async def delete_user(self, session: AsyncSession, *, actor_id: str, user_id: str) -> None:
        """Delete the account and detach it from every conversation and read receipt."""
        if not guards.is_self(actor_id, user_id):
            raise UnauthorizedError("User is not authorized to make this request.")

        async with unit_of_work(session):
            user = await self.users.get(session, user_id)
            if user is None:
                raise NotFoundError(f"User with id {user_id} wasn't found")

            await self.membership.detach_user(session, user_id=user_id)
            await self.messages.detach_user(session, user_id=user_id)
            await self.users.delete(session, obj=user)

        logger.info(f"Deleted user {user_id}")


user_service = UserService(user_repo, membership_service, message_service)
