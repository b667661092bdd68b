# tests/conftest.py
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///:memory:")

import uuid
import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.main import app
from app.core.auth import decode_token
from app.core.config import settings
from app.db.session import get_session
from app.db.models import User
from app.schemas.conversations import ConversationCreate
from app.services.membership_service import membership_service

# Use an in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture(scope="function")
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession):
    async def _make_user(first_name: str = "Tester", last_name: str | None = None) -> User:
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=f"{uuid.uuid4().hex[:10]}@example.com",
            hashed_password="hashed_password",
        )
        db_session.add(user)
        await db_session.commit()
        # detached, so a rolled back operation later in the test cannot expire it
        db_session.expunge(user)
        return user

    return _make_user


@pytest.fixture
def make_conversation(db_session: AsyncSession):
    async def _make_conversation(creator: User, members: list, admins: list | None = None, name: str | None = None):
        conversation_in = ConversationCreate(
            name=name,
            user_ids=[user.id for user in members],
            admin_ids=[user.id for user in (admins or [])],
        )
        conversation = await membership_service.create_conversation(
            db_session, creator_id=creator.id, conversation_in=conversation_in
        )
        db_session.expunge(conversation)
        return conversation

    return _make_conversation


@pytest.fixture
def register(client: AsyncClient):
    """Sign a user up through the API; returns their id and auth headers."""
    async def _register(first_name: str = "Tester", email: str | None = None, password: str = "strongpassword"):
        user_data = {
            "first_name": first_name,
            "email": email or f"{uuid.uuid4().hex[:10]}@example.com",
            "password": password,
        }
        response = await client.post("/api/users/", json=user_data)
        assert response.status_code == 201
        token = response.json()["access_token"]
        user_id = decode_token(token, settings)["id"]
        return user_id, {"Authorization": f"Bearer {token}"}

    return _register
