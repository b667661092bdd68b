import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, Relationship, SQLModel


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Link Models for Many-to-Many Relationships
class ConversationUserLink(SQLModel, table=True):
    conversation_id: str = Field(foreign_key="conversation.id", primary_key=True)
    user_id: str = Field(foreign_key="user.id", primary_key=True, index=True)
    joined_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class ConversationAdminLink(SQLModel, table=True):
    conversation_id: str = Field(foreign_key="conversation.id", primary_key=True)
    user_id: str = Field(foreign_key="user.id", primary_key=True, index=True)


class MessageReadLink(SQLModel, table=True):
    message_id: str = Field(foreign_key="message.id", primary_key=True)
    user_id: str = Field(foreign_key="user.id", primary_key=True, index=True)
    read_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


# Main Models
class User(SQLModel, table=True):
    id: str = Field(default_factory=generate_uuid, primary_key=True, index=True)
    first_name: str = Field(index=True)
    last_name: Optional[str] = Field(default=None, index=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    img_url: Optional[str] = None
    about: Optional[str] = None

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True))
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), onupdate=utcnow)
    )


class Conversation(SQLModel, table=True):
    id: str = Field(default_factory=generate_uuid, primary_key=True, index=True)
    name: Optional[str] = None
    img_url: Optional[str] = None
    is_group: bool = Field(default=False)
    # compare-and-set counter for membership/admin mutations
    version: int = Field(default=1)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True))
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), onupdate=utcnow)
    )

    users: List[User] = Relationship(link_model=ConversationUserLink)
    admins: List[User] = Relationship(link_model=ConversationAdminLink)
    messages: List["Message"] = Relationship(
        back_populates="conversation",
        sa_relationship_kwargs={"order_by": "Message.created_at"},
    )


class Message(SQLModel, table=True):
    id: str = Field(default_factory=generate_uuid, primary_key=True, index=True)
    conversation_id: str = Field(foreign_key="conversation.id", index=True)
    # null once the sending account has been deleted
    sender_id: Optional[str] = Field(foreign_key="user.id", default=None, index=True)
    text: Optional[str] = None
    img_url: Optional[str] = None
    deleted: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), index=True)
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), onupdate=utcnow)
    )

    conversation: Conversation = Relationship(back_populates="messages")
    read_by: List[User] = Relationship(link_model=MessageReadLink)
