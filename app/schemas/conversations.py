from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

from app.schemas.auth import UserPublic
from app.schemas.messages import MessagePublic


class ConversationCreate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=30)
    img_url: Optional[str] = Field(default=None, max_length=500)
    user_ids: List[str]
    admin_ids: List[str] = []

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Weekend trip",
                "user_ids": ["<creator-id>", "<friend-id>", "<other-friend-id>"],
                "admin_ids": ["<creator-id>"],
            }
        }
    }


class ConversationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=30)
    img_url: Optional[str] = Field(default=None, max_length=500)


class ConversationBase(BaseModel):
    id: str
    name: Optional[str] = None
    img_url: Optional[str] = None
    is_group: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    users: List[UserPublic] = []


class ConversationPublic(ConversationBase):
    admins: List[UserPublic] = []

    model_config = ConfigDict(from_attributes=True)


class ConversationDetail(ConversationPublic):
    messages: List[MessagePublic] = []


class ConversationSummary(ConversationBase):
    """A conversation with its members and newest messages first."""
    messages: List[MessagePublic] = []

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_conversation(cls, conversation, messages) -> "ConversationSummary":
        return cls(
            id=conversation.id,
            name=conversation.name,
            img_url=conversation.img_url,
            is_group=conversation.is_group,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            users=[UserPublic.model_validate(user) for user in conversation.users],
            messages=[MessagePublic.model_validate(message) for message in messages],
        )
