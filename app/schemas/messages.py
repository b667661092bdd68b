from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

from app.schemas.auth import UserPublic


class MessageCreate(BaseModel):
    text: Optional[str] = Field(default=None, max_length=10000)
    img_url: Optional[str] = Field(default=None, max_length=500)


class MessageUpdate(BaseModel):
    text: Optional[str] = Field(default=None, max_length=10000)
    img_url: Optional[str] = Field(default=None, max_length=500)


class MarkReadRequest(BaseModel):
    message_ids: List[str]


class MessagePublic(BaseModel):
    id: str
    conversation_id: str
    sender_id: Optional[str] = None
    text: Optional[str] = None
    img_url: Optional[str] = None
    deleted: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    read_by: List[UserPublic] = []

    model_config = ConfigDict(from_attributes=True)
