from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict


class UserCreateModel(BaseModel):
    first_name: str = Field(min_length=3, max_length=30)
    last_name: Optional[str] = Field(default=None, max_length=30)
    email: EmailStr = Field(max_length=100)
    password: str = Field(min_length=6, max_length=100)
    img_url: Optional[str] = Field(default=None, max_length=500)
    about: Optional[str] = Field(default=None, max_length=120)

    model_config = {
        "json_schema_extra": {
            "example": {
                "first_name": "John",
                "last_name": "Doe",
                "email": "johndoe123@co.com",
                "password": "testpass123",
                "about": "Hey there!",
            }
        }
    }


class UserLoginModel(BaseModel):
    email: EmailStr = Field(max_length=100)
    password: str = Field(min_length=6, max_length=100)

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "johndoe123@co.com",
                "password": "testpass123",
            }
        }
    }


class UserUpdateModel(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=3, max_length=30)
    last_name: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = Field(default=None, max_length=100)
    password: Optional[str] = Field(default=None, min_length=6, max_length=100)
    img_url: Optional[str] = Field(default=None, max_length=500)
    about: Optional[str] = Field(default=None, max_length=120)


class UserPublic(BaseModel):
    """Profile fields only; email and password hash never leave the auth boundary."""
    id: str
    first_name: str
    last_name: Optional[str] = None
    img_url: Optional[str] = None
    about: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TokenResponseModel(BaseModel):
    access_token: str
    token_type: str = "bearer"


class StatusResponseModel(BaseModel):
    status: bool
    message: str


class TokenUser(BaseModel):
    id: str
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    img_url: Optional[str] = None
    about: Optional[str] = None
    access_token: Optional[str] = None
    token_type: Optional[str] = "bearer"

    model_config = ConfigDict(from_attributes=True)
