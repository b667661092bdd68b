# app/core/config.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "GroupChat API"
    API_V1_STR: str = "/api"

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 10 # 10 days

    # Database
    DATABASE_URL_ASYNC: str = "sqlite+aiosqlite:///./chat.db"

    # CORS / hosts
    BACKEND_CORS_ORIGINS: List[str] = ["*"]
    ALLOWED_HOSTS: List[str] = ["*"]

    # Logging
    LOG_FILE: Optional[str] = None

    # Conversation summaries
    SUMMARY_MESSAGE_LIMIT: int = 10

    model_config = ConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
