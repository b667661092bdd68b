# app/core/auth.py
import logging
from datetime import datetime, timedelta, timezone
import jwt
from passlib.context import CryptContext
from fastapi import Request, Depends
from fastapi.security import OAuth2PasswordBearer
from typing import Optional

from app.schemas.auth import TokenUser
from app.core.config import settings, Settings
from app.errors import UnAuthenticated, InvalidToken


passwd_context = CryptContext(schemes=["bcrypt"])
logger = logging.getLogger(__name__)


class OptionalOAuth2Scheme(OAuth2PasswordBearer):
    async def __call__(self, request: Request) -> Optional[str]:
        try:
            return await super().__call__(request)
        except Exception:
            return None

optional_oauth2_scheme = OptionalOAuth2Scheme(tokenUrl=f"{settings.API_V1_STR}/users/login")


def generate_passwd_hash(password: str) -> str:
    return passwd_context.hash(password)


def verify_password(password: str, hash: str) -> bool:
    return passwd_context.verify(password, hash)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and verify a bearer token; raises jwt.PyJWTError subclasses on failure."""
    if isinstance(token, str):
        token = token.encode("utf-8")
    return jwt.decode(jwt=token, key=settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_access_token(user, expires_delta: timedelta | None = None) -> str:
    """Turn a persisted user record into an opaque bearer credential."""
    expires = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": user.email,
        "id": str(user.id),
        "first_name": user.first_name,
        "last_name": user.last_name,
        "img_url": user.img_url,
        "about": user.about,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "exp": datetime.now(timezone.utc) + expires,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_current_user_dependency(settings: Settings):
    def get_current_user(
        request: Request,
        token: Optional[str] = Depends(optional_oauth2_scheme),
    ) -> TokenUser:
        access_token = token or request.cookies.get("access_token")

        if not access_token:
            raise UnAuthenticated(
                message="You are not authenticated. Please login to continue"
            )

        try:
            payload = decode_token(access_token, settings)
        except jwt.ExpiredSignatureError:
            raise InvalidToken()
        except jwt.PyJWTError as e:
            logger.warning(f"Rejected bearer token: {e}")
            raise InvalidToken()

        user_id = payload.get("id")
        if not user_id:
            raise InvalidToken()

        return TokenUser(
            id=user_id,
            email=payload.get("sub"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            img_url=payload.get("img_url"),
            about=payload.get("about"),
            access_token=access_token,
            token_type="bearer"
        )

    return get_current_user


get_current_user = get_current_user_dependency(settings=settings)
