# app/api/deps.py
from fastapi import Depends

from app.core import guards
from app.core.auth import get_current_user
from app.errors import UnauthorizedError
from app.schemas.auth import TokenUser


def require_self(user_id: str, current_user: TokenUser = Depends(get_current_user)) -> TokenUser:
    """Gate routes whose `{user_id}` path parameter must be the caller."""
    if not guards.is_self(current_user.id, user_id):
        raise UnauthorizedError("User is not authorized to make this request.")
    return current_user
