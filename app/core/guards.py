# app/core/guards.py
"""
Authorization predicates.

Each guard is a pure function over a conversation or message snapshot that
the caller has already loaded, plus the acting user's id. Guards never touch
the database and never raise; the engines decide which error a failed guard
turns into.
"""
from typing import Any, Optional, Set


def _ids(users) -> Set[str]:
    return {str(user.id) for user in users or []}


def member_ids(conversation: Any) -> Set[str]:
    return _ids(conversation.users)


def admin_ids(conversation: Any) -> Set[str]:
    return _ids(conversation.admins)


def is_participant(conversation: Any, user_id: Optional[str]) -> bool:
    return user_id is not None and str(user_id) in member_ids(conversation)


def is_admin(conversation: Any, user_id: Optional[str]) -> bool:
    return user_id is not None and str(user_id) in admin_ids(conversation)


def is_sender(message: Any, user_id: Optional[str]) -> bool:
    return user_id is not None and message.sender_id is not None and str(message.sender_id) == str(user_id)


def is_self(actor_id: Optional[str], user_id: Optional[str]) -> bool:
    return actor_id is not None and user_id is not None and str(actor_id) == str(user_id)


def is_sole_admin(conversation: Any, user_id: Optional[str]) -> bool:
    """True when `user_id` is the only admin left."""
    return is_admin(conversation, user_id) and len(admin_ids(conversation)) == 1
