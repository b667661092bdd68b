# tests/services/test_membership_service.py
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import guards
from app.db.models import Conversation, Message
from app.db.repositories.conversation_repo import conversation_repo
from app.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from app.schemas.conversations import ConversationCreate
from app.schemas.messages import MessageCreate
from app.services.membership_service import membership_service
from app.services.message_service import message_service


def assert_invariants(conversation):
    assert conversation.is_group == (len(guards.member_ids(conversation)) > 2)
    assert guards.admin_ids(conversation) <= guards.member_ids(conversation)
    if conversation.is_group and len(guards.member_ids(conversation)) >= 2:
        assert guards.admin_ids(conversation)


async def _count(session: AsyncSession, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_group_conversation(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")

    conversation = await make_conversation(a, [a, b, c], admins=[a], name="Trip")

    assert conversation.is_group is True
    assert conversation.name == "Trip"
    assert guards.member_ids(conversation) == {a.id, b.id, c.id}
    assert guards.admin_ids(conversation) == {a.id}
    assert conversation.messages == []
    assert_invariants(conversation)


@pytest.mark.asyncio
async def test_direct_conversation_ignores_supplied_admins(db_session, make_user, make_conversation):
    a, b = await make_user("Alice"), await make_user("Bob")

    conversation = await make_conversation(a, [a, b], admins=[a, b])

    assert conversation.is_group is False
    assert guards.admin_ids(conversation) == set()


@pytest.mark.asyncio
async def test_create_conversation_removes_duplicate_ids(db_session, make_user):
    a, b = await make_user("Alice"), await make_user("Bob")

    conversation = await membership_service.create_conversation(
        db_session,
        creator_id=a.id,
        conversation_in=ConversationCreate(user_ids=[a.id, b.id, a.id, b.id], admin_ids=[a.id, a.id]),
    )

    assert conversation.is_group is False
    assert len(conversation.users) == 2


@pytest.mark.asyncio
async def test_create_conversation_requires_two_distinct_members(db_session, make_user):
    a = await make_user("Alice")

    with pytest.raises(ValidationError):
        await membership_service.create_conversation(
            db_session, creator_id=a.id, conversation_in=ConversationCreate(user_ids=[a.id, a.id])
        )


@pytest.mark.asyncio
async def test_create_conversation_requires_creator_membership(db_session, make_user):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")

    with pytest.raises(ValidationError):
        await membership_service.create_conversation(
            db_session, creator_id=a.id, conversation_in=ConversationCreate(user_ids=[b.id, c.id])
        )


@pytest.mark.asyncio
async def test_create_group_requires_creator_as_admin(db_session, make_user):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")

    with pytest.raises(ValidationError):
        await membership_service.create_conversation(
            db_session,
            creator_id=a.id,
            conversation_in=ConversationCreate(user_ids=[a.id, b.id, c.id], admin_ids=[b.id]),
        )


@pytest.mark.asyncio
async def test_create_group_rejects_admin_outside_membership(db_session, make_user):
    a, b, c, d = await make_user("Alice"), await make_user("Bob"), await make_user("Carol"), await make_user("Dave")

    with pytest.raises(ValidationError):
        await membership_service.create_conversation(
            db_session,
            creator_id=a.id,
            conversation_in=ConversationCreate(user_ids=[a.id, b.id, c.id], admin_ids=[a.id, d.id]),
        )


@pytest.mark.asyncio
async def test_create_conversation_with_unknown_user_creates_nothing(db_session, make_user):
    a, b = await make_user("Alice"), await make_user("Bob")

    with pytest.raises(NotFoundError):
        await membership_service.create_conversation(
            db_session,
            creator_id=a.id,
            conversation_in=ConversationCreate(user_ids=[a.id, b.id, "missing-user"], admin_ids=[a.id]),
        )

    assert await _count(db_session, Conversation) == 0


@pytest.mark.asyncio
async def test_admin_adds_member(db_session, make_user, make_conversation):
    a, b, c, d = await make_user("Alice"), await make_user("Bob"), await make_user("Carol"), await make_user("Dave")
    conversation = await make_conversation(a, [a, b, c], admins=[a])

    updated = await membership_service.add_member(db_session, actor_id=a.id, conversation_id=conversation.id, user_id=d.id)

    assert guards.member_ids(updated) == {a.id, b.id, c.id, d.id}
    assert guards.admin_ids(updated) == {a.id}


@pytest.mark.asyncio
async def test_add_existing_member_conflicts(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b, c], admins=[a])

    with pytest.raises(ConflictError):
        await membership_service.add_member(db_session, actor_id=a.id, conversation_id=conversation.id, user_id=b.id)


@pytest.mark.asyncio
async def test_non_admin_cannot_add_member(db_session, make_user, make_conversation):
    a, b, c, d = await make_user("Alice"), await make_user("Bob"), await make_user("Carol"), await make_user("Dave")
    conversation = await make_conversation(a, [a, b, c], admins=[a])

    with pytest.raises(UnauthorizedError):
        await membership_service.add_member(db_session, actor_id=b.id, conversation_id=conversation.id, user_id=d.id)


@pytest.mark.asyncio
async def test_add_member_to_direct_conversation_fails(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b])

    with pytest.raises(ValidationError):
        await membership_service.add_member(db_session, actor_id=a.id, conversation_id=conversation.id, user_id=c.id)


@pytest.mark.asyncio
async def test_outsider_sees_conversation_as_missing(db_session, make_user, make_conversation):
    a, b, c, d = await make_user("Alice"), await make_user("Bob"), await make_user("Carol"), await make_user("Dave")
    conversation = await make_conversation(a, [a, b, c], admins=[a])

    with pytest.raises(NotFoundError):
        await membership_service.add_member(db_session, actor_id=d.id, conversation_id=conversation.id, user_id=d.id)
    with pytest.raises(NotFoundError):
        await membership_service.add_member(db_session, actor_id=a.id, conversation_id="missing", user_id=d.id)


@pytest.mark.asyncio
async def test_remove_member_drops_admin_status(db_session, make_user, make_conversation):
    a, b, c, d = await make_user("Alice"), await make_user("Bob"), await make_user("Carol"), await make_user("Dave")
    conversation = await make_conversation(a, [a, b, c, d], admins=[a, b])

    updated = await membership_service.remove_member(db_session, actor_id=a.id, conversation_id=conversation.id, user_id=b.id)

    assert guards.member_ids(updated) == {a.id, c.id, d.id}
    assert guards.admin_ids(updated) == {a.id}
    assert updated.is_group is True
    assert_invariants(updated)


@pytest.mark.asyncio
async def test_removing_down_to_two_members_makes_conversation_direct(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b, c], admins=[a, b])

    updated = await membership_service.remove_member(db_session, actor_id=a.id, conversation_id=conversation.id, user_id=c.id)

    assert guards.member_ids(updated) == {a.id, b.id}
    assert updated.is_group is False
    assert guards.admin_ids(updated) == set()
    assert_invariants(updated)

    # a former admin can no longer leave it like a group
    with pytest.raises(ValidationError):
        await membership_service.leave_group(db_session, user_id=a.id, conversation_id=conversation.id)


@pytest.mark.asyncio
async def test_remove_self_must_use_leave(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b, c], admins=[a, b])

    with pytest.raises(ValidationError):
        await membership_service.remove_member(db_session, actor_id=a.id, conversation_id=conversation.id, user_id=a.id)


@pytest.mark.asyncio
async def test_remove_non_member_is_not_found(db_session, make_user, make_conversation):
    a, b, c, d = await make_user("Alice"), await make_user("Bob"), await make_user("Carol"), await make_user("Dave")
    conversation = await make_conversation(a, [a, b, c], admins=[a])

    with pytest.raises(NotFoundError):
        await membership_service.remove_member(db_session, actor_id=a.id, conversation_id=conversation.id, user_id=d.id)


@pytest.mark.asyncio
async def test_sole_admin_cannot_leave_while_members_remain(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b, c], admins=[a])

    with pytest.raises(ValidationError):
        await membership_service.leave_group(db_session, user_id=a.id, conversation_id=conversation.id)

    unchanged = await conversation_repo.get_with_members(db_session, id=conversation.id)
    assert guards.member_ids(unchanged) == {a.id, b.id, c.id}


@pytest.mark.asyncio
async def test_leave_direct_conversation_is_rejected(db_session, make_user, make_conversation):
    a, b = await make_user("Alice"), await make_user("Bob")
    conversation = await make_conversation(a, [a, b], admins=[a, b])

    with pytest.raises(ValidationError):
        await membership_service.leave_group(db_session, user_id=a.id, conversation_id=conversation.id)


@pytest.mark.asyncio
async def test_admin_leaves_after_handing_over(db_session, make_user, make_conversation):
    a, b, c, d = await make_user("Alice"), await make_user("Bob"), await make_user("Carol"), await make_user("Dave")
    conversation = await make_conversation(a, [a, b, c, d], admins=[a, b])

    await membership_service.leave_group(db_session, user_id=a.id, conversation_id=conversation.id)

    remaining = await conversation_repo.get_with_members(db_session, id=conversation.id)
    assert guards.member_ids(remaining) == {b.id, c.id, d.id}
    assert guards.admin_ids(remaining) == {b.id}
    assert remaining.is_group is True
    assert_invariants(remaining)


@pytest.mark.asyncio
async def test_leaving_down_to_two_members_makes_conversation_direct(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b, c], admins=[a])

    await membership_service.leave_group(db_session, user_id=c.id, conversation_id=conversation.id)

    remaining = await conversation_repo.get_with_members(db_session, id=conversation.id)
    assert guards.member_ids(remaining) == {a.id, b.id}
    assert remaining.is_group is False
    assert guards.admin_ids(remaining) == set()
    assert_invariants(remaining)


@pytest.mark.asyncio
async def test_admin_deletes_group_with_messages(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b, c], admins=[a])
    await message_service.create_message(
        db_session, sender_id=b.id, conversation_id=conversation.id, message_in=MessageCreate(text="hi")
    )

    await membership_service.delete_conversation(db_session, actor_id=a.id, conversation_id=conversation.id)

    assert await _count(db_session, Conversation) == 0
    assert await _count(db_session, Message) == 0


@pytest.mark.asyncio
async def test_delete_conversation_requires_admin_and_group(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    group = await make_conversation(a, [a, b, c], admins=[a])
    direct = await make_conversation(a, [a, b])

    with pytest.raises(UnauthorizedError):
        await membership_service.delete_conversation(db_session, actor_id=b.id, conversation_id=group.id)
    with pytest.raises(ValidationError):
        await membership_service.delete_conversation(db_session, actor_id=a.id, conversation_id=direct.id)


@pytest.mark.asyncio
async def test_stale_snapshot_is_rejected(db_session, session_maker, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b, c], admins=[a])
    snapshot = await conversation_repo.get_with_members(db_session, id=conversation.id)

    async with session_maker() as other:
        concurrent = await conversation_repo.get_with_members(other, id=conversation.id)
        assert await conversation_repo.bump_version(other, conversation=concurrent)
        await other.commit()

    with pytest.raises(ConflictError):
        await membership_service.claim_version(db_session, snapshot)


@pytest.mark.asyncio
async def test_user_conversations_show_ten_newest_messages(db_session, make_user, make_conversation):
    a, b = await make_user("Alice"), await make_user("Bob")
    conversation = await make_conversation(a, [a, b])
    for i in range(12):
        await message_service.create_message(
            db_session, sender_id=a.id, conversation_id=conversation.id, message_in=MessageCreate(text=f"message {i}")
        )

    summaries = await membership_service.get_user_conversations(db_session, user_id=b.id)

    assert len(summaries) == 1
    assert len(summaries[0].messages) == 10
    assert summaries[0].messages[0].text == "message 11"
    assert summaries[0].messages[-1].text == "message 2"


@pytest.mark.asyncio
async def test_user_conversation_detail_hidden_from_outsiders(db_session, make_user, make_conversation):
    a, b, c = await make_user("Alice"), await make_user("Bob"), await make_user("Carol")
    conversation = await make_conversation(a, [a, b])

    detail = await membership_service.get_user_conversation(db_session, user_id=b.id, conversation_id=conversation.id)
    assert detail.id == conversation.id

    with pytest.raises(NotFoundError):
        await membership_service.get_user_conversation(db_session, user_id=c.id, conversation_id=conversation.id)
