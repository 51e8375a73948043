from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Sequence

from social_chat.application.dto.conversation import ConversationView, MessageView
from social_chat.application.exceptions import ConflictRetry, NotFoundError, ValidationError
from social_chat.application.policies.permissions import (
    assert_conversation_access,
    assert_group_admin,
)
from social_chat.application.uow import UnitOfWork
from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.identity import Identity
from social_chat.domain.entities.message import Message
from social_chat.domain.value_objects.enums import ChatType
from social_chat.domain.value_objects.ids import pair_key

logger = logging.getLogger(__name__)


def _dedupe(user_ids: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for uid in user_ids:
        if uid:
            seen.setdefault(str(uid), None)
    return list(seen)


async def _require_users(user_ids: Sequence[str], uow: UnitOfWork) -> None:
    found = await uow.users.get_many(user_ids)
    missing = [uid for uid in user_ids if uid not in found]
    if missing:
        raise NotFoundError(f"User not found: {', '.join(missing)}")


async def get_or_create_individual(
    user_id: str,
    peer_id: str,
    uow: UnitOfWork,
) -> tuple[Conversation, bool]:
    """Return the individual conversation for the pair, creating it if needed.

    Returns (conversation, created). Two concurrent callers for the same pair end
    up with the same conversation: the loser of the insert race gets ConflictRetry
    from the writer and re-reads the winner's row.
    """
    if not peer_id:
        raise ValidationError("User ID is required")
    if user_id == peer_id:
        raise ValidationError("Cannot start a chat with yourself")

    key = pair_key(user_id, peer_id)
    existing = await uow.conversations.get_individual(key)
    if existing is not None:
        return existing, False

    await _require_users([peer_id], uow)

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        chat_type=ChatType.INDIVIDUAL,
        participant_ids=(user_id, peer_id),
        group_name=None,
        admin_id=None,
        pair_key=key,
        last_seq=0,
        last_activity_at=now,
        created_at=now,
    )
    try:
        conversation = await uow.conversations_w.create(conversation)
    except ConflictRetry:
        await uow.rollback()
        logger.debug("Individual chat %s created concurrently, re-reading", key)
        winner = await uow.conversations.get_individual(key)
        if winner is None:
            raise
        return winner, False

    await uow.commit()
    logger.info("Created individual chat %s for %s", conversation.id, key)
    return conversation, True


async def create_group(
    name: str | None,
    participant_ids: Sequence[str],
    admin_id: str,
    uow: UnitOfWork,
) -> Conversation:
    members = _dedupe(participant_ids)
    if admin_id not in members:
        members.append(admin_id)
    if len(members) < 2:
        raise ValidationError("A group chat needs at least 2 participants")

    await _require_users([m for m in members if m != admin_id], uow)

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        chat_type=ChatType.GROUP,
        participant_ids=tuple(members),
        group_name=name,
        admin_id=admin_id,
        pair_key=None,
        last_seq=0,
        last_activity_at=now,
        created_at=now,
    )
    conversation = await uow.conversations_w.create(conversation)
    await uow.commit()
    logger.info("Created group chat %s with %d participants", conversation.id, len(members))
    return conversation


async def get_conversation(
    conversation_id: uuid.UUID,
    requester_id: str,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    return assert_conversation_access(requester_id, conversation)


async def add_participants(
    conversation_id: uuid.UUID,
    requester_id: str,
    new_participants: Sequence[str],
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations_w.lock(conversation_id)
    additions: list[str] = []
    try:
        if conversation is None:
            raise NotFoundError("Chat not found")
        assert_group_admin(requester_id, conversation)
        additions = [
            uid for uid in _dedupe(new_participants)
            if not conversation.has_participant(uid)
        ]
        if additions:
            await _require_users(additions, uow)
    except Exception:
        await uow.rollback()
        raise

    if not additions:
        await uow.rollback()
        return conversation

    await uow.conversations_w.add_participants(conversation_id, additions)
    await uow.commit()
    logger.info("Added %d participants to chat %s", len(additions), conversation_id)
    return await uow.conversations.get_by_id(conversation_id)  # type: ignore[return-value]


async def list_user_conversations(
    user_id: str,
    uow: UnitOfWork,
) -> list[Conversation]:
    return await uow.conversations.list_for_user(user_id)


def _message_view(message: Message, users: dict[str, Identity]) -> MessageView:
    return MessageView(
        id=message.id,
        seq=message.seq,
        sender=users.get(message.sender_id) or Identity(id=message.sender_id, username=""),
        content=message.content,
        timestamp=message.created_at,
        read_by=list(message.read_by),
    )


async def describe(
    conversations: Sequence[Conversation],
    uow: UnitOfWork,
    *,
    with_messages: bool = False,
) -> list[ConversationView]:
    """Resolve participants, admins and senders into identities for output."""
    logs: dict[uuid.UUID, list[Message]] = {}
    if with_messages:
        for conv in conversations:
            logs[conv.id] = await uow.messages.list_messages(conv.id)
        latest = {cid: log[-1] for cid, log in logs.items() if log}
    else:
        latest = await uow.messages.latest_for([c.id for c in conversations])

    user_ids = {uid for c in conversations for uid in c.participant_ids}
    user_ids.update(c.admin_id for c in conversations if c.admin_id)
    user_ids.update(m.sender_id for log in logs.values() for m in log)
    user_ids.update(m.sender_id for m in latest.values())
    users = await uow.users.get_many(sorted(user_ids))

    def identity(uid: str) -> Identity:
        return users.get(uid) or Identity(id=uid, username="")

    views = []
    for conv in conversations:
        last = latest.get(conv.id)
        views.append(
            ConversationView(
                id=conv.id,
                chat_type=conv.chat_type,
                participants=[identity(uid) for uid in conv.participant_ids],
                group_name=conv.group_name,
                group_admin=identity(conv.admin_id) if conv.admin_id else None,
                messages=[_message_view(m, users) for m in logs.get(conv.id, [])],
                last_message=_message_view(last, users) if last else None,
                last_updated=conv.last_activity_at,
                created_at=conv.created_at,
            )
        )
    return views
