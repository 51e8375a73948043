from __future__ import annotations

import uuid
from datetime import datetime, timezone

from social_chat.application.exceptions import ValidationError
from social_chat.application.policies.permissions import assert_conversation_access
from social_chat.application.uow import UnitOfWork
from social_chat.config import settings
from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.message import Message


def _validate_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise ValidationError("Message content is required")
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message content exceeds {settings.MESSAGE_MAX_LENGTH} characters"
        )
    return content


async def append_message(
    conversation_id: uuid.UUID,
    sender_id: str,
    content: str | None,
    uow: UnitOfWork,
) -> tuple[Message, Conversation]:
    """Append a message at the next position of the conversation log.

    The conversation row stays locked from the participancy check until commit,
    so concurrent appends to one conversation are applied one at a time and
    their seq values reflect that order.
    """
    conversation = await uow.conversations_w.lock(conversation_id)
    try:
        assert_conversation_access(sender_id, conversation)
        body = _validate_content(content)
    except Exception:
        await uow.rollback()
        raise

    now = datetime.now(timezone.utc)
    seq = await uow.conversations_w.reserve_seq(conversation_id, now)
    message = await uow.messages_w.append(
        Message(
            id=uuid.uuid4(),
            conversation_id=conversation_id,
            seq=seq,
            sender_id=sender_id,
            content=body,
            created_at=now,
        )
    )
    await uow.commit()
    return message, conversation  # type: ignore[return-value]
