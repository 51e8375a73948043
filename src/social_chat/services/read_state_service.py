from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Sequence

from social_chat.application.policies.permissions import assert_conversation_access
from social_chat.application.uow import UnitOfWork


async def mark_read(
    conversation_id: uuid.UUID,
    reader_id: str,
    uow: UnitOfWork,
    message_ids: Sequence[uuid.UUID] | None = None,
) -> int:
    """Mark messages (all of them when message_ids is None) as read by reader_id.

    Re-marking is a no-op; the return value counts only newly recorded reads.
    """
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_access(reader_id, conversation)
    added = await uow.read_receipts_w.mark_read(
        conversation_id,
        reader_id,
        message_ids,
        datetime.now(timezone.utc),
    )
    await uow.commit()
    return added
