from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from social_chat.domain.entities.identity import Identity


@dataclass(frozen=True, slots=True)
class MessageView:
    id: UUID
    seq: int
    sender: Identity
    content: str
    timestamp: datetime
    read_by: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ConversationView:
    """Conversation with participants, admin and senders resolved to identities."""

    id: UUID
    chat_type: str
    participants: list[Identity]
    group_name: str | None
    group_admin: Identity | None
    messages: list[MessageView]
    last_message: MessageView | None
    last_updated: datetime
    created_at: datetime
