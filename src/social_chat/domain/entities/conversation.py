from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from social_chat.domain.value_objects.enums import ChatType


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    chat_type: str
    participant_ids: tuple[str, ...]
    group_name: str | None
    admin_id: str | None
    pair_key: str | None
    last_seq: int
    last_activity_at: datetime
    created_at: datetime

    @property
    def is_group(self) -> bool:
        return self.chat_type == ChatType.GROUP

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids
