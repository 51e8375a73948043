from __future__ import annotations

from typing import Protocol, Sequence
from uuid import UUID

from social_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        """Full message log in seq order, read-by sets included."""
        ...

    async def latest_for(
        self, conversation_ids: Sequence[UUID],
    ) -> dict[UUID, Message]: ...


class MessageWriter(Protocol):
    async def append(self, message: Message) -> Message: ...
