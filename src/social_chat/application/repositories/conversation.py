from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence
from uuid import UUID

from social_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def get_individual(self, pair_key: str) -> Conversation | None:
        """Find the individual conversation registered under a pair key."""
        ...

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        """All conversations the user takes part in, most recently active first."""
        ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation:
        """Insert conversation and its participants.

        Raises ConflictRetry if an individual conversation for the same pair key
        was created concurrently.
        """
        ...

    async def lock(self, conversation_id: UUID) -> Conversation | None:
        """Fetch the conversation holding a write lock until commit/rollback."""
        ...

    async def add_participants(
        self, conversation_id: UUID, user_ids: Sequence[str],
    ) -> None: ...

    async def reserve_seq(self, conversation_id: UUID, ts: datetime) -> int:
        """Atomically bump last_seq/last_activity_at and return the new position."""
        ...
