from __future__ import annotations

from typing import Protocol, Sequence

from social_chat.domain.entities.identity import Identity


class UserDirectory(Protocol):
    """Read-only view of the externally owned user accounts."""

    async def get_many(self, user_ids: Sequence[str]) -> dict[str, Identity]: ...
