"""In-process channel membership and fan-out."""
from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from social_chat.infrastructure.ws.connection import Connection, SendError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks which connections joined which conversation channel."""

    def __init__(self) -> None:
        self._channels: dict[UUID, set[Connection]] = {}

    def join(self, conn: Connection, conversation_id: UUID) -> None:
        self._channels.setdefault(conversation_id, set()).add(conn)
        logger.debug("%r joined channel %s", conn, conversation_id)

    def leave_all(self, conn: Connection) -> None:
        for conversation_id in list(self._channels):
            members = self._channels[conversation_id]
            members.discard(conn)
            if not members:
                del self._channels[conversation_id]

    def members(self, conversation_id: UUID) -> set[Connection]:
        return set(self._channels.get(conversation_id, ()))

    async def broadcast_to_channel(
        self,
        conversation_id: UUID,
        event: str,
        data: Any,
        *,
        exclude: Connection | None = None,
    ) -> list[Connection]:
        """Queue a frame for every member of a channel.

        Returns the connections that refused it (closed or backed up).
        """
        targets = [c for c in self.members(conversation_id) if c is not exclude]
        return await self.send_many(targets, event, data)

    async def send_many(
        self,
        connections: Iterable[Connection],
        event: str,
        data: Any,
    ) -> list[Connection]:
        dead: list[Connection] = []
        for conn in connections:
            try:
                await conn.send(event, data)
            except SendError as exc:
                logger.debug("Refused %s for %r: %s", event, conn, exc)
                dead.append(conn)
        return dead
