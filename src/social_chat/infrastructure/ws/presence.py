"""Process-local presence registry."""
from __future__ import annotations

import logging

from social_chat.application.ports.presence import ConnectionHandle

logger = logging.getLogger(__name__)


class InMemoryPresenceRegistry:
    """Identity -> live connection handles, for a single process.

    All operations are synchronous, so under one event loop every add/remove is
    applied atomically.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[ConnectionHandle]] = {}

    def register(self, identity_id: str, handle: ConnectionHandle) -> bool:
        handles = self._connections.setdefault(identity_id, set())
        first = not handles
        handles.add(handle)
        logger.debug(
            "Presence register %s (connections=%d, online=%d)",
            identity_id, len(handles), len(self._connections),
        )
        return first

    def unregister(self, identity_id: str, handle: ConnectionHandle) -> bool:
        handles = self._connections.get(identity_id)
        if handles is None:
            return False
        handles.discard(handle)
        if handles:
            return False
        del self._connections[identity_id]
        logger.debug("Presence offline %s (online=%d)", identity_id, len(self._connections))
        return True

    def active_identities(self) -> list[str]:
        return list(self._connections)

    def connections_for(self, identity_id: str) -> set[ConnectionHandle]:
        return set(self._connections.get(identity_id, ()))

    def clear(self) -> None:
        self._connections.clear()
