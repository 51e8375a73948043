from __future__ import annotations

from typing import Any, Protocol


class ConnectionHandle(Protocol):
    id: str

    async def send(self, event: str, data: Any) -> None: ...


class PresenceRegistry(Protocol):
    """Identity -> live connection handles.

    Implementations may be process-local or backed by a shared store; callers
    only rely on the operations below.
    """

    def register(self, identity_id: str, handle: ConnectionHandle) -> bool:
        """Returns True when this is the identity's first live connection."""
        ...

    def unregister(self, identity_id: str, handle: ConnectionHandle) -> bool:
        """Returns True when the identity has no live connections left."""
        ...

    def active_identities(self) -> list[str]: ...

    def connections_for(self, identity_id: str) -> set[ConnectionHandle]: ...

    def clear(self) -> None: ...
