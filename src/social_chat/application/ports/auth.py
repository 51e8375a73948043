from __future__ import annotations

from typing import Protocol

from social_chat.domain.entities.identity import Identity


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Identity:
        """Resolve a bearer token to an identity or raise AuthError."""
        ...
