"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from social_chat.application.exceptions import AuthError
from social_chat.application.ports.auth import TokenVerifier
from social_chat.application.uow import UnitOfWork
from social_chat.config import settings
from social_chat.domain.entities.identity import Identity
from social_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from social_chat.infrastructure.ws.hub import ChatHub

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow(request: Request) -> AsyncIterator[UnitOfWork]:
    async with request.app.state.uow_factory() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(
            settings.JWT_SECRET,
            settings.JWT_ALGORITHM,
            leeway=settings.JWT_LEEWAY_SECONDS,
        )
    return _verifier


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Identity:
    if credentials is None:
        raise AuthError("User not authenticated")
    return await get_verifier().verify(credentials.credentials)


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


def get_hub(request: Request) -> ChatHub:
    return request.app.state.hub


HubDep = Annotated[ChatHub, Depends(get_hub)]
