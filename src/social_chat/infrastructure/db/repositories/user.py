from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from social_chat.domain.entities.identity import Identity
from social_chat.infrastructure.db.mappers import user as mapper
from social_chat.infrastructure.db.models.user import UserModel


class UserDirectoryRepo:
    """Implements application.ports.users.UserDirectory over the users table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_many(self, user_ids: Sequence[str]) -> dict[str, Identity]:
        if not user_ids:
            return {}
        stmt = select(UserModel).where(UserModel.id.in_(list(user_ids)))
        result = await self._session.execute(stmt)
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}
