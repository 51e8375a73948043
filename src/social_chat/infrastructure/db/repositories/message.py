from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from social_chat.domain.entities.message import Message
from social_chat.infrastructure.db.mappers import message as mapper
from social_chat.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.seq.asc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def latest_for(self, conversation_ids: Sequence[UUID]) -> dict[UUID, Message]:
        if not conversation_ids:
            return {}
        stmt = (
            select(MessageModel)
            .distinct(MessageModel.conversation_id)
            .where(MessageModel.conversation_id.in_(list(conversation_ids)))
            .order_by(MessageModel.conversation_id, MessageModel.seq.desc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return {m.conversation_id: mapper.model_to_entity(m) for m in result.scalars().all()}


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, message: Message) -> Message:
        # uq_message_position backs up the row lock taken by the caller
        self._session.add(mapper.entity_to_model(message))
        await self._session.flush()
        return message
