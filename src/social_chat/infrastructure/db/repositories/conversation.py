from __future__ import annotations

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from social_chat.application.exceptions import ConflictRetry
from social_chat.domain.entities.conversation import Conversation
from social_chat.infrastructure.db.mappers import conversation as mapper
from social_chat.infrastructure.db.models.conversation import ConversationModel
from social_chat.infrastructure.db.models.participant import ParticipantModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _first(self, stmt: Select) -> Conversation | None:
        # participants may have changed since the row entered the identity map
        result = await self._session.execute(stmt.execution_options(populate_existing=True))
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return await self._first(
            select(ConversationModel).where(ConversationModel.id == conversation_id)
        )

    async def get_individual(self, pair_key: str) -> Conversation | None:
        return await self._first(
            select(ConversationModel).where(ConversationModel.pair_key == pair_key)
        )

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .join(
                ParticipantModel,
                ParticipantModel.conversation_id == ConversationModel.id,
            )
            .where(ParticipantModel.user_id == user_id)
            .order_by(ConversationModel.last_activity_at.desc(), ConversationModel.id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        stmt = (
            pg_insert(ConversationModel)
            .values(**mapper.entity_to_values(conversation))
            .on_conflict_do_nothing(constraint="uq_conversation_pair")
            .returning(ConversationModel.id)
        )
        result = await self._session.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise ConflictRetry(f"Chat for pair {conversation.pair_key} already exists")

        self._session.add_all(
            ParticipantModel(
                conversation_id=conversation.id,
                user_id=user_id,
                position=position,
                joined_at=conversation.created_at,
            )
            for position, user_id in enumerate(conversation.participant_ids)
        )
        await self._session.flush()
        return conversation

    async def lock(self, conversation_id: UUID) -> Conversation | None:
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def add_participants(
        self,
        conversation_id: UUID,
        user_ids: Sequence[str],
    ) -> None:
        if not user_ids:
            return
        current = await self._session.execute(
            select(func.coalesce(func.max(ParticipantModel.position), -1)).where(
                ParticipantModel.conversation_id == conversation_id
            )
        )
        start = current.scalar_one() + 1
        stmt = (
            pg_insert(ParticipantModel)
            .values(
                [
                    {
                        "conversation_id": conversation_id,
                        "user_id": user_id,
                        "position": start + offset,
                    }
                    for offset, user_id in enumerate(user_ids)
                ]
            )
            .on_conflict_do_nothing(index_elements=["conversation_id", "user_id"])
        )
        await self._session.execute(stmt)

    async def reserve_seq(self, conversation_id: UUID, ts: datetime) -> int:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(last_seq=ConversationModel.last_seq + 1, last_activity_at=ts)
            .returning(ConversationModel.last_seq)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()
