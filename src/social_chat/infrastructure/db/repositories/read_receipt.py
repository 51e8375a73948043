from __future__ import annotations

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import String, literal, select
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from social_chat.infrastructure.db.models.message import MessageModel
from social_chat.infrastructure.db.models.message_read import MessageReadModel


class ReadReceiptWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def mark_read(
        self,
        conversation_id: UUID,
        reader_id: str,
        message_ids: Sequence[UUID] | None,
        ts: datetime,
    ) -> int:
        source = select(
            MessageModel.id,
            literal(reader_id, String),
            literal(ts, TIMESTAMP(timezone=True)),
        ).where(MessageModel.conversation_id == conversation_id)
        if message_ids is not None:
            source = source.where(MessageModel.id.in_(list(message_ids)))

        stmt = (
            pg_insert(MessageReadModel)
            .from_select(
                ["message_id", "reader_id", "read_at"],
                source,
                include_defaults=False,
            )
            .on_conflict_do_nothing(constraint="uq_message_read")
        )
        result = await self._session.execute(stmt)
        return max(result.rowcount or 0, 0)
