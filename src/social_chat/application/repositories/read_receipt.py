from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence
from uuid import UUID


class ReadReceiptWriter(Protocol):
    async def mark_read(
        self,
        conversation_id: UUID,
        reader_id: str,
        message_ids: Sequence[UUID] | None,
        ts: datetime,
    ) -> int:
        """Record reads idempotently. Returns how many reads were new."""
        ...
