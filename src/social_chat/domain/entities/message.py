from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: UUID
    seq: int
    sender_id: str
    content: str
    created_at: datetime
    read_by: tuple[str, ...] = field(default_factory=tuple)
