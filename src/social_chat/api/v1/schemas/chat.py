from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from social_chat.api.v1.schemas.common import CamelModel


class CreateChatRequest(CamelModel):
    user_id: str = Field(min_length=1)


class CreateGroupRequest(CamelModel):
    group_name: str | None = None
    participants: list[str] = Field(default_factory=list)


class AddParticipantsRequest(CamelModel):
    participants: list[str] = Field(min_length=1)


class MarkReadRequest(CamelModel):
    message_ids: list[UUID] | None = None


class IdentityResponse(CamelModel):
    id: str
    username: str
    profile_picture: str | None = None


class MessageResponse(CamelModel):
    id: UUID
    seq: int
    sender: IdentityResponse
    content: str
    timestamp: datetime
    read_by: list[str]


class ChatResponse(CamelModel):
    id: UUID
    chat_type: str
    participants: list[IdentityResponse]
    group_name: str | None
    group_admin: IdentityResponse | None
    messages: list[MessageResponse]
    last_message: MessageResponse | None
    last_updated: datetime
    created_at: datetime


class CreateChatResponse(CamelModel):
    success: bool = True
    chat: ChatResponse
    message: str
