"""WebSocket envelope and per-event payload models."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# client -> server
JOIN_CHAT = "join_chat"
SEND_MESSAGE = "sendMessage"
TYPING = "typing"
MARK_AS_READ = "markAsRead"
PING = "ping"

# server -> client
ACTIVE_USERS = "activeUsers"
MESSAGE = "message"
CHAT_UPDATE = "chatUpdate"
MESSAGES_READ = "messagesRead"
ERROR = "error"
PONG = "pong"


class WsInbound(BaseModel):
    """Client → Server."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: Any = None


class _EventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class JoinChatData(_EventData):
    chat_id: UUID = Field(alias="chatId")


class SendMessageData(_EventData):
    chat_id: UUID = Field(alias="chatId")
    content: str | None = None


class TypingData(_EventData):
    chat_id: UUID = Field(alias="chatId")
    is_typing: bool = Field(alias="isTyping")


class MarkAsReadData(_EventData):
    chat_id: UUID = Field(alias="chatId")
