from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from social_chat.application.ports.users import UserDirectory
from social_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from social_chat.application.repositories.message import MessageReader, MessageWriter
from social_chat.application.repositories.read_receipt import ReadReceiptWriter


class UnitOfWork(Protocol):
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter
    read_receipts_w: ReadReceiptWriter
    users: UserDirectory

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
