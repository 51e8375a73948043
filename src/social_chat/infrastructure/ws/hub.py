"""Realtime session hub: connection lifecycle and event routing."""
from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Awaitable, Callable, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError as PydanticValidationError

from social_chat.application.exceptions import AppError
from social_chat.application.ports.presence import PresenceRegistry
from social_chat.application.uow import UoWFactory
from social_chat.domain.entities.identity import Identity
from social_chat.domain.value_objects.enums import ConnectionState
from social_chat.infrastructure.ws.connection import Connection
from social_chat.infrastructure.ws.manager import ConnectionManager
from social_chat.infrastructure.ws.protocol import (
    ACTIVE_USERS,
    CHAT_UPDATE,
    ERROR,
    JOIN_CHAT,
    MARK_AS_READ,
    MESSAGE,
    MESSAGES_READ,
    PING,
    PONG,
    SEND_MESSAGE,
    TYPING,
    JoinChatData,
    MarkAsReadData,
    SendMessageData,
    TypingData,
    WsInbound,
)
from social_chat.services import conversation_service, message_service, read_state_service

logger = logging.getLogger(__name__)

DataT = TypeVar("DataT", bound=BaseModel)


class ChatHub:
    """Routes events between live connections and the conversation store.

    Every inbound event except join_chat and ping runs as its own task on the
    connection. Appends to one conversation and their fan-out happen under a
    per-conversation lock, so subscribers see messages in the order the store
    accepted them. Fan-out only queues frames on each connection, so a slow
    client never holds the lock or delays anyone else.
    """

    def __init__(
        self,
        presence: PresenceRegistry,
        uow_factory: UoWFactory,
        *,
        manager: ConnectionManager | None = None,
        enforce_join_participancy: bool = True,
    ) -> None:
        self._presence = presence
        self._uow_factory = uow_factory
        self._manager = manager or ConnectionManager()
        self._enforce_join = enforce_join_participancy
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._deliveries: set[asyncio.Future[None]] = set()

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    def _conversation_lock(self, conversation_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    # -- lifecycle ---------------------------------------------------------

    async def connect(self, conn: Connection, identity: Identity) -> None:
        conn.identity = identity
        conn.state = ConnectionState.AUTHENTICATED
        conn.on_send_failure = self._on_send_failure
        first = self._presence.register(identity.id, conn)
        logger.info("User %s connected (%r)", identity.username or identity.id, conn)
        if first:
            await self._broadcast_active_users()
        else:
            await self._drop(
                await self._manager.send_many(
                    [conn], ACTIVE_USERS, self._presence.active_identities(),
                )
            )

    async def disconnect(self, conn: Connection) -> None:
        if conn.state == ConnectionState.CLOSED:
            return
        conn.state = ConnectionState.CLOSED
        conn.cancel_tasks()
        self._manager.leave_all(conn)
        if conn.identity is None:
            return
        logger.info("User %s disconnected (%r)", conn.identity.username or conn.identity.id, conn)
        if self._presence.unregister(conn.identity.id, conn):
            await self._broadcast_active_users()

    async def shutdown(self) -> None:
        for identity_id in self._presence.active_identities():
            for conn in self._presence.connections_for(identity_id):
                conn.cancel_tasks()
        for delivery in list(self._deliveries):
            delivery.cancel()
        self._presence.clear()

    async def _drop(self, dead: list[Connection]) -> None:
        for conn in dead:
            if conn.state == ConnectionState.CLOSED:
                continue
            logger.info("Dropping unresponsive connection %r", conn)
            await conn.close()
            await self.disconnect(conn)

    async def _on_send_failure(self, conn: Connection) -> None:
        await self._drop([conn])

    async def _broadcast_active_users(self) -> None:
        active = self._presence.active_identities()
        targets = [
            conn
            for identity_id in active
            for conn in self._presence.connections_for(identity_id)
        ]
        await self._drop(await self._manager.send_many(targets, ACTIVE_USERS, active))

    # -- inbound dispatch --------------------------------------------------

    async def dispatch(self, conn: Connection, raw: str) -> None:
        """Handle one raw frame from a connection."""
        if conn.state == ConnectionState.CLOSED:
            return
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await self._send_error(conn, "Invalid payload")
            return

        if msg.type == PING:
            await self._drop(await self._manager.send_many([conn], PONG, {}))

        elif msg.type == JOIN_CHAT:
            data = await self._parse(conn, msg, JoinChatData)
            if data is not None:
                # inline, so the connection's later events see the membership
                await self._guarded(conn, "Failed to join chat", self.join_chat, conn, data.chat_id)

        elif msg.type == SEND_MESSAGE:
            data = await self._parse(conn, msg, SendMessageData)
            if data is not None:
                conn.spawn(
                    self._guarded(
                        conn, "Failed to send message",
                        self.send_message, conn, data.chat_id, data.content,
                    ),
                    name="ws-send",
                )

        elif msg.type == TYPING:
            data = await self._parse(conn, msg, TypingData)
            if data is not None:
                conn.spawn(
                    self._guarded(conn, None, self.typing, conn, data.chat_id, data.is_typing),
                    name="ws-typing",
                )

        elif msg.type == MARK_AS_READ:
            data = await self._parse(conn, msg, MarkAsReadData)
            if data is not None:
                conn.spawn(
                    self._guarded(conn, None, self.mark_read, conn, data.chat_id),
                    name="ws-mark-read",
                )

        else:
            await self._send_error(conn, f"Unknown event type: {msg.type}")

    async def _parse(
        self, conn: Connection, msg: WsInbound, model: type[DataT],
    ) -> DataT | None:
        try:
            return model.model_validate(msg.data)
        except PydanticValidationError:
            await self._send_error(conn, f"Invalid data for {msg.type}")
            return None

    async def _guarded(
        self,
        conn: Connection,
        failure_message: str | None,
        handler: Callable[..., Awaitable[None]],
        *args: Any,
    ) -> None:
        try:
            await handler(*args)
        except AppError as exc:
            await self._send_error(conn, exc.detail)
        except Exception:
            logger.exception("Error handling %s for %r", handler.__name__, conn)
            if failure_message:
                await self._send_error(conn, failure_message)

    async def _send_error(self, conn: Connection, message: str) -> None:
        await self._drop(await self._manager.send_many([conn], ERROR, {"message": message}))

    # -- events ------------------------------------------------------------

    async def join_chat(self, conn: Connection, conversation_id: UUID) -> None:
        assert conn.identity is not None
        if self._enforce_join:
            async with self._uow_factory() as uow:
                await conversation_service.get_conversation(
                    conversation_id, conn.identity.id, uow,
                )
        self._manager.join(conn, conversation_id)
        conn.state = ConnectionState.JOINED
        logger.debug("User %s joined chat %s", conn.identity.id, conversation_id)

    async def send_message(
        self,
        conn: Connection,
        conversation_id: UUID,
        content: str | None,
    ) -> None:
        """Append and fan out as one step that outlives the sender's connection.

        A disconnect cancels the event task but not the delivery it started, so
        every appended message is fanned out. Store errors reach the sender
        only while it is still connected.
        """
        sender = conn.identity
        assert sender is not None
        delivery = asyncio.ensure_future(self._append_and_fan_out(sender, conversation_id, content))
        self._deliveries.add(delivery)
        delivery.add_done_callback(self._deliveries.discard)
        try:
            await asyncio.shield(delivery)
        except asyncio.CancelledError:
            delivery.add_done_callback(_log_orphaned_failure)
            raise

    async def _append_and_fan_out(
        self,
        sender: Identity,
        conversation_id: UUID,
        content: str | None,
    ) -> None:
        dead: list[Connection] = []
        async with self._conversation_lock(conversation_id):
            async with self._uow_factory() as uow:
                message, conversation = await message_service.append_message(
                    conversation_id, sender.id, content, uow,
                )

            # frames are only queued here, so holding the lock never waits on a socket
            timestamp = message.created_at.isoformat()
            dead += await self._manager.broadcast_to_channel(
                conversation_id,
                MESSAGE,
                {
                    "chatId": str(conversation_id),
                    "message": {
                        "id": str(message.id),
                        "seq": message.seq,
                        "content": message.content,
                        "sender": {"id": sender.id, "username": sender.username},
                        "timestamp": timestamp,
                    },
                },
            )

            update = {
                "chatId": str(conversation_id),
                "lastMessage": message.content,
                "timestamp": timestamp,
            }
            for participant_id in conversation.participant_ids:
                if participant_id == sender.id:
                    continue
                dead += await self._manager.send_many(
                    self._presence.connections_for(participant_id), CHAT_UPDATE, update,
                )
        await self._drop(dead)

    async def typing(self, conn: Connection, conversation_id: UUID, is_typing: bool) -> None:
        assert conn.identity is not None
        dead = await self._manager.broadcast_to_channel(
            conversation_id,
            TYPING,
            {"chatId": str(conversation_id), "userId": conn.identity.id, "isTyping": is_typing},
            exclude=conn,
        )
        await self._drop(dead)

    async def mark_read(self, conn: Connection, conversation_id: UUID) -> None:
        assert conn.identity is not None
        try:
            async with self._uow_factory() as uow:
                await read_state_service.mark_read(conversation_id, conn.identity.id, uow)
        except AppError as exc:
            logger.warning(
                "markAsRead by %s in chat %s rejected: %s",
                conn.identity.id, conversation_id, exc.detail,
            )
            return
        await self.notify_read(conversation_id, conn.identity.id, exclude=conn)

    async def notify_read(
        self,
        conversation_id: UUID,
        user_id: str,
        *,
        exclude: Connection | None = None,
    ) -> None:
        """Tell channel members that user_id has caught up on the conversation."""
        dead = await self._manager.broadcast_to_channel(
            conversation_id,
            MESSAGES_READ,
            {"chatId": str(conversation_id), "userId": user_id},
            exclude=exclude,
        )
        await self._drop(dead)


def _log_orphaned_failure(delivery: asyncio.Future[None]) -> None:
    if delivery.cancelled():
        return
    exc = delivery.exception()
    if exc is not None:
        logger.warning("Message from a closed connection was not delivered: %s", exc)
