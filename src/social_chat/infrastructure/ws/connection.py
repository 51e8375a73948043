"""A single live WebSocket connection as seen by the hub."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Coroutine, Protocol

from social_chat.domain.entities.identity import Identity
from social_chat.domain.value_objects.enums import ConnectionState
from social_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class SocketLike(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class SendError(Exception):
    """The frame could not be queued: connection closed, failed or backed up."""


class Connection:
    """Connection handle: socket, authenticated identity, lifecycle state and
    the event tasks spawned on its behalf.

    Outbound frames go through a bounded queue drained by one writer task, so
    send() never waits on the socket. A full queue means the client is not
    keeping up and the frame is refused with SendError.
    """

    def __init__(
        self,
        socket: SocketLike,
        *,
        send_timeout: float | None = None,
        queue_size: int = 256,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.socket = socket
        self.identity: Identity | None = None
        self.state = ConnectionState.CONNECTING
        self.on_send_failure: Callable[[Connection], Awaitable[None]] | None = None
        self._send_timeout = send_timeout
        self._tasks: set[asyncio.Task[None]] = set()
        self._outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._writer: asyncio.Task[None] | None = None
        self._failed = False

    def __repr__(self) -> str:
        who = self.identity.id if self.identity else "?"
        return f"<Connection {self.id[:8]} {who} {self.state}>"

    async def send(self, event: str, data: Any) -> None:
        if self._failed or self.state == ConnectionState.CLOSED:
            raise SendError(f"{self!r} is closed")
        raw = WsOutbound(type=event, data=data).model_dump_json()
        try:
            self._outbox.put_nowait(raw)
        except asyncio.QueueFull:
            raise SendError(f"Outbound queue of {self!r} is full") from None
        if self._writer is None:
            self._writer = asyncio.create_task(
                self._write_loop(), name=f"ws-writer-{self.id[:8]}",
            )

    async def _write_loop(self) -> None:
        while True:
            raw = await self._outbox.get()
            try:
                if self._send_timeout:
                    await asyncio.wait_for(self.socket.send_text(raw), self._send_timeout)
                else:
                    await self.socket.send_text(raw)
            except Exception:  # noqa: BLE001
                logger.debug("Write to %r failed", self, exc_info=True)
                failed = True
            else:
                failed = False
            finally:
                self._outbox.task_done()

            if failed:
                self._failed = True
                self._discard_pending()
                if self.on_send_failure is not None:
                    await self.on_send_failure(self)
                return

    def _discard_pending(self) -> None:
        while True:
            try:
                self._outbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._outbox.task_done()

    async def flushed(self) -> None:
        """Wait until every queued frame was written or discarded."""
        await self._outbox.join()

    async def close(self, code: int = 1011, reason: str = "") -> None:
        try:
            await self.socket.close(code=code, reason=reason)
        except Exception:  # noqa: BLE001
            logger.debug("Closing %r failed, socket already gone", self)

    def spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=f"{name}-{self.id[:8]}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel_tasks(self) -> None:
        """Cancel event tasks and the writer, except the task calling this."""
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        if self._writer is not None and self._writer is not current:
            self._writer.cancel()
        self._discard_pending()

    @property
    def pending_tasks(self) -> set[asyncio.Task[None]]:
        return set(self._tasks)
