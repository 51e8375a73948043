"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Sequence
from uuid import UUID

import pytest

from social_chat.application.exceptions import ConflictRetry
from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.identity import Identity
from social_chat.domain.entities.message import Message
from social_chat.domain.value_objects.enums import ChatType
from social_chat.domain.value_objects.ids import pair_key

ALICE = Identity(id="u-alice", username="alice")
BOB = Identity(id="u-bob", username="bob")
CAROL = Identity(id="u-carol", username="carol")
DAVE = Identity(id="u-dave", username="dave")


def make_individual(
    user_a: str = ALICE.id,
    user_b: str = BOB.id,
    *,
    last_activity_at: datetime | None = None,
) -> Conversation:
    now = datetime.now(timezone.utc)
    return Conversation(
        id=uuid.uuid4(),
        chat_type=ChatType.INDIVIDUAL,
        participant_ids=(user_a, user_b),
        group_name=None,
        admin_id=None,
        pair_key=pair_key(user_a, user_b),
        last_seq=0,
        last_activity_at=last_activity_at or now,
        created_at=now,
    )


def make_group(
    participant_ids: Sequence[str] = (BOB.id, CAROL.id, ALICE.id),
    *,
    admin_id: str = ALICE.id,
    name: str = "friends",
) -> Conversation:
    now = datetime.now(timezone.utc)
    return Conversation(
        id=uuid.uuid4(),
        chat_type=ChatType.GROUP,
        participant_ids=tuple(participant_ids),
        group_name=name,
        admin_id=admin_id,
        pair_key=None,
        last_seq=0,
        last_activity_at=now,
        created_at=now,
    )


@dataclass
class FakeDatabase:
    """State shared by every FakeUoW opened on it, like rows in one database."""

    conversations: dict[UUID, Conversation] = field(default_factory=dict)
    messages: list[Message] = field(default_factory=list)
    reads: dict[UUID, list[str]] = field(default_factory=dict)
    users: dict[str, Identity] = field(default_factory=dict)
    row_locks: dict[UUID, asyncio.Lock] = field(default_factory=dict)
    # when set, appends wait for it, holding the row lock
    append_gate: asyncio.Event | None = None
    commits: int = 0

    def add_users(self, *identities: Identity) -> None:
        for identity in identities:
            self.users[identity.id] = identity

    def add_conversation(self, conversation: Conversation) -> Conversation:
        self.conversations[conversation.id] = conversation
        return conversation

    def log(self, conversation_id: UUID) -> list[Message]:
        return sorted(
            (
                replace(m, read_by=tuple(self.reads.get(m.id, ())))
                for m in self.messages
                if m.conversation_id == conversation_id
            ),
            key=lambda m: m.seq,
        )


@dataclass
class FakeConversationReader:
    _db: FakeDatabase

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._db.conversations.get(conversation_id)

    async def get_individual(self, key: str) -> Conversation | None:
        for c in self._db.conversations.values():
            if c.pair_key == key:
                return c
        return None

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        return sorted(
            (c for c in self._db.conversations.values() if c.has_participant(user_id)),
            key=lambda c: c.last_activity_at,
            reverse=True,
        )


@dataclass
class FakeConversationWriter:
    _db: FakeDatabase
    _uow: FakeUoW

    async def create(self, conversation: Conversation) -> Conversation:
        if conversation.pair_key is not None and any(
            c.pair_key == conversation.pair_key for c in self._db.conversations.values()
        ):
            raise ConflictRetry(f"Chat for pair {conversation.pair_key} already exists")
        self._db.conversations[conversation.id] = conversation
        return conversation

    async def lock(self, conversation_id: UUID) -> Conversation | None:
        if conversation_id not in self._db.conversations:
            return None
        await self._uow.acquire_row(conversation_id)
        return self._db.conversations[conversation_id]

    async def add_participants(self, conversation_id: UUID, user_ids: Sequence[str]) -> None:
        conv = self._db.conversations[conversation_id]
        merged = conv.participant_ids + tuple(u for u in user_ids if u not in conv.participant_ids)
        self._db.conversations[conversation_id] = replace(conv, participant_ids=merged)

    async def reserve_seq(self, conversation_id: UUID, ts: datetime) -> int:
        conv = self._db.conversations[conversation_id]
        conv = replace(conv, last_seq=conv.last_seq + 1, last_activity_at=ts)
        self._db.conversations[conversation_id] = conv
        return conv.last_seq


@dataclass
class FakeMessageReader:
    _db: FakeDatabase

    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        return self._db.log(conversation_id)

    async def latest_for(self, conversation_ids: Sequence[UUID]) -> dict[UUID, Message]:
        latest: dict[UUID, Message] = {}
        for cid in conversation_ids:
            log = self._db.log(cid)
            if log:
                latest[cid] = log[-1]
        return latest


@dataclass
class FakeMessageWriter:
    _db: FakeDatabase

    async def append(self, message: Message) -> Message:
        # yields like a real INSERT would, so concurrent appends interleave
        await asyncio.sleep(0)
        if self._db.append_gate is not None:
            await self._db.append_gate.wait()
        self._db.messages.append(message)
        return message


@dataclass
class FakeReadReceiptWriter:
    _db: FakeDatabase

    async def mark_read(
        self,
        conversation_id: UUID,
        reader_id: str,
        message_ids: Sequence[UUID] | None,
        ts: datetime,
    ) -> int:
        wanted = set(message_ids) if message_ids is not None else None
        added = 0
        for m in self._db.messages:
            if m.conversation_id != conversation_id:
                continue
            if wanted is not None and m.id not in wanted:
                continue
            readers = self._db.reads.setdefault(m.id, [])
            if reader_id not in readers:
                readers.append(reader_id)
                added += 1
        return added


@dataclass
class FakeUserDirectory:
    _db: FakeDatabase

    async def get_many(self, user_ids: Sequence[str]) -> dict[str, Identity]:
        return {uid: self._db.users[uid] for uid in user_ids if uid in self._db.users}


class FakeUoW:
    """In-memory UoW for unit tests. Row locks are held until commit/rollback."""

    def __init__(self, db: FakeDatabase | None = None) -> None:
        self.db = db or FakeDatabase()
        self.conversations = FakeConversationReader(self.db)
        self.conversations_w = FakeConversationWriter(self.db, self)
        self.messages = FakeMessageReader(self.db)
        self.messages_w = FakeMessageWriter(self.db)
        self.read_receipts_w = FakeReadReceiptWriter(self.db)
        self.users = FakeUserDirectory(self.db)
        self._committed = False
        self._rolled_back = False
        self._held: list[asyncio.Lock] = []

    async def acquire_row(self, conversation_id: UUID) -> None:
        lock = self.db.row_locks.setdefault(conversation_id, asyncio.Lock())
        if lock in self._held:
            return
        await lock.acquire()
        self._held.append(lock)

    def _release(self) -> None:
        while self._held:
            self._held.pop().release()

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self.db.commits += 1
        self._release()

    async def rollback(self) -> None:
        self._rolled_back = True
        self._release()

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._release()


def fake_uow_factory(db: FakeDatabase):
    @asynccontextmanager
    async def factory() -> AsyncIterator[FakeUoW]:
        async with FakeUoW(db) as uow:
            yield uow

    return factory


class FakeSocket:
    """Collects frames a Connection sends.

    stall_on makes sends of that event type hang until release() is called.
    """

    def __init__(self, *, fail: bool = False, stall_on: str | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed_with: int | None = None
        self.fail = fail
        self.stall_on = stall_on
        self._released = asyncio.Event()

    def release(self) -> None:
        self._released.set()

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        frame = json.loads(data)
        if frame["type"] == self.stall_on:
            await self._released.wait()
        self.sent.append(frame)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = code

    def events(self, type_: str) -> list[Any]:
        return [frame["data"] for frame in self.sent if frame["type"] == type_]


@pytest.fixture
def db() -> FakeDatabase:
    database = FakeDatabase()
    database.add_users(ALICE, BOB, CAROL, DAVE)
    return database


@pytest.fixture
def uow(db: FakeDatabase) -> FakeUoW:
    return FakeUoW(db)


@pytest.fixture
def uow_factory(db: FakeDatabase):
    return fake_uow_factory(db)


def one_hour_ago() -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=1)
