"""Seed development data: users, an individual chat with messages, dev tokens."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy.dialects.postgresql import insert as pg_insert

from social_chat.config import settings
from social_chat.infrastructure.db import models  # noqa: F401
from social_chat.infrastructure.db.base import Base
from social_chat.infrastructure.db.models.user import UserModel
from social_chat.infrastructure.db.session import AsyncSessionLocal, engine
from social_chat.infrastructure.db.uow import SqlAlchemyUoW
from social_chat.services import conversation_service, message_service

logger = logging.getLogger(__name__)

USERS = [
    ("u-alice", "alice"),
    ("u-bob", "bob"),
    ("u-carol", "carol"),
]


def _dev_token(user_id: str, username: str) -> str:
    return jwt.encode(
        {
            "sub": user_id,
            "username": username,
            "exp": datetime.now(timezone.utc) + timedelta(days=7),
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await session.execute(
            pg_insert(UserModel)
            .values([{"id": uid, "username": name} for uid, name in USERS])
            .on_conflict_do_nothing(index_elements=["id"])
        )
        await session.commit()

        uow = SqlAlchemyUoW(session)
        conv, created = await conversation_service.get_or_create_individual(
            "u-alice", "u-bob", uow,
        )
        if created:
            for sender_id, content in [
                ("u-alice", "Hey Bob!"),
                ("u-bob", "Hi Alice, how are you?"),
                ("u-alice", "Good, thanks. Coffee later?"),
            ]:
                await message_service.append_message(conv.id, sender_id, content, uow)
            logger.info("Seeded chat %s", conv.id)
        else:
            logger.info("Chat %s already seeded", conv.id)

    for uid, name in USERS:
        print(f"{name}: {_dev_token(uid, name)}")

    await engine.dispose()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
