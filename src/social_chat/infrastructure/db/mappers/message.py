from __future__ import annotations

from social_chat.domain.entities.message import Message
from social_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        seq=model.seq,
        sender_id=model.sender_id,
        content=model.content,
        created_at=model.created_at,
        read_by=tuple(r.reader_id for r in model.reads),
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        conversation_id=entity.conversation_id,
        seq=entity.seq,
        sender_id=entity.sender_id,
        content=entity.content,
        created_at=entity.created_at,
    )
