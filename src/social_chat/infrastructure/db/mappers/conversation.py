from __future__ import annotations

from social_chat.domain.entities.conversation import Conversation
from social_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        chat_type=model.chat_type,
        participant_ids=tuple(p.user_id for p in model.participants),
        group_name=model.group_name,
        admin_id=model.admin_id,
        pair_key=model.pair_key,
        last_seq=model.last_seq,
        last_activity_at=model.last_activity_at,
        created_at=model.created_at,
    )


def entity_to_values(entity: Conversation) -> dict:
    return {
        "id": entity.id,
        "chat_type": entity.chat_type,
        "group_name": entity.group_name,
        "admin_id": entity.admin_id,
        "pair_key": entity.pair_key,
        "last_seq": entity.last_seq,
        "last_activity_at": entity.last_activity_at,
        "created_at": entity.created_at,
    }
