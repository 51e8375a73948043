from __future__ import annotations

from social_chat.domain.entities.identity import Identity
from social_chat.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> Identity:
    return Identity(
        id=model.id,
        username=model.username,
        profile_picture=model.profile_picture,
    )
