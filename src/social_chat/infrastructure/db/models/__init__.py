"""Import all models so Base.metadata sees every table."""
from social_chat.infrastructure.db.models.conversation import ConversationModel
from social_chat.infrastructure.db.models.message import MessageModel
from social_chat.infrastructure.db.models.message_read import MessageReadModel
from social_chat.infrastructure.db.models.participant import ParticipantModel
from social_chat.infrastructure.db.models.user import UserModel

__all__ = [
    "ConversationModel",
    "MessageModel",
    "MessageReadModel",
    "ParticipantModel",
    "UserModel",
]
