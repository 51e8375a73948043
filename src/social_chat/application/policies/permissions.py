from __future__ import annotations

from social_chat.application.exceptions import ForbiddenError, NotFoundError
from social_chat.domain.entities.conversation import Conversation


def assert_conversation_access(
    user_id: str,
    conversation: Conversation | None,
) -> Conversation:
    """Raise if conversation doesn't exist or the user is not a participant."""
    if conversation is None:
        raise NotFoundError("Chat not found")
    if not conversation.has_participant(user_id):
        raise ForbiddenError("Not authorized to access this chat")
    return conversation


def assert_group_admin(user_id: str, conversation: Conversation) -> None:
    if not conversation.is_group or conversation.admin_id != user_id:
        raise ForbiddenError("Only admin can add participants")
