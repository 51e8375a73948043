from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response, status

from social_chat.api.deps import CurrentIdentity, HubDep, UoWDep
from social_chat.api.v1.schemas.chat import (
    AddParticipantsRequest,
    ChatResponse,
    CreateChatRequest,
    CreateChatResponse,
    CreateGroupRequest,
    MarkReadRequest,
)
from social_chat.api.v1.schemas.common import AckResponse
from social_chat.application.uow import UnitOfWork
from social_chat.domain.entities.conversation import Conversation
from social_chat.services import conversation_service, read_state_service

router = APIRouter(prefix="/api/chats", tags=["chats"])


async def _render(
    conversation: Conversation, uow: UnitOfWork, *, with_messages: bool = False,
) -> ChatResponse:
    [view] = await conversation_service.describe([conversation], uow, with_messages=with_messages)
    return ChatResponse.model_validate(view)


@router.post("/create", response_model=CreateChatResponse)
async def create_chat(
    body: CreateChatRequest,
    identity: CurrentIdentity,
    uow: UoWDep,
    response: Response,
) -> CreateChatResponse:
    conv, created = await conversation_service.get_or_create_individual(
        identity.id, body.user_id, uow,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return CreateChatResponse(
        success=True,
        chat=await _render(conv, uow, with_messages=not created),
        message="Chat created successfully" if created else "Chat already exists",
    )


@router.post("/create-group", response_model=ChatResponse, status_code=201)
async def create_group(
    body: CreateGroupRequest,
    identity: CurrentIdentity,
    uow: UoWDep,
) -> ChatResponse:
    conv = await conversation_service.create_group(
        body.group_name, body.participants, identity.id, uow,
    )
    return await _render(conv, uow)


@router.get("/user-chats", response_model=list[ChatResponse])
async def list_user_chats(
    identity: CurrentIdentity,
    uow: UoWDep,
) -> list[ChatResponse]:
    convs = await conversation_service.list_user_conversations(identity.id, uow)
    views = await conversation_service.describe(convs, uow)
    return [ChatResponse.model_validate(v) for v in views]


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: UUID,
    identity: CurrentIdentity,
    uow: UoWDep,
) -> ChatResponse:
    conv = await conversation_service.get_conversation(chat_id, identity.id, uow)
    return await _render(conv, uow, with_messages=True)


@router.post("/{chat_id}/add-participants", response_model=ChatResponse)
async def add_participants(
    chat_id: UUID,
    body: AddParticipantsRequest,
    identity: CurrentIdentity,
    uow: UoWDep,
) -> ChatResponse:
    conv = await conversation_service.add_participants(
        chat_id, identity.id, body.participants, uow,
    )
    return await _render(conv, uow)


@router.post("/{chat_id}/mark-read", response_model=AckResponse)
async def mark_read(
    chat_id: UUID,
    identity: CurrentIdentity,
    uow: UoWDep,
    hub: HubDep,
    body: MarkReadRequest | None = None,
) -> AckResponse:
    await read_state_service.mark_read(
        chat_id, identity.id, uow, body.message_ids if body else None,
    )
    await hub.notify_read(chat_id, identity.id)
    return AckResponse(success=True, message="Messages marked as read")
