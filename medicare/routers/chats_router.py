from typing import List
from fastapi import APIRouter, Depends, Response

from ..application.actors import Actor
from ..application.ports.chat_repo import ConversationDto
from ..application.services.chat_service import ChatService
from ..schemas.chats.chat import (
    ChatCreate,
    ChatMessageResponse,
    ConversationResponse,
    MessageCreate,
)
from .deps import get_chat_service, get_current_actor

router = APIRouter(prefix="/api/chats", tags=["Chats"])


def _to_response(chat_service: ChatService, conversation: ConversationDto) -> ConversationResponse:
    return ConversationResponse(
        id=conversation.id,
        participants=chat_service.participant_summaries(conversation),
        last_message_at=conversation.last_message_at,
        created_at=conversation.created_at,
        messages=[ChatMessageResponse(**vars(m)) for m in conversation.messages],
    )


@router.get("", response_model=List[ConversationResponse])
def list_chats(
    current_actor: Actor = Depends(get_current_actor),
    chat_service: ChatService = Depends(get_chat_service),
):
    return [_to_response(chat_service, c) for c in chat_service.list_conversations(current_actor)]


@router.post("", response_model=ConversationResponse)
def create_or_get_chat(
    body: ChatCreate,
    response: Response,
    current_actor: Actor = Depends(get_current_actor),
    chat_service: ChatService = Depends(get_chat_service),
):
    conversation, created = chat_service.get_or_create_conversation(current_actor, body.participant_id)
    response.status_code = 201 if created else 200
    return _to_response(chat_service, conversation)


@router.get("/{chat_id}/messages", response_model=List[ChatMessageResponse])
def get_messages(
    chat_id: str,
    current_actor: Actor = Depends(get_current_actor),
    chat_service: ChatService = Depends(get_chat_service),
):
    return [ChatMessageResponse(**vars(m)) for m in chat_service.list_messages(current_actor, chat_id)]


@router.post("/{chat_id}/messages", response_model=ConversationResponse, status_code=201)
def send_message(
    chat_id: str,
    body: MessageCreate,
    current_actor: Actor = Depends(get_current_actor),
    chat_service: ChatService = Depends(get_chat_service),
):
    conversation = chat_service.append_message(current_actor, chat_id, body.content)
    return _to_response(chat_service, conversation)
