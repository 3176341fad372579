import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from ...exceptions import Forbidden, InvalidInput, NotFound
from ..actors import Actor
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.chat_repo import ConversationDto, ConversationsRepository, MessageDto
from ..ports.notifier import CHAT_UPDATED, NEW_MESSAGE, Notifier, chat_room, personal_room
from ..ports.user_repo import UserRepository
from .can_communicate import can_communicate

logger = logging.getLogger(__name__)


@dataclass
class ChatService:
    conversations: ConversationsRepository
    appointments: AppointmentsRepository
    users: UserRepository
    notifier: Notifier
    max_message_length: int = 1000
    clock: Callable[[], datetime] = field(default=datetime.utcnow)

    def can_communicate(self, user_a: str, user_b: str) -> bool:
        return can_communicate(self.users, self.appointments, user_a, user_b)

    def get_or_create_conversation(self, requester: Actor, other_participant_id: str) -> Tuple[ConversationDto, bool]:
        """Return the pair's conversation and whether this call created it."""
        if not other_participant_id:
            raise InvalidInput("Participant ID is required")
        if other_participant_id == requester.id:
            raise InvalidInput("Cannot create chat with yourself")
        if not self.users.get_by_id(other_participant_id):
            raise NotFound("Participant not found")

        if not self.can_communicate(requester.id, other_participant_id):
            raise Forbidden("Chat can only be initiated after appointment confirmation")

        existing = self.conversations.find_between(requester.id, other_participant_id)
        if existing:
            return existing, False

        conversation, created = self.conversations.create(requester.id, other_participant_id)
        if created:
            logger.info(f"Conversation {conversation.id} created between {requester.id} and {other_participant_id}")
        return conversation, created

    def append_message(self, requester: Actor, conversation_id: str, content) -> ConversationDto:
        conversation = self.get_conversation(requester, conversation_id)

        other_id = conversation.other_participant(requester.id)
        if not self.can_communicate(requester.id, other_id):
            raise Forbidden("Chat is only allowed after appointment confirmation")

        if not isinstance(content, str) or len(content.strip()) == 0:
            raise InvalidInput("Message content is required")
        if len(content) > self.max_message_length:
            raise InvalidInput(f"Message too long (max {self.max_message_length} characters)")

        # Stored as sent; only the length rules look at the trimmed form
        message = self.conversations.append_message(conversation.id, requester.id, content, self.clock())
        updated = self.conversations.get_by_id(conversation.id, with_messages=True) or conversation

        self._fan_out_message(updated, message)
        return updated

    def list_conversations(self, requester: Actor) -> List[ConversationDto]:
        return self.conversations.list_for_user(requester.id)

    def get_conversation(self, requester: Actor, conversation_id: str) -> ConversationDto:
        conversation = self.conversations.get_by_id(conversation_id)
        if not conversation:
            raise NotFound("Chat not found")
        if not conversation.has_participant(requester.id):
            raise Forbidden("Not authorized")
        return conversation

    def list_messages(self, requester: Actor, conversation_id: str) -> List[MessageDto]:
        conversation = self.get_conversation(requester, conversation_id)
        return self.conversations.list_messages(conversation.id)

    def participant_summaries(self, conversation: ConversationDto) -> List[Dict[str, str]]:
        summaries = []
        for user_id in conversation.participants:
            user = self.users.get_by_id(user_id)
            if user:
                summaries.append({"id": user.id, "name": user.name, "email": user.email, "role": user.role})
            else:
                summaries.append({"id": user_id})
        return summaries

    def _fan_out_message(self, conversation: ConversationDto, message: MessageDto) -> None:
        self.notifier.emit_to_room(
            chat_room(conversation.id),
            NEW_MESSAGE,
            {"chat_id": conversation.id, "message": message},
        )
        snapshot = {
            "chat": {
                "id": conversation.id,
                "participants": self.participant_summaries(conversation),
                "last_message_at": message.timestamp,
                "messages": [message],
            }
        }
        for user_id in conversation.participants:
            self.notifier.emit_to_room(personal_room(user_id), CHAT_UPDATED, snapshot)
