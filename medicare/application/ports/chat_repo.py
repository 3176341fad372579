from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple
from datetime import datetime


@dataclass
class MessageDto:
    id: str
    sender_id: str
    content: str
    timestamp: datetime


@dataclass
class ConversationDto:
    id: str
    participants: Tuple[str, str]
    last_message_at: datetime
    created_at: datetime
    messages: List[MessageDto] = field(default_factory=list)

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participants

    def other_participant(self, user_id: str) -> str:
        a, b = self.participants
        return b if a == user_id else a


def pair_key(user_a: str, user_b: str) -> str:
    return ":".join(sorted((user_a, user_b)))


class ConversationsRepository(Protocol):
    def get_by_id(self, conversation_id: str, with_messages: bool = False) -> Optional[ConversationDto]:
        ...

    def find_between(self, user_a: str, user_b: str) -> Optional[ConversationDto]:
        ...

    def create(self, user_a: str, user_b: str) -> Tuple[ConversationDto, bool]:
        """Create the pair's conversation; returns (conversation, created).

        When another writer created it first, returns the existing one with created=False.
        """
        ...

    def list_for_user(self, user_id: str) -> List[ConversationDto]:
        ...

    def append_message(self, conversation_id: str, sender_id: str, content: str, timestamp: datetime) -> MessageDto:
        ...

    def list_messages(self, conversation_id: str) -> List[MessageDto]:
        ...
