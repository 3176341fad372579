from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .....db.models import Conversation, Message
from .....application.ports.chat_repo import (
    ConversationDto,
    ConversationsRepository,
    MessageDto,
    pair_key,
)
from .base import SqlRepository


class SqlConversationsRepository(SqlRepository, ConversationsRepository):
    def _message_to_dto(self, m: Message) -> MessageDto:
        return MessageDto(id=m.id, sender_id=m.sender_id, content=m.content, timestamp=m.timestamp)

    def _to_dto(self, c: Conversation, messages: Optional[List[Message]] = None) -> ConversationDto:
        return ConversationDto(
            id=c.id,
            participants=(c.participant_a, c.participant_b),
            last_message_at=c.last_message_at,
            created_at=c.created_at,
            messages=[self._message_to_dto(m) for m in (messages or [])],
        )

    def _messages_for(self, conversation_id: str) -> List[Message]:
        return self.session.exec(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.timestamp.asc())
        ).all()

    def get_by_id(self, conversation_id: str, with_messages: bool = False) -> Optional[ConversationDto]:
        with self._guard("conversation lookup"):
            c = self.session.exec(select(Conversation).where(Conversation.id == conversation_id)).first()
            if not c:
                return None
            messages = self._messages_for(c.id) if with_messages else None
        return self._to_dto(c, messages)

    def find_between(self, user_a: str, user_b: str) -> Optional[ConversationDto]:
        with self._guard("conversation lookup"):
            c = self.session.exec(select(Conversation).where(Conversation.pair_key == pair_key(user_a, user_b))).first()
        return self._to_dto(c) if c else None

    def create(self, user_a: str, user_b: str) -> Tuple[ConversationDto, bool]:
        conversation = Conversation(participant_a=user_a, participant_b=user_b, pair_key=pair_key(user_a, user_b))
        with self._guard("conversation create"):
            self.session.add(conversation)
            try:
                self.session.commit()
            except IntegrityError:
                # Another request created this pair's conversation first
                self.session.rollback()
                existing = self.find_between(user_a, user_b)
                if existing is None:
                    raise
                return existing, False
            self.session.refresh(conversation)
        return self._to_dto(conversation), True

    def list_for_user(self, user_id: str) -> List[ConversationDto]:
        with self._guard("conversation list"):
            rows = self.session.exec(
                select(Conversation)
                .where(or_(Conversation.participant_a == user_id, Conversation.participant_b == user_id))
                .order_by(Conversation.last_message_at.desc())
            ).all()
        return [self._to_dto(r) for r in rows]

    def append_message(self, conversation_id: str, sender_id: str, content: str, timestamp: datetime) -> MessageDto:
        with self._guard("message append"):
            c = self.session.exec(select(Conversation).where(Conversation.id == conversation_id)).first()
            message = Message(conversation_id=conversation_id, sender_id=sender_id, content=content, timestamp=timestamp)
            c.last_message_at = timestamp
            self.session.add(message)
            self.session.add(c)
            self.session.commit()
            self.session.refresh(message)
        return self._message_to_dto(message)

    def list_messages(self, conversation_id: str) -> List[MessageDto]:
        with self._guard("message list"):
            rows = self._messages_for(conversation_id)
        return [self._message_to_dto(m) for m in rows]
