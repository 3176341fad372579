# medicare/db/models/chat/conversation.py
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime
from datetime import datetime
import uuid


class Conversation(SQLModel, table=True):
    __tablename__ = "conversations"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    participant_a: str = Field(foreign_key="users.id", index=True)
    participant_b: str = Field(foreign_key="users.id", index=True)
    # Sorted participant ids; one conversation per unordered pair
    pair_key: str = Field(unique=True, index=True)
    last_message_at: datetime = Field(default_factory=datetime.utcnow, sa_column=Column(DateTime, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_column=Column(DateTime, nullable=False))


class Message(SQLModel, table=True):
    __tablename__ = "messages"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    conversation_id: str = Field(foreign_key="conversations.id", index=True)
    sender_id: str = Field(foreign_key="users.id")
    content: str = Field(max_length=1000)
    timestamp: datetime = Field(default_factory=datetime.utcnow, sa_column=Column(DateTime, nullable=False, index=True))
