# medicare/schemas/chats/chat.py
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from ..common.common import PartySummary


class ChatCreate(BaseModel):
    participant_id: Optional[str] = None


class MessageCreate(BaseModel):
    content: Optional[str] = None


class ChatMessageResponse(BaseModel):
    id: str
    sender_id: str
    content: str
    timestamp: datetime


class ConversationResponse(BaseModel):
    id: str
    participants: List[PartySummary]
    last_message_at: datetime
    created_at: datetime
    messages: List[ChatMessageResponse] = []
