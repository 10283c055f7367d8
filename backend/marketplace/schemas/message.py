# backend/marketplace/schemas/message.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from ..models.message import MESSAGE_MAX_LENGTH
from ._strict_base import StrictRequestModel
from .base import StandardizedModel


class MessageCreate(StrictRequestModel):
    content: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)


class ChatMessageResponse(StandardizedModel):
    id: str
    booking_id: str
    content: str
    sent_at: datetime
    formatted_time: str
    is_read: bool
    is_mine: bool


class ConversationResponse(StandardizedModel):
    booking_id: str
    other_party_id: str
    other_party_name: str
    last_message: str
    last_message_at: Optional[datetime] = None
    last_message_formatted_time: str
    unread_count: int
