# backend/marketplace/schemas/notification.py
from datetime import datetime
from typing import Optional

from .base import StandardizedModel


class NotificationResponse(StandardizedModel):
    id: str
    type: str
    title: str
    message: str
    booking_id: Optional[str] = None
    is_read: bool
    created_at: datetime
    formatted_time: str


class UnreadCountResponse(StandardizedModel):
    unread_count: int
