# backend/marketplace/routes/v1/notifications.py
"""
Notification routes - API v1

Endpoints:
    GET /               → Inbox, newest first (marks everything read)
    GET /unread-count   → Number of unread notifications
    GET /stream         → Server-Sent Events for live pushes
"""

import asyncio
import logging
from typing import AsyncGenerator, Dict, List

from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_notification_service
from ...models.user import User
from ...schemas.notification import NotificationResponse, UnreadCountResponse
from ...services.notification_service import NotificationService
from ...services.realtime.sse_stream import create_sse_stream

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications-v1"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    limit: int = Query(100, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> List[NotificationResponse]:
    entries = await asyncio.to_thread(service.list_for_user, current_user.id, limit)
    return [NotificationResponse(**entry) for entry in entries]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    count = await asyncio.to_thread(service.unread_count, current_user.id)
    return UnreadCountResponse(unread_count=count)


@router.get("/stream")
async def stream_notifications(
    current_user: User = Depends(get_current_user),
) -> EventSourceResponse:
    """
    Live pushes for the current user: notifications, booking updates and
    chat events. Delivery is best effort; the inbox is the source of truth.
    """
    user_id = current_user.id
    logger.info("[SSE] Connection opened for %s", user_id)

    async def event_generator() -> AsyncGenerator[Dict[str, str], None]:
        async for event in create_sse_stream(user_id):
            yield event

    return EventSourceResponse(
        event_generator(),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
        },
        media_type="text/event-stream",
    )
