# backend/marketplace/routes/v1/chats.py
"""
Chat routes - API v1

Per-booking conversations between the customer and the assigned provider.

Endpoints:
    GET /                               → Conversations, most recent first
    GET /{booking_id}/messages          → History (marks received messages read)
    POST /{booking_id}/messages         → Send a message
    DELETE /messages/{message_id}       → Delete own message
    PUT /messages/{message_id}/read     → Mark a received message read
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_message_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.base import MessageResponse
from ...schemas.message import ChatMessageResponse, ConversationResponse, MessageCreate
from ...services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chats-v1"])


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> List[ConversationResponse]:
    conversations = await asyncio.to_thread(service.list_conversations, current_user)
    return [ConversationResponse(**entry) for entry in conversations]


# Static message routes before the dynamic booking routes
@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(service.delete_message, current_user, message_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Message deleted.")


@router.put("/messages/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(service.mark_read, current_user, message_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Message marked as read.")


@router.get("/{booking_id}/messages", response_model=List[ChatMessageResponse])
async def get_messages(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> List[ChatMessageResponse]:
    try:
        messages = await asyncio.to_thread(service.get_messages, current_user, booking_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return [ChatMessageResponse(**entry) for entry in messages]


@router.post(
    "/{booking_id}/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    booking_id: str,
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> ChatMessageResponse:
    try:
        message = await asyncio.to_thread(
            service.send_message, current_user, booking_id, payload.content
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return ChatMessageResponse(**message)
