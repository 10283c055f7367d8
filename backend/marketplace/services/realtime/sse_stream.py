# backend/marketplace/services/realtime/sse_stream.py
"""
SSE stream and publisher over the shared Broadcaster connection.

Every user has one channel (``user:{id}``). Notifications, booking updates and
chat events are published there as JSON and relayed to the user's open SSE
connections.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from ...core.broadcast import get_broadcast, user_channel
from ...core.config import settings
from ...monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


async def publish_to_user(user_id: str, event: Dict[str, Any]) -> bool:
    """
    Publish an event to one user's channel.

    Best-effort: returns False instead of raising when the broadcaster is not
    running or the backend errors.
    """
    event_name = str(event.get("event", "unknown"))
    try:
        broadcast = get_broadcast()
        await broadcast.publish(channel=user_channel(user_id), message=json.dumps(event, default=str))
        prometheus_metrics.record_live_push(event_name, "sent")
        return True
    except RuntimeError as e:
        logger.debug("[LIVE-PUSH] Broadcast unavailable, skipping %s for %s: %s", event_name, user_id, e)
        prometheus_metrics.record_live_push(event_name, "skipped")
        return False
    except Exception as e:
        logger.error("[LIVE-PUSH] Failed to publish %s to %s: %s", event_name, user_id, e)
        prometheus_metrics.record_live_push(event_name, "failed")
        return False


def _heartbeat() -> Dict[str, str]:
    return {
        "event": "heartbeat",
        "data": json.dumps({"timestamp": datetime.now(timezone.utc).isoformat()}),
    }


async def create_sse_stream(
    user_id: str, heartbeat_seconds: Optional[int] = None
) -> AsyncGenerator[Dict[str, str], None]:
    """
    Relay a user's channel as SSE events, with heartbeats while idle.

    DB-free: the caller authenticates before streaming so no session is held
    open for the lifetime of the connection.
    """
    interval = heartbeat_seconds or settings.sse_heartbeat_seconds

    yield {
        "event": "connected",
        "data": json.dumps({"user_id": user_id, "status": "connected"}),
    }

    try:
        broadcast = get_broadcast()
    except RuntimeError as e:
        logger.error("[SSE-STREAM] Broadcast error for user %s: %s", user_id, e)
        yield {
            "event": "error",
            "data": json.dumps(
                {"error": "service_unavailable", "message": "Real-time service temporarily unavailable"}
            ),
        }
        return

    async with broadcast.subscribe(channel=user_channel(user_id)) as subscriber:
        # Queue decouples the subscriber from heartbeat timeouts; wait_for on
        # __anext__ directly would cancel the broadcaster's internal read.
        queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()

        async def reader() -> None:
            try:
                async for event in subscriber:
                    await queue.put(("message", event))
            finally:
                await queue.put(("done", None))

        reader_task = asyncio.create_task(reader())
        try:
            while True:
                try:
                    kind, data = await asyncio.wait_for(queue.get(), timeout=interval)
                except asyncio.TimeoutError:
                    yield _heartbeat()
                    continue

                if kind == "done":
                    logger.info("[SSE-STREAM] Subscription ended for user %s", user_id)
                    break
                try:
                    payload = json.loads(data.message)
                except json.JSONDecodeError as e:
                    logger.warning("[SSE-STREAM] Invalid JSON on %s: %s", user_channel(user_id), e)
                    continue
                yield {
                    "event": str(payload.get("event", "message")),
                    "data": json.dumps(payload.get("data", payload), default=str),
                }
        finally:
            reader_task.cancel()
            try:
                await reader_task
            except asyncio.CancelledError:
                pass
