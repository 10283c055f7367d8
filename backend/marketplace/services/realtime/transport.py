# backend/marketplace/services/realtime/transport.py
"""
Notification transport: ``push(user_id, payload)``.

Services are synchronous and run in worker threads (``asyncio.to_thread``),
while the broadcaster lives on the event loop. The broadcast transport hands
each publish to that loop and returns immediately; it never raises.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Future
import logging
from typing import Any, Dict, Protocol, Set

from ...core.broadcast import get_broadcast_loop, is_broadcast_initialized
from ...monitoring.prometheus_metrics import prometheus_metrics
from .sse_stream import publish_to_user

logger = logging.getLogger(__name__)

# Publish tasks scheduled on the running loop, held until they finish.
_inflight: Set["asyncio.Task[bool]"] = set()


class NotificationTransport(Protocol):
    def push(self, user_id: str, payload: Dict[str, Any]) -> None:
        """Deliver ``payload`` to the user's live connection if any. Must not raise."""


class NullNotificationTransport:
    """Used when live push is disabled."""

    def push(self, user_id: str, payload: Dict[str, Any]) -> None:
        prometheus_metrics.record_live_push(str(payload.get("event", "unknown")), "skipped")


def _log_future_failure(future: "Future[bool] | asyncio.Future[bool]") -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("[LIVE-PUSH] Publish task failed: %s", exc)


def _release_task(task: "asyncio.Task[bool]") -> None:
    _inflight.discard(task)
    _log_future_failure(task)


class BroadcastNotificationTransport:
    """Publishes onto the broadcaster's event loop, fire-and-forget."""

    def push(self, user_id: str, payload: Dict[str, Any]) -> None:
        loop = get_broadcast_loop()
        if loop is None or not is_broadcast_initialized() or loop.is_closed():
            logger.debug("[LIVE-PUSH] Broadcaster not running; dropping push for %s", user_id)
            prometheus_metrics.record_live_push(str(payload.get("event", "unknown")), "skipped")
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        try:
            if running is loop:
                task = loop.create_task(publish_to_user(user_id, payload))
                _inflight.add(task)
                task.add_done_callback(_release_task)
            else:
                future = asyncio.run_coroutine_threadsafe(publish_to_user(user_id, payload), loop)
                future.add_done_callback(_log_future_failure)
        except RuntimeError as e:
            logger.warning("[LIVE-PUSH] Could not schedule push for %s: %s", user_id, e)
            prometheus_metrics.record_live_push(str(payload.get("event", "unknown")), "failed")
