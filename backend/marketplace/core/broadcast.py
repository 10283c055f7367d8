# backend/marketplace/core/broadcast.py
"""
Shared broadcast manager for live pushes.

One ``Broadcast`` instance per worker process. With ``memory://`` it fans out
inside the process; with ``redis://`` every worker shares one pub/sub
connection and SSE clients subscribe through internal asyncio queues.
"""
import asyncio
import logging
from typing import Optional

from broadcaster import Broadcast

from .config import settings

logger = logging.getLogger(__name__)

_broadcast: Optional[Broadcast] = None
_loop: Optional[asyncio.AbstractEventLoop] = None


def get_broadcast() -> Broadcast:
    """
    Get the shared broadcast instance.

    Raises:
        RuntimeError: If broadcast is not initialized (call connect_broadcast first)
    """
    if _broadcast is None:
        raise RuntimeError("Broadcast not initialized. Call connect_broadcast() during startup.")
    return _broadcast


def get_broadcast_loop() -> Optional[asyncio.AbstractEventLoop]:
    """Event loop the broadcaster was connected on (worker threads publish onto it)."""
    return _loop


def is_broadcast_initialized() -> bool:
    return _broadcast is not None


async def connect_broadcast() -> None:
    """
    Connect the broadcaster backend.

    Call during application startup (in lifespan manager).
    """
    global _broadcast, _loop

    broadcast = Broadcast(settings.broadcast_url)
    await broadcast.connect()
    _broadcast = broadcast
    _loop = asyncio.get_running_loop()
    logger.info("[BROADCAST] Connected live push backend: %s", settings.broadcast_url)


async def disconnect_broadcast() -> None:
    """Disconnect the broadcaster backend. Call during application shutdown."""
    global _broadcast, _loop

    if _broadcast is not None:
        await _broadcast.disconnect()
        _broadcast = None
        _loop = None
        logger.info("[BROADCAST] Disconnected live push backend")


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"
