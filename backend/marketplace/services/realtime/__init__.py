from .sse_stream import create_sse_stream, publish_to_user
from .transport import (
    BroadcastNotificationTransport,
    NotificationTransport,
    NullNotificationTransport,
)

__all__ = [
    "BroadcastNotificationTransport",
    "NotificationTransport",
    "NullNotificationTransport",
    "create_sse_stream",
    "publish_to_user",
]
