from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.enums import NotificationType


@dataclass(frozen=True)
class NotificationTemplate:
    """
    Title/body pair for one notification type.

    ``fallback_body`` is used when ``body_template`` needs a value the caller
    could not supply (for example the other party has no name on record).
    """

    type: str
    title: str
    body_template: str
    fallback_body: Optional[str] = None


BOOKING_CREATED = NotificationTemplate(
    type=NotificationType.BOOKING_CREATED.value,
    title="New Booking Request",
    body_template="You have received a new booking request.",
)

BOOKING_ACCEPTED = NotificationTemplate(
    type=NotificationType.BOOKING_ACCEPTED.value,
    title="Booking Accepted",
    body_template="Your booking has been accepted by {provider_name}.",
    fallback_body="Your booking has been accepted.",
)

BOOKING_CANCELLED_BY_USER = NotificationTemplate(
    type=NotificationType.BOOKING_CANCELLED_BY_USER.value,
    title="Booking Cancelled",
    body_template="Booking cancelled by {customer_name}.",
    fallback_body="The booking was cancelled by the customer.",
)

BOOKING_REASSIGNED_AFTER_CANCELLED = NotificationTemplate(
    type=NotificationType.BOOKING_REASSIGNED_AFTER_CANCELLED.value,
    title="Booking Reassigned",
    body_template=(
        "Your provider {old_provider_name} cancelled. "
        "We found a new provider for you automatically."
    ),
    fallback_body="Your provider cancelled. We found a new provider for you automatically.",
)

BOOKING_REASSIGNED_AFTER_REJECTED = NotificationTemplate(
    type=NotificationType.BOOKING_REASSIGNED_AFTER_REJECTED.value,
    title="Booking Reassigned",
    body_template="We found a new provider for your request.",
)

BOOKING_COMPLETED = NotificationTemplate(
    type=NotificationType.BOOKING_COMPLETED.value,
    title="Booking Completed",
    body_template="Your service has been completed. Please leave a review!",
)

BOOKING_REVIEWED = NotificationTemplate(
    type=NotificationType.BOOKING_REVIEWED.value,
    title="New Review Received!",
    body_template="A customer has rated your service. You received {rating} stars!",
    fallback_body="A customer has rated your service.",
)

NEW_MESSAGE = NotificationTemplate(
    type=NotificationType.NEW_MESSAGE.value,
    title="New Message",
    body_template="{sender_name} sent you a message.",
    fallback_body="You have a new message.",
)

DEFAULT_TEMPLATE = NotificationTemplate(
    type="notification",
    title="Notification",
    body_template="You have a new notification.",
)

TEMPLATES_BY_TYPE: Dict[str, NotificationTemplate] = {
    template.type: template
    for template in (
        BOOKING_CREATED,
        BOOKING_ACCEPTED,
        BOOKING_CANCELLED_BY_USER,
        BOOKING_REASSIGNED_AFTER_CANCELLED,
        BOOKING_REASSIGNED_AFTER_REJECTED,
        BOOKING_COMPLETED,
        BOOKING_REVIEWED,
        NEW_MESSAGE,
    )
}


def get_template(notification_type: NotificationType | str) -> NotificationTemplate:
    key = notification_type.value if isinstance(notification_type, NotificationType) else notification_type
    return TEMPLATES_BY_TYPE.get(key, DEFAULT_TEMPLATE)


def render_notification(template: NotificationTemplate, **kwargs: Any) -> tuple[str, str]:
    """Return ``(title, message)``; blank interpolation values fall back to the generic body."""
    values = {key: value for key, value in kwargs.items() if value not in (None, "")}
    try:
        body = template.body_template.format(**values)
    except KeyError:
        body = template.fallback_body or DEFAULT_TEMPLATE.body_template
    return template.title, body
