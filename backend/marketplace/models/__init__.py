# backend/marketplace/models/__init__.py
"""
Import every model so ``Base.metadata`` is complete for create_all and Alembic.
"""

from .booking import Attachment, Booking, BookingServiceItem
from .catalog import Service, ServiceArea, ServiceCategory
from .message import Message
from .notification import Notification
from .provider import Schedule, ServiceProvider, provider_service_areas, provider_services
from .review import Review
from .subscription import Subscription, SubscriptionPlan
from .user import User

__all__ = [
    "Attachment",
    "Booking",
    "BookingServiceItem",
    "Message",
    "Notification",
    "Review",
    "Schedule",
    "Service",
    "ServiceArea",
    "ServiceCategory",
    "ServiceProvider",
    "Subscription",
    "SubscriptionPlan",
    "User",
    "provider_service_areas",
    "provider_services",
]
