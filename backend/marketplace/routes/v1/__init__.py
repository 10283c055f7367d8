# backend/marketplace/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import bookings, catalog, chats, notifications, providers, reviews, subscriptions, users

__all__ = [
    "bookings",
    "catalog",
    "chats",
    "notifications",
    "providers",
    "reviews",
    "subscriptions",
    "users",
]
