# backend/marketplace/api/dependencies/__init__.py
"""FastAPI dependencies: database sessions, the current user and service factories."""

from .auth import get_current_user, require_admin
from .database import get_db

__all__ = ["get_current_user", "get_db", "require_admin"]
