# backend/marketplace/repositories/__init__.py
"""Data access layer. Repositories flush; services commit."""

from .base_repository import BaseRepository, IRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "IRepository", "RepositoryFactory"]
