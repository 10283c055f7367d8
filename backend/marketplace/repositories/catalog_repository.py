# backend/marketplace/repositories/catalog_repository.py
"""Catalog repositories: services, categories and service areas."""

import logging
from typing import List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.catalog import Service, ServiceArea, ServiceCategory
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ServiceRepository(BaseRepository[Service]):
    def __init__(self, db: Session):
        super().__init__(db, Service)

    def get_many(self, service_ids: Sequence[str]) -> List[Service]:
        if not service_ids:
            return []
        try:
            return self.db.query(Service).filter(Service.id.in_(set(service_ids))).all()
        except SQLAlchemyError as e:
            logger.error("Error loading services %s: %s", list(service_ids), e)
            raise RepositoryException(f"Failed to load services: {e}") from e


class ServiceCategoryRepository(BaseRepository[ServiceCategory]):
    def __init__(self, db: Session):
        super().__init__(db, ServiceCategory)

    def list_with_services(self) -> List[ServiceCategory]:
        try:
            return (
                self.db.query(ServiceCategory)
                .options(selectinload(ServiceCategory.services))
                .order_by(ServiceCategory.name)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error listing categories: %s", e)
            raise RepositoryException(f"Failed to list categories: {e}") from e


class ServiceAreaRepository(BaseRepository[ServiceArea]):
    def __init__(self, db: Session):
        super().__init__(db, ServiceArea)

    def list_ordered(self) -> List[ServiceArea]:
        try:
            return self.db.query(ServiceArea).order_by(ServiceArea.city, ServiceArea.name).all()
        except SQLAlchemyError as e:
            logger.error("Error listing service areas: %s", e)
            raise RepositoryException(f"Failed to list service areas: {e}") from e

    def get_many(self, area_ids: Sequence[str]) -> List[ServiceArea]:
        if not area_ids:
            return []
        try:
            return self.db.query(ServiceArea).filter(ServiceArea.id.in_(set(area_ids))).all()
        except SQLAlchemyError as e:
            logger.error("Error loading service areas: %s", e)
            raise RepositoryException(f"Failed to load service areas: {e}") from e
