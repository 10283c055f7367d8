# backend/marketplace/models/catalog.py
"""Service catalog: categories, bookable services and the areas they are offered in."""

from sqlalchemy import Boolean, Column, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    services = relationship("Service", back_populates="category", order_by="Service.name")


class Service(Base):
    """A catalog item. ``base_price`` is copied onto booking line items at booking time."""

    __tablename__ = "services"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    category_id = Column(String(26), ForeignKey("service_categories.id"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    estimated_hours = Column(Numeric(5, 2), nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)

    category = relationship("ServiceCategory", back_populates="services")

    def __repr__(self) -> str:
        return f"<Service {self.name} price={self.base_price}>"


class ServiceArea(Base):
    __tablename__ = "service_areas"
    __table_args__ = (UniqueConstraint("city", "name", name="uq_service_areas_city_name"),)

    id = Column(String(26), primary_key=True, default=generate_ulid)
    name = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<ServiceArea {self.city}/{self.name}>"
