# backend/tests/conftest.py
"""
Pytest configuration.

Every test gets its own SQLite database file, so sessions opened on the same
engine see each other's commits (the concurrency tests rely on that) and no
test can reach a real database.
"""

import os
import sys

# Set test configuration BEFORE any marketplace imports
os.environ["CI"] = "1"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LIVE_PUSH_ENABLED"] = "false"
os.environ["PROVIDER_SELECTION_STRATEGY"] = "first"

backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from typing import Any, Dict, List, Optional, Tuple

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from marketplace.api.dependencies.database import get_db
from marketplace.api.dependencies.services import (
    get_file_storage,
    get_notification_transport,
    get_provider_selector,
)
from marketplace.core.enums import RoleName
from marketplace.database import Base
from marketplace.main import app
from marketplace.services.booking_service import BookingService
from marketplace.services.file_storage import NullFileStorage
from marketplace.services.notification_service import NotificationService
from marketplace.services.provider_matching_service import ProviderMatchingService
from marketplace.services.provider_selection import FirstProviderSelector

from tests.builders import Catalog, auth_headers_for, make_catalog, make_provider, make_user


class RecordingTransport:
    """Keeps every push so tests can assert on live events."""

    def __init__(self) -> None:
        self.pushes: List[Tuple[str, Dict[str, Any]]] = []

    def push(self, user_id: str, payload: Dict[str, Any]) -> None:
        self.pushes.append((user_id, payload))

    def events_for(self, user_id: str) -> List[str]:
        return [payload["event"] for target, payload in self.pushes if target == user_id]


class FailingTransport:
    def push(self, user_id: str, payload: Dict[str, Any]) -> None:
        raise RuntimeError("socket closed")


@pytest.fixture
def engine(tmp_path):
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'marketplace_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notification_service(db, transport) -> NotificationService:
    return NotificationService(db, transport=transport)


@pytest.fixture
def matching_service(db) -> ProviderMatchingService:
    return ProviderMatchingService(db, selector=FirstProviderSelector())


@pytest.fixture
def booking_service(db, notification_service, matching_service) -> BookingService:
    return BookingService(
        db,
        notification_service=notification_service,
        matching_service=matching_service,
        file_storage=NullFileStorage(),
    )


# ----------------------------------------------------------------------
# Marketplace data
# ----------------------------------------------------------------------


@pytest.fixture
def catalog(db) -> Catalog:
    return make_catalog(db)


@pytest.fixture
def customer(db):
    return make_user(db, "Lina Haddad", email="lina@example.com")


@pytest.fixture
def other_customer(db):
    return make_user(db, "Omar Nasser", email="omar@example.com")


@pytest.fixture
def admin(db):
    return make_user(db, "Admin User", role=RoleName.ADMIN, email="admin@example.com")


@pytest.fixture
def provider(db, catalog):
    """Verified, subscribed provider offering every catalog service in the main area."""
    return make_provider(db, catalog, "Sami Khalil", email="sami@example.com")


@pytest.fixture
def second_provider(db, catalog):
    return make_provider(db, catalog, "Rami Saleh", email="rami@example.com")


# ----------------------------------------------------------------------
# HTTP
# ----------------------------------------------------------------------


@pytest.fixture
def client(db, transport):
    """TestClient sharing the test session, with deterministic collaborators."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_transport] = lambda: transport
    app.dependency_overrides[get_provider_selector] = lambda: FirstProviderSelector()
    app.dependency_overrides[get_file_storage] = lambda: NullFileStorage()
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def customer_headers(customer) -> Dict[str, str]:
    return auth_headers_for(customer)


@pytest.fixture
def provider_headers(provider) -> Dict[str, str]:
    return auth_headers_for(provider.user)


@pytest.fixture
def admin_headers(admin) -> Dict[str, str]:
    return auth_headers_for(admin)


def pytest_configure(config: Optional[Any]) -> None:
    config.addinivalue_line("markers", "concurrency: tests that open competing sessions")
