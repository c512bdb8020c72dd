# tests/conftest.py
"""
Pytest configuration.

Every test gets a fresh in-memory SQLite database, a calendar pinned to a
fixed Monday, and recording fakes for the payment processor and notifier.
"""

import os

# Set testing mode BEFORE any app imports
os.environ["IS_TESTING"] = "true"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-session-secret-key-0123456789abcdef")

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from studio_booking import models  # noqa: F401
from studio_booking.api.dependencies.database import get_db
from studio_booking.api.dependencies.services import (
    get_calendar,
    get_guest_token_service,
    get_notifications,
    get_processor,
)
from studio_booking.core.business_calendar import BusinessCalendar
from studio_booking.database import Base
from studio_booking.main import app
from studio_booking.models.user import User
from studio_booking.services.guest_token_service import GuestTokenService
from studio_booking.services.notification_service import NotificationService
from tests.factories import (
    GUEST_SECRET,
    TODAY,
    FakePaymentProcessor,
    RecordingNotifier,
    make_user,
)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def calendar() -> BusinessCalendar:
    return BusinessCalendar(timezone_name="America/Monterrey", today_provider=lambda: TODAY)


@pytest.fixture
def processor() -> FakePaymentProcessor:
    return FakePaymentProcessor()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def notification_service(notifier: RecordingNotifier) -> NotificationService:
    return NotificationService(notifier)


@pytest.fixture
def token_service() -> GuestTokenService:
    return GuestTokenService(secret=GUEST_SECRET, app_url="https://studio.test")


@pytest.fixture
def user(db: Session) -> User:
    return make_user(db)


@pytest.fixture
def admin_user(db: Session) -> User:
    return make_user(db, email="admin@studio.test", name="Admin", is_admin=True)


@pytest.fixture
def client(
    db: Session,
    calendar: BusinessCalendar,
    processor: FakePaymentProcessor,
    notification_service: NotificationService,
    token_service: GuestTokenService,
) -> TestClient:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_calendar] = lambda: calendar
    app.dependency_overrides[get_processor] = lambda: processor
    app.dependency_overrides[get_notifications] = lambda: notification_service
    app.dependency_overrides[get_guest_token_service] = lambda: token_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
