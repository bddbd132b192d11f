from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from flupp.api import deps
from flupp.config import Settings
from flupp.database import get_db
from flupp.gateways.simulated import SimulatedGateway
from flupp.main import app
from flupp.repositories.memory import (
    InMemoryBookingRepository,
    InMemoryPaymentEventRepository,
    InMemoryReviewRepository,
)
from flupp.schemas.booking import BookingCreate
from flupp.services.booking_service import BookingService
from flupp.services.payment_service import PaymentService
from flupp.services.review_service import ReviewService

WEBHOOK_SECRET = "whsec_test_secret"


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeSession:
    """Stands in for the request session when stores are in memory."""

    def __init__(self):
        self.rollbacks = 0

    async def rollback(self) -> None:
        self.rollbacks += 1


@pytest.fixture
def clock():
    return FrozenClock(datetime(2030, 3, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def test_settings():
    return Settings(_env_file=None)


@pytest.fixture
def booking_repo():
    return InMemoryBookingRepository()


@pytest.fixture
def review_repo():
    return InMemoryReviewRepository()


@pytest.fixture
def event_repo():
    return InMemoryPaymentEventRepository()


@pytest.fixture
def gateway():
    return SimulatedGateway(webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def booking_service(booking_repo, clock, test_settings):
    return BookingService(booking_repo, clock=clock, settings=test_settings)


@pytest.fixture
def review_service(review_repo, booking_service, clock, test_settings):
    return ReviewService(review_repo, booking_service, clock=clock, settings=test_settings)


@pytest.fixture
def payment_service(booking_service, event_repo, gateway, clock, test_settings):
    return PaymentService(
        booking_service, event_repo, gateway, clock=clock, settings=test_settings
    )


@pytest.fixture
def make_booking(clock):
    """Build a valid BookingCreate starting ``days`` after the frozen clock."""

    def _make(days: float = 7, hours: float = 24, **overrides) -> BookingCreate:
        start_at = clock.now + timedelta(days=days)
        fields = {
            "pet_name": "Biscuit",
            "species": "dog",
            "service_type": "boarding",
            "start_at": start_at,
            "end_at": start_at + timedelta(hours=hours),
            "price_cents": 4500,
            "customer_email": "owner@flupp.co.uk",
        }
        fields.update(overrides)
        return BookingCreate(**fields)

    return _make


@pytest.fixture
def api_client(booking_repo, review_repo, event_repo, gateway):
    """TestClient over in-memory stores and the simulated gateway."""
    session = FakeSession()

    async def override_db():
        yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[deps.get_booking_repository] = lambda: booking_repo
    app.dependency_overrides[deps.get_review_repository] = lambda: review_repo
    app.dependency_overrides[deps.get_payment_event_repository] = lambda: event_repo
    app.dependency_overrides[deps.get_gateway] = lambda: gateway

    with TestClient(app) as client:
        client.session = session
        yield client

    app.dependency_overrides.clear()
