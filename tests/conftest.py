import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from receptionist.models.business import BusinessProfile, Service
from receptionist.models.session_store import SessionStateStore
from receptionist.services.booking_client import BookingClient
from receptionist.services.telemetry import TelemetrySidecar


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStateStore(ttl_seconds=1800, clock=clock)


@pytest.fixture
def services():
    return [
        Service(id="intro_call_30", name="30-minute intro call", duration=30),
        Service(id="pt_60", name="60-minute 1:1 training", duration=60),
    ]


@pytest.fixture
def profile(services):
    return BusinessProfile(
        id="waismofit",
        name="Wais Mo Fitness",
        category="fitness",
        timezone="America/Toronto",
        services=services,
    )


@pytest.fixture
def booking():
    """Booking client double that reports a free slot and a successful booking."""
    client = MagicMock(spec=BookingClient)
    client.check_availability = AsyncMock(return_value={"available": True})
    client.book_appointment = AsyncMock(return_value={"ok": True, "bookingId": "bk_1"})
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def telemetry():
    sidecar = MagicMock(spec=TelemetrySidecar)
    sidecar.aclose = AsyncMock()
    return sidecar
