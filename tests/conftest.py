from datetime import date, timedelta

import pytest

from smartwings.config import Settings
from smartwings.models import SearchParams
from smartwings.session import SessionStore
from smartwings.tools import BookingSession
from smartwings.wizard import WizardController

TODAY = date(2030, 1, 15)
TOMORROW = TODAY + timedelta(days=1)


def make_params(**overrides) -> SearchParams:
    values = {
        "origin": "JFK",
        "destination": "LAX",
        "departure_date": TOMORROW,
        "return_date": None,
        "trip_type": "one-way",
        "adults": 2,
        "children": 0,
        "infants": 0,
        "travel_class": "economy",
    }
    values.update(overrides)
    return SearchParams(**values)


def make_passenger(**overrides) -> dict:
    values = {
        "title": "mr",
        "first_name": "John",
        "last_name": "Doe",
        "dob": "1985-04-12",
        "gender": "male",
        "nationality": "us",
        "passport_number": "X1234567",
        "passport_expiry": "2034-06-30",
    }
    values.update(overrides)
    return values


@pytest.fixture
def settings(tmp_path):
    return Settings(
        search_delay=0,
        payment_delay=0,
        session_file=str(tmp_path / "session.json"),
        log_level="DEBUG",
        code_attempts=5,
    )


@pytest.fixture
def wizard(settings):
    return WizardController(settings=settings, today=lambda: TODAY)


@pytest.fixture
def booking_session(settings, wizard):
    return BookingSession(wizard=wizard, users=SessionStore(settings.session_file), settings=settings)
