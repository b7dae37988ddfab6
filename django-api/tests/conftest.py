"""Pytest configuration and shared fixtures."""

import pytest
from asgiref.sync import async_to_sync
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from bookings.handlers.views import BookingAPIView
from bookings.models import Profile
from bookings.services.availability import SlotAvailabilityTracker
from bookings.services.booking_service import build_booking_service
from bookings.stores import BookingRepository, InMemoryRecordStore
from bookings.stores.django_store import DjangoRecordStore
from seed_data import (
    AGENT_ID,
    CUSTOMER_ID,
    NOW,
    RecordingNotifier,
    ScriptedChargeAuthority,
    seed_rows,
)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(seed_rows())


@pytest.fixture
def repository(store) -> BookingRepository:
    return BookingRepository(store)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def tracker(repository, clock) -> SlotAvailabilityTracker:
    return SlotAvailabilityTracker(repository, clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def charge_authority() -> ScriptedChargeAuthority:
    return ScriptedChargeAuthority()


@pytest.fixture
def service(store, clock, notifier, charge_authority):
    return build_booking_service(
        store, clock=clock, notifier=notifier, charge_authority=charge_authority
    )


@pytest.fixture
def seeded_db(db) -> DjangoRecordStore:
    """The shared seed rows, written through the ORM store."""
    db_store = DjangoRecordStore()
    for entity, rows in seed_rows().items():
        async_to_sync(db_store.insert)(entity, rows)
    return db_store


@pytest.fixture
def api(api_client, seeded_db, clock, notifier, monkeypatch) -> APIClient:
    """API client whose views run on the seeded database and a fixed clock."""

    def get_service(view):
        return build_booking_service(DjangoRecordStore(), clock=clock, notifier=notifier)

    monkeypatch.setattr(BookingAPIView, "get_service", get_service)
    return api_client


def linked_user(username: str, profile_id):
    user = get_user_model().objects.create_user(username=username, password="secret")
    Profile.objects.filter(id=profile_id).update(user=user)
    return user


@pytest.fixture
def customer_user(seeded_db):
    """Account signed in as the seeded customer."""
    return linked_user("meera", CUSTOMER_ID)


@pytest.fixture
def agent_user(seeded_db):
    """Account signed in as the seeded agent."""
    return linked_user("asha", AGENT_ID)
