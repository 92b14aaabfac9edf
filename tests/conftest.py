import threading

import pytest

from eventflow.core.catalog import EventCatalog
from eventflow.core.checkin import CheckInEngine
from eventflow.core.registration import RegistrationEngine
from eventflow.core.stats import StatsAggregator
from eventflow.storage import InMemoryRecordStore


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def lock():
    return threading.RLock()


@pytest.fixture
def catalog(store, lock):
    return EventCatalog(store, lock)


@pytest.fixture
def registration(store, lock):
    return RegistrationEngine(store, lock)


@pytest.fixture
def checkin(store, lock):
    return CheckInEngine(store, lock)


@pytest.fixture
def stats(store):
    return StatsAggregator(store)


@pytest.fixture
def conference(catalog):
    return catalog.create_event({
        "name": "Tech Conference",
        "date": "2025-03-15",
        "location": "Main Hall",
        "form_fields": [
            {"id": "full_name", "label": "Full Name", "type": "text", "required": True},
            {"id": "email", "label": "Email", "type": "email", "required": True},
            {"id": "company", "label": "Company", "type": "text"},
            {"id": "age", "label": "Age", "type": "number"},
            {"id": "track", "label": "Track", "type": "select", "options": ["Web", "AI"]},
            {"id": "newsletter", "label": "Newsletter", "type": "checkbox"},
        ],
    })


@pytest.fixture
def hackathon(catalog):
    return catalog.create_event({
        "name": "Hackathon",
        "date": "2025-04-20",
        "location": "Innovation Hub",
        "event_type": "team",
        "max_team_size": 4,
        "form_fields": [
            {"id": "team", "label": "TeamName", "type": "text", "required": True},
            {"id": "leader_email", "label": "LeaderEmail", "type": "email", "required": True},
        ],
    })
