"""Shared fixtures: a fresh SQLite database per test and a ready TrackerService."""
from datetime import date

import pytest

from tawba.core.db import close_db, init_db
from tawba.tracker.service import TrackerService
from tawba.tracker.store import RecordStore


@pytest.fixture
def db(tmp_path):
    close_db()
    init_db(db_url=f"sqlite:///{tmp_path / 'tawba_test.db'}")
    yield
    close_db()


@pytest.fixture
def store(db):
    record_store = RecordStore()
    record_store.initialize()
    return record_store


@pytest.fixture
def service(store):
    return TrackerService(store)


@pytest.fixture
def onboarded(service):
    """Tracking since 2024-01-01 with 5 missed fajr."""
    service.complete_onboarding(date(2024, 1, 1), [{"prayer": "fajr", "initial_count": 5}])
    return service
