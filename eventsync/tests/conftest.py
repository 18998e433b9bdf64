"""Pytest configuration for eventsync tests."""

import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eventsync.cache import EntityCache
from eventsync.models.config import EventSyncConfig
from eventsync.models.entities import Category, Event, EventDraft, User
from eventsync.remote_store import RemoteStoreClient


@pytest.fixture(autouse=True)
def clean_env():
    """Keep developer EVENTSYNC_* variables out of the tests."""
    env = {key: value for key, value in os.environ.items() if not key.startswith("EVENTSYNC_")}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def config():
    return EventSyncConfig(base_url="http://backend.test", request_timeout=2.0)


@pytest.fixture
def sample_events():
    """Two events matching the list page scenarios."""
    return [
        Event(
            id=1,
            title="Jazz Night",
            description="Live jazz at the park",
            location="City Park",
            start_time=datetime(2024, 6, 1, 19, 0, tzinfo=timezone.utc),
            end_time=datetime(2024, 6, 1, 22, 0, tzinfo=timezone.utc),
            created_by=1,
            category_ids=[1],
        ),
        Event(
            id=2,
            title="Art Fair",
            description="Local painters and sculptors",
            location="Town Hall",
            start_time=datetime(2024, 6, 2, 10, 0, tzinfo=timezone.utc),
            end_time=datetime(2024, 6, 2, 17, 0, tzinfo=timezone.utc),
            created_by=2,
            category_ids=[2],
        ),
    ]


@pytest.fixture
def sample_categories():
    return [Category(id=1, name="music"), Category(id=2, name="art")]


@pytest.fixture
def sample_users():
    return [User(id=1, name="Ignacio Doe"), User(id=2, name="Jane Bennett")]


@pytest.fixture
def draft():
    """A valid event form."""
    return EventDraft(
        title="Salsa Workshop",
        description="Beginner friendly",
        image="https://example.com/salsa.jpg",
        location="Dance Hall",
        start_time=datetime(2024, 7, 1, 18, 0, tzinfo=timezone.utc),
        end_time=datetime(2024, 7, 1, 20, 0, tzinfo=timezone.utc),
        created_by="Jane Bennett",
        category_ids=[1, 2],
    )


@pytest.fixture
def store():
    """RemoteStore client mock with async verbs."""
    store = MagicMock(spec=RemoteStoreClient)
    store.list = AsyncMock(return_value=[])
    store.get = AsyncMock()
    store.create = AsyncMock()
    store.update = AsyncMock()
    store.delete = AsyncMock(return_value=None)
    return store


@pytest.fixture
def cache(store):
    return EntityCache(store)
