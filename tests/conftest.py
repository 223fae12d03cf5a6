from datetime import datetime, timezone

import pytest

from gps_live import create_app
from gps_live.config import AppConfig
from gps_live.hub import BroadcastHub
from gps_live.ingest import IngestionService
from gps_live.store import DeviceStore

FIXED_NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return DeviceStore()


@pytest.fixture
def hub(store):
    h = BroadcastHub(store, queue_size=10)
    yield h
    h.stop_heartbeat()


@pytest.fixture
def service(store, hub):
    return IngestionService(store, hub, clock=lambda: FIXED_NOW)


@pytest.fixture
def app():
    return create_app(AppConfig())


@pytest.fixture
def client(app):
    return app.test_client()
