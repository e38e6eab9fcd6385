"""
ClientDesk Test Configuration

Shared fixtures for all tests.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from clientdesk.clock import FixedClock
from clientdesk.config import AuthConfig, RemindersConfig, ServiceConfig, StorageConfig
from clientdesk.dispatcher import NotificationDispatcher
from clientdesk.main import create_app
from clientdesk.repositories import build_repositories
from clientdesk.schemas import ClientCreate
from clientdesk.storage import JSONFileStore

# Sunday, mid-month, noon UTC
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# FIXTURES: Core objects
# =============================================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "db"


@pytest.fixture
def store(data_dir) -> JSONFileStore:
    return JSONFileStore(str(data_dir))


@pytest.fixture
def config(data_dir) -> ServiceConfig:
    return ServiceConfig(
        storage=StorageConfig(data_dir=str(data_dir)),
        auth=AuthConfig(jwt_secret="test-secret"),
        reminders=RemindersConfig(enabled=False),
    )


@pytest.fixture
def repos(store, clock):
    return build_repositories(store, clock)


@pytest.fixture
def acme(repos):
    """A stored client with email and WhatsApp number."""
    return repos.clients.create(
        ClientCreate(
            name="Acme Corp",
            email="billing@acme.test",
            company="Acme",
            whatsapp="+43 660 123 4567",
        )
    )


def make_adapter(name: str, recipient="someone", send=None):
    """Mocked channel adapter with the adapter protocol surface."""
    adapter = AsyncMock()
    adapter.channel_name = name
    adapter.is_enabled = True
    adapter.recipient_for = MagicMock(return_value=recipient)
    adapter.send = send or AsyncMock(return_value=True)
    adapter.health_check = AsyncMock(return_value=True)
    return adapter


@pytest.fixture
def adapter_factory():
    return make_adapter


@pytest.fixture
def dispatcher(config, clock):
    """Dispatcher with no external channels."""
    return NotificationDispatcher(config, clock, adapters=[])


# =============================================================================
# FIXTURES: HTTP
# =============================================================================

@pytest.fixture
def app(config, store, clock, dispatcher):
    return create_app(config, store, clock, dispatcher)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    resp = client.post(
        "/api/auth/register",
        json={"name": "Admin", "email": "admin@clientdesk.test", "password": "secret1"},
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['token']}"}
