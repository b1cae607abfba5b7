"""
Shared pytest fixtures for the slot layout service.

Core tests run against the in-memory store; API tests get a Flask app on
an in-memory SQLite database and a bearer token for an editor.
"""
from datetime import datetime, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token

from slotlayout import create_app
from slotlayout.application.slots.version_store import VersionStoreClient
from slotlayout.domain.slots.registry import get_page_schema
from slotlayout.extensions import db
from slotlayout.repositories.memory import InMemorySlotConfigurationStore


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


# ============================================================================
# Schema / configuration fixtures
# ============================================================================

@pytest.fixture
def cart_schema():
    return get_page_schema("cart")


@pytest.fixture
def cart_config():
    return {
        "version": "1.0",
        "majorSlots": ["header", "flashMessage", "cartContent", "recommendations"],
        "microSlotOrders": {},
        "microSlotSpans": {"cartContent.items": {"col": 8, "row": 3}},
        "slotContent": {"header.title": "My Cart"},
        "elementClasses": {"header.title": "text-2xl font-bold"},
        "elementStyles": {"header.title": {"color": "#111"}},
        "componentSizes": {},
        "customSlots": {},
        "metadata": {"pageType": "cart"},
    }


# ============================================================================
# Version store fixtures
# ============================================================================

@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def memory_store(clock):
    return InMemorySlotConfigurationStore(clock=clock)


@pytest.fixture
def events():
    return []


@pytest.fixture
def version_store(memory_store, events):
    client = VersionStoreClient(memory_store)
    client.subscribe(lambda event, record, payload: events.append((event, record, payload)))
    return client


# ============================================================================
# Flask fixtures
# ============================================================================

@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    token = create_access_token(identity="editor-1")
    return {"Authorization": f"Bearer {token}"}
