"""
Shared fixtures for the relay test suite.
"""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from constants import RelaySettings
from registry import RoomRegistry
from relay import ConnectionRelay


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def settings():
    return RelaySettings(outbox_max_size=16, send_timeout_seconds=0.5)


@pytest.fixture
def relay(registry, settings):
    return ConnectionRelay(registry, settings)


@pytest.fixture
def client(registry, settings):
    # One shared portal, so every websocket session runs on the same event loop
    with TestClient(create_app(registry=registry, settings=settings)) as test_client:
        yield test_client
