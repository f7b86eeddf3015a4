"""Shared test fixtures for Gage Guess server tests."""
import random

import pytest

from gageguess.coordinator import RoomCoordinator, Session
from gageguess.registry import RoomRegistry

from tests.helpers import MessageCollector


@pytest.fixture(autouse=True)
def deterministic_random():
    """Seed random for reproducible room codes."""
    random.seed(42)
    yield
    random.seed()


@pytest.fixture
def message_collector():
    """Create a fresh message collector."""
    return MessageCollector()


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def coordinator(message_collector, registry):
    """Create a coordinator wired to the message collector."""
    return RoomCoordinator(send=message_collector.send, registry=registry)


@pytest.fixture
def host():
    return Session(connection="host-conn")


@pytest.fixture
def guest():
    return Session(connection="guest-conn")


@pytest.fixture
def third():
    return Session(connection="third-conn")
