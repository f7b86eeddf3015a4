"""Shared fixtures for integration tests."""

import pytest_asyncio

from gageguess.main import GameServer


@pytest_asyncio.fixture
async def game_server():
    """Run a real gateway on an ephemeral local port."""
    server = GameServer(host="127.0.0.1", port=0, send_timeout_seconds=1.0)
    await server.listen()
    yield server
    await server.close()
