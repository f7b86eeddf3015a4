# tests/unit/test_game_server.py
"""Unit tests for GameServer framing and the send primitive."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.exceptions import ConnectionClosedOK
from websockets.protocol import State

from gageguess.coordinator import Session
from gageguess import main as main_module
from gageguess.main import GameServer
from gageguess.protocol import error_message


def fake_connection(state=State.OPEN):
    ws = MagicMock()
    ws.state = state
    ws.send = AsyncMock()
    return ws


def sent_payloads(ws):
    return [json.loads(call.args[0]) for call in ws.send.await_args_list]


@pytest.fixture
def server():
    return GameServer(host="127.0.0.1", port=0)


class TestSendToConnection:
    """Test best-effort delivery."""

    @pytest.mark.asyncio
    async def test_sends_json_when_open(self, server):
        ws = fake_connection()

        await server.send_to_connection(ws, error_message("RoomFull", "Room is full"))

        assert sent_payloads(ws) == [{"type": "error", "code": "RoomFull", "message": "Room is full"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [State.CONNECTING, State.CLOSING, State.CLOSED])
    async def test_drops_when_not_open(self, server, state):
        ws = fake_connection(state)

        await server.send_to_connection(ws, error_message("RoomFull", "Room is full"))

        ws.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_swallows_closed_connection(self, server):
        ws = fake_connection()
        ws.send.side_effect = ConnectionClosedOK(None, None)

        await server.send_to_connection(ws, error_message("RoomFull", "Room is full"))

    @pytest.mark.asyncio
    async def test_slow_send_times_out(self):
        server = GameServer(host="127.0.0.1", port=0, send_timeout_seconds=0.05)
        ws = fake_connection()

        async def stall(_):
            await asyncio.sleep(1)

        ws.send.side_effect = stall

        await asyncio.wait_for(
            server.send_to_connection(ws, error_message("RoomFull", "Room is full")),
            timeout=0.5
        )


class TestFrames:
    """Test frame parsing and routing."""

    @pytest.mark.asyncio
    async def test_each_line_is_a_command(self, server):
        ws = fake_connection()
        session = Session(connection=ws)

        await server.handle_frame(session, '{"type": "create", "maxNumber": 4}\n{"type": "reset"}')

        payloads = sent_payloads(ws)
        assert [p["type"] for p in payloads] == ["room_created", "game_reset"]
        assert payloads[1]["maxNumber"] == 4

    @pytest.mark.asyncio
    async def test_binary_frame_is_decoded(self, server):
        ws = fake_connection()
        session = Session(connection=ws)

        await server.handle_frame(session, b'{"type": "create", "maxNumber": 4}')

        assert sent_payloads(ws)[0]["type"] == "room_created"

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_malformed(self, server):
        ws = fake_connection()

        await server.handle_frame(Session(connection=ws), b"\xff\xfe")

        assert sent_payloads(ws)[0]["code"] == "MalformedCommand"

    @pytest.mark.asyncio
    async def test_blank_lines_are_ignored(self, server):
        ws = fake_connection()

        await server.handle_frame(Session(connection=ws), "\n   \n")

        ws.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_reported_to_sender(self, server):
        ws = fake_connection()
        server.coordinator.handle_command = AsyncMock(side_effect=RuntimeError("boom"))

        await server.handle_message(Session(connection=ws), '{"type": "reset"}')

        payload = sent_payloads(ws)[0]
        assert payload["code"] == "MalformedCommand"
        assert payload["message"] == "Invalid message"

    @pytest.mark.asyncio
    async def test_deeply_nested_json_is_malformed(self, server):
        """Test JSON nested past the decoder's recursion limit is just a bad command."""
        ws = fake_connection()
        session = Session(connection=ws)

        await server.handle_frame(session, "[" * 200000)
        await server.handle_frame(session, '{"type": "create", "maxNumber": 4}')

        payloads = sent_payloads(ws)
        assert payloads[0] == {"type": "error", "code": "MalformedCommand", "message": "Invalid message"}
        assert payloads[1]["type"] == "room_created"


class FakeConfig:
    """Config stand-in serving fixed sections."""

    def __init__(self, server=None, rooms=None, level="INFO"):
        self.server = server or {}
        self.rooms = rooms or {}
        self.level = level

    def get_server(self):
        return self.server

    def get_rooms(self):
        return self.rooms

    def get(self, *keys, default=None):
        return self.level if keys == ("logging", "level") else default


class TestCommandLine:
    """Test main() argument handling."""

    @pytest.fixture
    def launched(self, monkeypatch):
        """Capture the GameServer main() would start and the log level it sets."""
        launched = {}

        class RecordingServer:
            def __init__(self, **kwargs):
                launched["server"] = kwargs

            async def start(self):
                return None

        monkeypatch.setattr(main_module, "GameServer", RecordingServer)
        monkeypatch.setattr(main_module, "configure_logging", lambda level: launched.setdefault("level", level))
        monkeypatch.setattr(main_module, "config", FakeConfig(
            server={"host": "127.0.0.1", "port": 9100, "send_timeout_seconds": 2},
            rooms={"code_length": 4, "idle_timeout_seconds": 30, "min_number": 3, "max_number": 7},
            level="warning"
        ))
        return launched

    def test_settings_come_from_config(self, launched):
        assert main_module.main([]) == 0

        assert launched["server"] == {
            "host": "127.0.0.1",
            "port": 9100,
            "send_timeout_seconds": 2,
            "idle_timeout_seconds": 30.0,
            "code_length": 4,
            "min_number": 3,
            "max_number": 7,
        }
        assert launched["level"] == "WARNING"

    def test_flags_override_config(self, launched):
        main_module.main(["--port", "9200", "--idle-timeout", "5", "--log-level", "debug"])

        assert launched["server"]["port"] == 9200
        assert launched["server"]["idle_timeout_seconds"] == 5.0
        assert launched["level"] == "DEBUG"

    def test_unknown_log_level_is_a_usage_error(self, launched, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main_module.main(["--log-level", "LOUD"])

        assert exc_info.value.code == 2
        assert "invalid choice" in capsys.readouterr().err
        assert "server" not in launched
