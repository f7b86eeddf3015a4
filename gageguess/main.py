"""
WebSocket server entry point for Gage Guess.

This module provides:
- WebSocket server using the websockets library
- Newline-delimited JSON command parsing
- Per-connection sessions routed to the room coordinator
- Best-effort delivery of room events back to connections
"""

import asyncio
import logging
import argparse
from typing import Dict, Optional

from rich.logging import RichHandler
from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from gageguess.config_loader import config
from gageguess.coordinator import RoomCoordinator, Session
from gageguess.errors import MalformedCommand
from gageguess.protocol import Message, error_message, message_to_event
from gageguess.registry import RoomRegistry
from gageguess.room import MAX_NUMBER, MIN_NUMBER
from gageguess.version import VERSION

# Handshake failures from TCP probes (health checks that never upgrade) are
# logged by websockets at ERROR; keep only warnings and above.
logging.getLogger("websockets").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class GameServer:
    """
    Connection gateway in front of a single RoomCoordinator.

    Handles:
    - Accepting connections and tracking one Session per connection
    - Parsing frames into commands, in arrival order per connection
    - Reporting malformed input to the offending connection only
    - Driving the disconnect path when a connection goes away
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8765,
        send_timeout_seconds: float = 5.0,
        idle_timeout_seconds: float = 0,
        code_length: int = 6,
        min_number: int = MIN_NUMBER,
        max_number: int = MAX_NUMBER
    ):
        self.host = host
        self.port = port
        self.send_timeout_seconds = send_timeout_seconds

        # Connection tracking
        self.sessions: Dict[ServerConnection, Session] = {}

        self.registry = RoomRegistry(code_length=code_length)
        self.coordinator = RoomCoordinator(
            send=self.send_to_connection,
            registry=self.registry,
            idle_timeout_seconds=idle_timeout_seconds,
            min_number=min_number,
            max_number=max_number
        )

        self._server: Optional[Server] = None

    async def start(self):
        """Start the WebSocket server and serve until cancelled."""
        server = await self.listen()
        try:
            await server.serve_forever()
        finally:
            await self.close()

    async def listen(self) -> Server:
        """Bind the listening socket. With port 0, ``self.port`` becomes the bound port."""
        # reuse_address lets tests rebind ports still in TIME_WAIT
        self._server = await serve(
            self.handle_connection, self.host, self.port,
            reuse_address=True
        )
        if self.port == 0:
            self.port = self._server.sockets[0].getsockname()[1]
        logger.info("Gage Guess server %s listening on ws://%s:%d", VERSION, self.host, self.port)
        return self._server

    async def close(self):
        """Stop accepting connections and cancel room timers."""
        self.coordinator.shutdown()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def handle_connection(self, websocket: ServerConnection):
        """Handle a new WebSocket connection."""
        session = Session(connection=websocket)
        self.sessions[websocket] = session
        logger.info("Connection opened: %s", websocket.remote_address)

        try:
            async for frame in websocket:
                await self.handle_frame(session, frame)
        except ConnectionClosed as exc:
            logger.info("Connection dropped: %s (%s)", websocket.remote_address, exc)
        except Exception:
            logger.exception("Transport error on %s", websocket.remote_address)
        finally:
            self.sessions.pop(websocket, None)
            await self.coordinator.handle_disconnect(session)
            logger.info("Connection closed: %s", websocket.remote_address)

    async def handle_frame(self, session: Session, frame):
        """Handle one text frame; each non-empty line is one command."""
        if isinstance(frame, bytes):
            try:
                frame = frame.decode("utf-8")
            except UnicodeDecodeError:
                await self.send_error(session, "Frame is not valid UTF-8")
                return

        for line in frame.splitlines():
            if line.strip():
                await self.handle_message(session, line)

    async def handle_message(self, session: Session, raw_message: str):
        """Handle an incoming message."""
        try:
            msg = Message.from_json(raw_message)
        except (ValueError, RecursionError):
            # RecursionError: nesting too deep for the json decoder
            await self.send_error(session, "Invalid message")
            return

        event = message_to_event(msg)
        if event is None:
            await self.send_error(session, f"Unknown message type: {msg.type}")
            return

        logger.debug("Received %s %s", msg.type, msg.data)
        try:
            await self.coordinator.handle_command(session, event)
        except Exception:
            logger.exception("Error handling %s message", msg.type)
            await self.send_error(session, "Invalid message")

    async def send_error(self, session: Session, message: str):
        await self.send_to_connection(session.connection, error_message(MalformedCommand.code, message))

    async def send_to_connection(self, websocket: ServerConnection, message: Message):
        """Send a message to a connection, dropping it if the connection is not open."""
        if websocket.state is not State.OPEN:
            logger.debug("Dropped %s: connection not open", message.type)
            return
        try:
            await asyncio.wait_for(websocket.send(message.to_json()), self.send_timeout_seconds)
        except (ConnectionClosed, asyncio.TimeoutError) as exc:
            logger.debug("Dropped %s: %r", message.type, exc)


def configure_logging(level: str = "INFO") -> None:
    """Route all log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)]
    )


def main(argv=None):
    """Main entry point."""
    server_settings = config.get_server()
    room_settings = config.get_rooms()

    parser = argparse.ArgumentParser(description="Gage Guess room server")
    parser.add_argument("--host", default=server_settings.get("host", "0.0.0.0"),
                        help="Host to bind to")
    parser.add_argument("--port", type=int, default=server_settings.get("port", 8765),
                        help="Port to bind to")
    parser.add_argument("--idle-timeout", type=float,
                        default=room_settings.get("idle_timeout_seconds", 0),
                        help="Close rooms idle for this many seconds (0 disables)")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS,
                        default=config.get("logging", "level", default="INFO"),
                        help="Logging level")
    parser.add_argument("--version", action="version", version=VERSION)
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    server = GameServer(
        host=args.host,
        port=args.port,
        send_timeout_seconds=server_settings.get("send_timeout_seconds", 5),
        idle_timeout_seconds=args.idle_timeout,
        code_length=room_settings.get("code_length", 6),
        min_number=room_settings.get("min_number", MIN_NUMBER),
        max_number=room_settings.get("max_number", MAX_NUMBER)
    )

    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except OSError as e:
        logger.error("Could not start server on %s:%d: %s", args.host, args.port, e)
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
