"""Test helpers shared by unit and integration tests."""
from typing import Any, Dict, List, Optional

from gageguess.coordinator import RoomCoordinator, Session
from gageguess.events import RoomEvent, RoomEventType
from gageguess.protocol import Message


class MessageCollector:
    """Helper to collect and analyze messages the coordinator sends."""

    def __init__(self):
        self.sent: List[tuple] = []  # (connection, type, data)

    async def send(self, connection: Any, msg: Message):
        """Stand-in for the gateway's send primitive."""
        self.sent.append((connection, msg.type, msg.data))

    def types_for(self, connection: Any) -> List[str]:
        """Get the ordered message types sent to a connection."""
        return [t for c, t, _ in self.sent if c == connection]

    def messages_for(self, connection: Any, msg_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get message payloads sent to a connection, optionally filtered by type."""
        return [
            data for c, t, data in self.sent
            if c == connection and (msg_type is None or t == msg_type)
        ]

    def last(self, connection: Any) -> tuple:
        """Get the last (type, data) sent to a connection."""
        for c, t, data in reversed(self.sent):
            if c == connection:
                return t, data
        return None, None

    def clear(self):
        """Clear all collected messages."""
        self.sent.clear()


async def command(coordinator: RoomCoordinator, session: Session, event_type: RoomEventType, **data):
    """Issue one command on behalf of a session."""
    await coordinator.handle_command(session, RoomEvent(type=event_type, data=data))


async def start_game(coordinator: RoomCoordinator, host: Session, guest: Session, max_number: int = 9):
    """Create a room as ``host``, join it as ``guest`` and return the room."""
    await command(coordinator, host, RoomEventType.CREATE, max_number=max_number)
    await command(coordinator, guest, RoomEventType.JOIN, code=host.room_code)
    return coordinator.registry.get(host.room_code)
