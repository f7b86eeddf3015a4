"""Room coordinator and WebSocket gateway for the Gage Guess party game."""

from .coordinator import RoomCoordinator, Session
from .registry import RoomRegistry
from .room import Player, Room, RoomState
from .version import VERSION

__all__ = [
    "RoomCoordinator",
    "Session",
    "RoomRegistry",
    "Player",
    "Room",
    "RoomState",
    "VERSION",
]
