# gageguess/events.py
"""Internal event types fed to the room coordinator."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict


class RoomEventType(Enum):
    """Everything that can change room state."""

    # Client commands
    CREATE = auto()
    JOIN = auto()
    SUBMIT_NUMBER = auto()
    REVERSE = auto()
    RESET = auto()

    # Connection lifecycle
    DISCONNECT = auto()

    # Timers
    IDLE_TIMEOUT = auto()


@dataclass
class RoomEvent:
    """A command or system event that may trigger a state transition."""

    type: RoomEventType
    data: Dict[str, Any] = field(default_factory=dict)
