# gageguess/room.py
"""Room and player state for a single two-player game."""

import asyncio
import math
import random
import string
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

MAX_PLAYERS = 2
MIN_NUMBER = 2
MAX_NUMBER = 9
CODE_ALPHABET = string.ascii_uppercase + string.digits


class RoomState(Enum):
    """Room states. Transitions are driven by the coordinator only."""
    WAITING = "waiting"
    PLAYING = "playing"
    RESULT = "result"
    GAMEOVER = "gameover"


def normalize_room_code(code: str) -> str:
    """Codes are compared trimmed and upper-cased."""
    return code.strip().upper()


def generate_room_code(length: int = 6) -> str:
    """Generate a short shareable code from ``[A-Z0-9]``."""
    return "".join(random.choices(CODE_ALPHABET, k=length))


def clamp_max_number(value: int, low: int = MIN_NUMBER, high: int = MAX_NUMBER) -> int:
    return max(low, min(high, value))


def reversed_max_number(current: int, floor: int = MIN_NUMBER) -> int:
    """Halve the range, rounding up, never below ``floor``."""
    return max(floor, math.ceil(current / 2))


@dataclass(eq=False)
class Player:
    """A seat in a room."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_host: bool = False
    number: Optional[int] = None
    connection: Any = field(default=None, repr=False)

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if isinstance(other, Player):
            return self.id == other.id
        return False


@dataclass(eq=False)
class Room:
    """Authoritative state of one live room.

    ``lock`` serializes every read-modify-write of the room. ``closed`` is set
    once the room has left the registry so that commands already queued on
    the lock can tell.
    """

    code: str
    max_number: int
    players: List[Player] = field(default_factory=list)
    has_used_reverse: bool = False
    state: RoomState = RoomState.WAITING
    closed: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    @property
    def is_empty(self) -> bool:
        return not self.players

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def add_player(self, player: Player) -> None:
        self.players.append(player)

    def remove_player(self, player_id: str) -> Optional[Player]:
        """Remove a player by id, returning it if it was seated."""
        player = self.get_player(player_id)
        if player is not None:
            self.players.remove(player)
        return player

    def clear_numbers(self) -> None:
        for player in self.players:
            player.number = None

    def all_numbers_in(self) -> bool:
        """True once both seats hold a number for this round."""
        return len(self.players) == MAX_PLAYERS and all(
            p.number is not None for p in self.players
        )

    def numbers(self) -> List[int]:
        """Submitted numbers in join order."""
        return [p.number for p in self.players]
