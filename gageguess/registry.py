"""
Live-room registry.

One registry is constructed at process start and handed to the coordinator.
Map operations are guarded by a thread lock that is only ever held around
synchronous dict access, never across an await.
"""

import logging
import threading
from typing import Dict, List, Optional

from .room import Player, Room, generate_room_code, normalize_room_code

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Thread-safe map of normalized room code -> live Room."""

    def __init__(self, code_length: int = 6):
        self.code_length = code_length
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def create(self, max_number: int, host: Player) -> Room:
        """Register a new waiting room under an unused code."""
        with self._lock:
            code = self._fresh_code()
            room = Room(code=code, max_number=max_number, players=[host])
            self._rooms[code] = room
            total = len(self._rooms)
        logger.debug("Registered room %s (%d live)", code, total)
        return room

    def get(self, code: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(normalize_room_code(code))

    def remove(self, room: Room) -> bool:
        """Deregister ``room``. A different room under the same code is left alone."""
        with self._lock:
            if self._rooms.get(room.code) is not room:
                return False
            del self._rooms[room.code]
            total = len(self._rooms)
        logger.debug("Deregistered room %s (%d live)", room.code, total)
        return True

    def codes(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def _fresh_code(self) -> str:
        while True:
            code = normalize_room_code(generate_room_code(self.code_length))
            if code not in self._rooms:
                return code
