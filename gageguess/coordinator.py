# gageguess/coordinator.py
"""Room coordinator for Gage Guess.

This coordinator:
- Owns all room and player state through an injected RoomRegistry
- Serializes every change to a room behind that room's lock
- Talks to connections only through an abstract send coroutine
- Reports failures to the issuing connection only
"""

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from gageguess.errors import (
    InvalidRoomCode, MalformedCommand, NotHost, NotInRoom, ReverseAlreadyUsed,
    RoomError, RoomFull, RoomNotFound, RoundNotActive
)
from gageguess.events import RoomEvent, RoomEventType
from gageguess.protocol import (
    Message, error_message, game_reset_message, game_result_message,
    game_start_message, player_joined_message, player_left_message,
    player_ready_message, reverse_activated_message, room_closed_message,
    room_created_message, room_joined_message
)
from gageguess.registry import RoomRegistry
from gageguess.room import (
    MAX_NUMBER, MIN_NUMBER, Player, Room, RoomState, clamp_max_number,
    normalize_room_code, reversed_max_number
)
from gageguess.timers import TimerManager

logger = logging.getLogger(__name__)

# Type aliases
MessageSender = Callable[[Any, Message], Awaitable[None]]


@dataclass
class Session:
    """Per-connection seat: at most one player in at most one room."""

    connection: Any
    player_id: Optional[str] = None
    room_code: Optional[str] = None

    @property
    def seated(self) -> bool:
        return self.player_id is not None and self.room_code is not None

    def clear(self) -> None:
        self.player_id = None
        self.room_code = None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RoomCoordinator:
    """Processes room commands and disconnects, and emits room events."""

    def __init__(
        self,
        send: MessageSender,
        registry: Optional[RoomRegistry] = None,
        idle_timeout_seconds: float = 0,
        min_number: int = MIN_NUMBER,
        max_number: int = MAX_NUMBER
    ):
        self.send = send
        self.registry = registry if registry is not None else RoomRegistry()

        # Settings
        self.idle_timeout_seconds = idle_timeout_seconds
        self.min_number = min_number
        self.max_number = max_number

        self.timers = TimerManager(self._on_timer_event)

        self._handlers: Dict[RoomEventType, Callable[[Session, RoomEvent], Awaitable[None]]] = {
            RoomEventType.CREATE: self._handle_create,
            RoomEventType.JOIN: self._handle_join,
            RoomEventType.SUBMIT_NUMBER: self._handle_submit_number,
            RoomEventType.REVERSE: self._handle_reverse,
            RoomEventType.RESET: self._handle_reset,
            RoomEventType.DISCONNECT: self._handle_disconnect,
        }

    async def handle_command(self, session: Session, event: RoomEvent) -> None:
        """Handle one command from ``session``.

        Domain failures are reported to the session's connection only.
        """
        handler = self._handlers.get(event.type)
        try:
            if handler is None:
                raise MalformedCommand(f"Unsupported command: {event.type.name}")
            await handler(session, event)
        except RoomError as exc:
            logger.debug("Rejected %s: %s (%s)", event.type.name, exc.code, exc)
            await self.send(session.connection, error_message(exc.code, str(exc)))

    async def handle_disconnect(self, session: Session) -> None:
        """Release the session's seat after its connection went away."""
        await self.handle_command(session, RoomEvent(type=RoomEventType.DISCONNECT))

    def shutdown(self) -> None:
        """Stop all pending room timers."""
        self.timers.cancel_all()

    # --- Commands ---

    async def _handle_create(self, session: Session, event: RoomEvent) -> None:
        max_number = event.data.get("max_number")
        if not _is_int(max_number):
            raise MalformedCommand("maxNumber must be an integer")
        max_number = clamp_max_number(max_number, self.min_number, self.max_number)

        await self._leave_current_room(session)

        host = Player(is_host=True, connection=session.connection)
        room = self.registry.create(max_number, host)
        session.player_id = host.id
        session.room_code = room.code
        logger.info("Room %s created (maxNumber=%d, %d live)", room.code, max_number, len(self.registry))

        async with room.lock:
            await self.send(session.connection, room_created_message(room.code, host.id, room.max_number))
            self._touch(room)

    async def _handle_join(self, session: Session, event: RoomEvent) -> None:
        code = event.data.get("code")
        if not isinstance(code, str) or not code.strip():
            raise InvalidRoomCode()
        code = normalize_room_code(code)

        room = self.registry.get(code)
        if room is None:
            logger.debug("Join for unknown room %s (live: %s)", code, self.registry.codes())
            raise RoomNotFound(f"Room not found: {code}")
        previous = self.registry.get(session.room_code) if session.seated else None

        # The old seat is only given up once the new one is certain
        async with self._lock_rooms(room, previous):
            if room.closed:
                raise RoomNotFound(f"Room not found: {code}")
            if previous is room and room.get_player(session.player_id) is not None:
                logger.debug("Player %s re-joined its own room %s", session.player_id, room.code)
                await self.send(session.connection, room_joined_message(room.code, session.player_id, room.max_number))
                return
            if room.is_full:
                raise RoomFull()

            if previous is not None:
                await self._release_seat(previous, session.player_id)
            session.clear()

            player = Player(connection=session.connection)
            room.add_player(player)
            session.player_id = player.id
            session.room_code = room.code
            logger.info("Player %s joined room %s (%d/2)", player.id, room.code, len(room.players))

            await self.send(session.connection, room_joined_message(room.code, player.id, room.max_number))
            await self._broadcast(room, player_joined_message(len(room.players)), exclude=player.id)

            if room.is_full:
                room.clear_numbers()
                room.state = RoomState.PLAYING
                # Everyone, the joiner included, gets the start signal
                await self._broadcast(room, game_start_message(room.max_number))
            self._touch(room)

    async def _handle_submit_number(self, session: Session, event: RoomEvent) -> None:
        number = event.data.get("number")
        room = self._current_room(session)

        async with room.lock:
            player = self._seated_player(room, session)
            if not _is_int(number):
                raise MalformedCommand("number must be an integer")
            if room.state is not RoomState.PLAYING:
                raise RoundNotActive()

            player.number = number
            await self._broadcast(room, player_ready_message(player.id), exclude=player.id)

            if room.all_numbers_in():
                await self._resolve_round(room)
            self._touch(room)

    async def _handle_reverse(self, session: Session, event: RoomEvent) -> None:
        room = self._current_room(session)

        async with room.lock:
            player = self._seated_player(room, session)
            if not player.is_host:
                raise NotHost("Only host can reverse")
            if room.has_used_reverse:
                raise ReverseAlreadyUsed()

            room.has_used_reverse = True
            room.max_number = reversed_max_number(room.max_number, self.min_number)
            room.clear_numbers()
            room.state = RoomState.PLAYING
            logger.info("Room %s reversed (maxNumber=%d)", room.code, room.max_number)

            await self._broadcast(room, reverse_activated_message(room.max_number))
            self._touch(room)

    async def _handle_reset(self, session: Session, event: RoomEvent) -> None:
        room = self._current_room(session)

        async with room.lock:
            player = self._seated_player(room, session)
            if not player.is_host:
                raise NotHost("Only host can reset")

            room.has_used_reverse = False
            room.clear_numbers()
            room.state = RoomState.PLAYING
            logger.info("Room %s reset (maxNumber=%d)", room.code, room.max_number)

            await self._broadcast(room, game_reset_message(room.max_number))
            self._touch(room)

    async def _handle_disconnect(self, session: Session, event: RoomEvent) -> None:
        await self._leave_current_room(session)

    # --- Helpers ---

    async def _resolve_round(self, room: Room) -> None:
        numbers = room.numbers()
        if numbers[0] == numbers[1]:
            room.state = RoomState.GAMEOVER
            message = game_result_message(True, numbers)
        else:
            room.state = RoomState.RESULT
            message = game_result_message(False, numbers, can_reverse=not room.has_used_reverse)
        logger.info("Room %s round over: %s -> %s", room.code, numbers, room.state.value)
        await self._broadcast(room, message)

    async def _leave_current_room(self, session: Session) -> None:
        if not session.seated:
            return
        player_id, code = session.player_id, session.room_code
        session.clear()

        room = self.registry.get(code)
        if room is None:
            return

        async with room.lock:
            await self._release_seat(room, player_id)

    async def _release_seat(self, room: Room, player_id: str) -> None:
        """Remove a player from ``room``; call with ``room.lock`` held."""
        if room.closed or room.remove_player(player_id) is None:
            return
        logger.info("Player %s left room %s (%d remaining)", player_id, room.code, len(room.players))

        if room.is_empty:
            self._close(room)
        else:
            await self._broadcast(room, player_left_message(len(room.players)))
            self._touch(room)

    @asynccontextmanager
    async def _lock_rooms(self, *rooms: Optional[Room]):
        """Hold the locks of several rooms, always taken in code order."""
        unique = {id(room): room for room in rooms if room is not None}
        async with AsyncExitStack() as stack:
            for room in sorted(unique.values(), key=lambda r: r.code):
                await stack.enter_async_context(room.lock)
            yield

    def _current_room(self, session: Session) -> Room:
        room = self.registry.get(session.room_code) if session.seated else None
        if room is None:
            raise NotInRoom()
        return room

    def _seated_player(self, room: Room, session: Session) -> Player:
        """Resolve the session's player; call with ``room.lock`` held."""
        player = None if room.closed else room.get_player(session.player_id)
        if player is None:
            raise NotInRoom()
        return player

    def _close(self, room: Room) -> None:
        room.closed = True
        self.timers.cancel_timer(room.code)
        self.registry.remove(room)
        logger.info("Room %s closed (%d live)", room.code, len(self.registry))

    def _touch(self, room: Room) -> None:
        """Restart the room's idle timer, if expiry is enabled."""
        if self.idle_timeout_seconds > 0:
            self.timers.start_timer(
                room.code,
                self.idle_timeout_seconds,
                RoomEventType.IDLE_TIMEOUT,
                data={"code": room.code}
            )

    async def _broadcast(self, room: Room, message: Message, exclude: Optional[str] = None) -> None:
        for player in list(room.players):
            if player.id != exclude:
                await self.send(player.connection, message)

    # --- Timers ---

    async def _on_timer_event(self, event: RoomEvent) -> None:
        if event.type is RoomEventType.IDLE_TIMEOUT:
            await self._expire_room(event.data["code"])

    async def _expire_room(self, code: str) -> None:
        room = self.registry.get(code)
        if room is None:
            return

        async with room.lock:
            # A command may have restarted the timer while we waited
            if room.closed or self.timers.is_active(room.code):
                return
            logger.info("Room %s expired after %ss idle", room.code, self.idle_timeout_seconds)
            self._close(room)
            await self._broadcast(room, room_closed_message("idle"))
