"""WebSocket message protocol definitions for Gage Guess."""
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
import json

from gageguess.events import RoomEvent, RoomEventType


class ServerMessageType(Enum):
    """Message types sent from server to client."""
    # Room lifecycle
    ROOM_CREATED = "room_created"
    ROOM_JOINED = "room_joined"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    ROOM_CLOSED = "room_closed"

    # Round flow
    GAME_START = "game_start"
    PLAYER_READY = "player_ready"
    GAME_RESULT = "game_result"
    REVERSE_ACTIVATED = "reverse_activated"
    GAME_RESET = "game_reset"

    ERROR = "error"


class ClientMessageType(Enum):
    """Message types sent from client to server."""
    CREATE = "create"
    JOIN = "join"
    SUBMIT_NUMBER = "submit_number"
    REVERSE = "reverse"
    RESET = "reset"


@dataclass
class Message:
    """A single wire message: a ``type`` plus flat type-specific fields."""
    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize message to a JSON object string."""
        return json.dumps({"type": self.type, **self.data})

    @classmethod
    def from_json(cls, json_str: str) -> 'Message':
        """Deserialize message from a JSON string.

        Raises:
            ValueError: If the text is not a JSON object with a string ``type``.
        """
        obj = json.loads(json_str)
        if not isinstance(obj, dict):
            raise ValueError("message must be a JSON object")
        msg_type = obj.pop("type", None)
        if not isinstance(msg_type, str):
            raise ValueError("message is missing a type")
        return cls(type=msg_type, data=obj)


# Server -> Client message builders
def room_created_message(code: str, player_id: str, max_number: int) -> Message:
    """Build the reply to a successful create."""
    return Message(
        type=ServerMessageType.ROOM_CREATED.value,
        data={
            "code": code,
            "playerId": player_id,
            "maxNumber": max_number
        }
    )


def room_joined_message(code: str, player_id: str, max_number: int) -> Message:
    """Build the reply to a successful join."""
    return Message(
        type=ServerMessageType.ROOM_JOINED.value,
        data={
            "code": code,
            "playerId": player_id,
            "maxNumber": max_number
        }
    )


def player_joined_message(player_count: int) -> Message:
    return Message(
        type=ServerMessageType.PLAYER_JOINED.value,
        data={"playerCount": player_count}
    )


def player_left_message(player_count: int) -> Message:
    return Message(
        type=ServerMessageType.PLAYER_LEFT.value,
        data={"playerCount": player_count}
    )


def room_closed_message(reason: str) -> Message:
    return Message(
        type=ServerMessageType.ROOM_CLOSED.value,
        data={"reason": reason}
    )


def game_start_message(max_number: int) -> Message:
    return Message(
        type=ServerMessageType.GAME_START.value,
        data={"maxNumber": max_number}
    )


def player_ready_message(player_id: str) -> Message:
    """Build player ready message (without revealing the number)."""
    return Message(
        type=ServerMessageType.PLAYER_READY.value,
        data={"playerId": player_id}
    )


def game_result_message(
    match: bool,
    numbers: List[int],
    can_reverse: Optional[bool] = None
) -> Message:
    """Build round result message.

    ``canReverse`` is only present on a mismatch.
    """
    data: Dict[str, Any] = {
        "match": match,
        "numbers": numbers
    }
    if can_reverse is not None:
        data["canReverse"] = can_reverse
    return Message(type=ServerMessageType.GAME_RESULT.value, data=data)


def reverse_activated_message(new_max_number: int) -> Message:
    return Message(
        type=ServerMessageType.REVERSE_ACTIVATED.value,
        data={"newMaxNumber": new_max_number}
    )


def game_reset_message(max_number: int) -> Message:
    return Message(
        type=ServerMessageType.GAME_RESET.value,
        data={"maxNumber": max_number}
    )


def error_message(code: str, message: str) -> Message:
    """Build error message."""
    return Message(
        type=ServerMessageType.ERROR.value,
        data={
            "code": code,
            "message": message
        }
    )


# Client -> Server message parsers
def parse_create_message(data: Dict[str, Any]) -> Dict[str, Any]:
    """Parse create message data."""
    return {
        "max_number": data.get("maxNumber")
    }


def parse_join_message(data: Dict[str, Any]) -> Dict[str, Any]:
    """Parse join message data."""
    return {
        "code": data.get("code")
    }


def parse_submit_number_message(data: Dict[str, Any]) -> Dict[str, Any]:
    """Parse submit_number message data."""
    return {
        "number": data.get("number")
    }


_COMMAND_PARSERS = {
    ClientMessageType.CREATE.value: (RoomEventType.CREATE, parse_create_message),
    ClientMessageType.JOIN.value: (RoomEventType.JOIN, parse_join_message),
    ClientMessageType.SUBMIT_NUMBER.value: (RoomEventType.SUBMIT_NUMBER, parse_submit_number_message),
    ClientMessageType.REVERSE.value: (RoomEventType.REVERSE, None),
    ClientMessageType.RESET.value: (RoomEventType.RESET, None),
}


def message_to_event(msg: Message) -> Optional[RoomEvent]:
    """Translate a client message into a coordinator event.

    Returns None for an unknown message type.
    """
    entry = _COMMAND_PARSERS.get(msg.type)
    if entry is None:
        return None
    event_type, parser = entry
    return RoomEvent(type=event_type, data=parser(msg.data) if parser else {})
