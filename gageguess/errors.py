# gageguess/errors.py
"""Error taxonomy reported to the offending connection as ERROR events."""


class RoomError(Exception):
    """Base class for recoverable, client-facing coordinator failures."""

    code = "RoomError"
    default_message = "Request failed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)


class InvalidRoomCode(RoomError):
    code = "InvalidRoomCode"
    default_message = "Invalid room code"


class RoomNotFound(RoomError):
    code = "RoomNotFound"
    default_message = "Room not found"


class RoomFull(RoomError):
    code = "RoomFull"
    default_message = "Room is full"


class NotInRoom(RoomError):
    code = "NotInRoom"
    default_message = "Not in a room"


class NotHost(RoomError):
    code = "NotHost"
    default_message = "Only the host can do that"


class ReverseAlreadyUsed(RoomError):
    code = "ReverseAlreadyUsed"
    default_message = "Reverse already used"


class RoundNotActive(RoomError):
    code = "RoundNotActive"
    default_message = "No round is in progress"


class MalformedCommand(RoomError):
    code = "MalformedCommand"
    default_message = "Invalid message"
