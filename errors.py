"""Errors raised while handling a single signaling message.

None of these are fatal to the connection: the relay turns each one into a
reply to the sender (or drops the message) and keeps reading.
"""


class SignalingError(Exception):
    """Base class for per-message failures."""

    message = "Signaling error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidRequest(SignalingError):
    message = "Invalid request"


class RoomFull(SignalingError):
    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} is full")
        self.room_id = room_id


class PeerUnavailable(SignalingError):
    message = "The other peer is not connected."


class UnknownMessageType(SignalingError):
    # Only short string types are echoed back to the client
    MAX_ECHO_LENGTH = 32

    def __init__(self, message_type):
        if isinstance(message_type, str) and 0 < len(message_type) <= self.MAX_ECHO_LENGTH:
            super().__init__(f"Unknown message type: {message_type}")
        else:
            super().__init__("Unknown message type")
        self.message_type = message_type


class MalformedPayload(SignalingError):
    message = "Malformed payload"
