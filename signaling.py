import json

from pydantic import ValidationError

from backend import RoomBackend
from connection import Connection
from errors import InvalidRequest, MalformedPayload, PeerUnavailable, RoomFull, SignalingError, UnknownMessageType
from logging_config import get_logger
from schemas.signaling import (
    CANDIDATE,
    CREATE_OR_JOIN,
    HANGUP,
    RELAYED_TYPES,
    CreateOrJoinMessage,
    ErrorMessage,
    JoinedMessage,
    PeerHangupMessage,
    PeerJoinedMessage,
    PeerLeftMessage,
    PeerUnavailableMessage,
    RoomFullMessage,
)

logger = get_logger(__name__)


def parse_message(raw) -> dict:
    """Decode one inbound frame. Anything that is not a JSON object is a MalformedPayload."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedPayload(f"Invalid JSON: {e}")
    if not isinstance(data, dict):
        raise MalformedPayload("Message is not a JSON object")
    return data


class SignalingRelay:
    """Interprets signaling messages for each connection and forwards them to its peer.

    Per connection the only states are "no room" and "in a room"; the room
    backend is the source of truth for which one applies.
    """

    def __init__(self, room_backend: RoomBackend):
        self.rooms = room_backend

    async def handle_message(self, connection: Connection, raw: str):
        try:
            data = parse_message(raw)
        except MalformedPayload as e:
            logger.warning(f"Dropping malformed message from {connection}: {e}")
            return

        message_type = data.get("type")
        logger.debug(f"Received {message_type} from {connection}")

        try:
            if message_type == CREATE_OR_JOIN:
                await self._create_or_join(connection, data)
            elif message_type in RELAYED_TYPES:
                await self._relay(connection, message_type, raw)
            elif message_type == HANGUP:
                await self._hangup(connection)
            else:
                raise UnknownMessageType(message_type)
        except RoomFull as e:
            await connection.send(RoomFullMessage(roomId=e.room_id).model_dump_json())
        except PeerUnavailable as e:
            await connection.send(PeerUnavailableMessage(message=e.message).model_dump_json())
        except SignalingError as e:
            logger.warning(f"Rejected {message_type} from {connection}: {e.message}")
            await connection.send(ErrorMessage(message=e.message).model_dump_json())

    async def handle_close(self, connection: Connection):
        """Transport went away: free the slot and tell the remaining peer it left."""
        connection.mark_closed()
        removal = self.rooms.remove_member(connection)
        if removal is None:
            logger.debug(f"{connection} closed without being in a room")
            return
        logger.info(f"{connection} disconnected from room {removal.room_id}")
        if removal.remaining is not None:
            await removal.remaining.send(PeerLeftMessage().model_dump_json())
            logger.info(f"Notified peer in room {removal.room_id} that the other client left")

    async def _create_or_join(self, connection: Connection, data: dict):
        try:
            request = CreateOrJoinMessage.model_validate(data)
        except ValidationError:
            raise InvalidRequest("Invalid create_or_join request")

        result = self.rooms.create_or_join(connection, request.roomId, request.callType)
        await connection.send(JoinedMessage(
            roomId=result.room_id,
            isInitiator=result.is_initiator,
            callType=result.call_type,
        ).model_dump_json())

        if result.initiator is not None:
            sent = await result.initiator.send(PeerJoinedMessage(
                roomId=result.room_id,
                callType=result.call_type,
            ).model_dump_json())
            if sent:
                logger.info(f"Notified initiator in room {result.room_id} that peer joined")
            else:
                logger.warning(f"Initiator in room {result.room_id} is not connected")

    async def _relay(self, connection: Connection, message_type: str, raw: str):
        room_id = self.rooms.room_of(connection)
        if room_id is None:
            raise InvalidRequest("Not connected to a room.")

        peer = self.rooms.peer_of(connection)
        if peer is not None and await peer.send(raw):
            logger.debug(f"Relayed {message_type} from {connection} to {peer} in room {room_id}")
            return

        logger.debug(f"Cannot relay {message_type} in room {room_id}: other client not connected")
        # Candidates can legitimately race ahead of the peer; they are dropped, not queued
        if message_type != CANDIDATE:
            raise PeerUnavailable()

    async def _hangup(self, connection: Connection):
        removal = self.rooms.remove_member(connection)
        if removal is None:
            logger.warning(f"Ignoring hangup from {connection}: not in a room")
            return
        logger.info(f"{connection} hung up in room {removal.room_id}")
        if removal.remaining is not None:
            await removal.remaining.send(PeerHangupMessage().model_dump_json())
