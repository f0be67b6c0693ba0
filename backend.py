import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from constants import ROOM_CAPACITY
from errors import InvalidRequest, RoomFull
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Room:
    room_id: str
    call_type: str
    members: list = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def initiator(self):
        return self.members[0] if self.members else None

    @property
    def is_full(self) -> bool:
        return len(self.members) >= ROOM_CAPACITY


@dataclass(frozen=True)
class RoomSnapshot:
    """Read-only view of a room, safe to hand out after the lock is released."""
    room_id: str
    call_type: str
    member_count: int
    created_at: str

    @property
    def is_full(self) -> bool:
        return self.member_count >= ROOM_CAPACITY


@dataclass
class JoinResult:
    room_id: str
    is_initiator: bool
    call_type: str
    # Set when this join completed the room: the initiator waiting in slot 0
    initiator: Optional[object] = None


@dataclass
class RemovalResult:
    room_id: str
    remaining: Optional[object] = None


class ConnectionRegistry:
    """Maps connection_id -> room_id. Only mutated by RoomBackend while it holds its lock."""

    def __init__(self):
        self._rooms_by_connection: Dict[str, str] = {}

    def room_of(self, connection) -> Optional[str]:
        return self._rooms_by_connection.get(connection.connection_id)

    def assign(self, connection, room_id: str):
        self._rooms_by_connection[connection.connection_id] = room_id

    def release(self, connection) -> Optional[str]:
        return self._rooms_by_connection.pop(connection.connection_id, None)

    def __len__(self):
        return len(self._rooms_by_connection)


class RoomBackend:
    """In-memory room table for two-party calls.

    Every read-then-write of membership happens under a single lock, so two
    racing joiners can never both be admitted as the second member.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: Dict[str, Room] = {}
        self.registry = ConnectionRegistry()
        logger.info(f"Initializing RoomBackend with room capacity {ROOM_CAPACITY}")

    def create_or_join(self, connection, room_id: Optional[str], call_type: Optional[str]) -> JoinResult:
        if not room_id:
            raise InvalidRequest("Room ID required")
        if not call_type:
            raise InvalidRequest("Call type required")

        with self._lock:
            current = self.registry.room_of(connection)
            if current is not None:
                raise InvalidRequest(f"Already in room {current}")

            room = self._rooms.get(room_id)
            if room is None:
                room = Room(room_id=room_id, call_type=call_type, members=[connection])
                self._rooms[room_id] = room
                self.registry.assign(connection, room_id)
                logger.info(f"Room {room_id} created by {connection} with call type {call_type}")
                return JoinResult(room_id=room_id, is_initiator=True, call_type=call_type)

            if room.is_full:
                logger.info(f"Room {room_id} is full. Rejecting {connection}")
                raise RoomFull(room_id)

            if call_type != room.call_type:
                logger.debug(f"{connection} requested {call_type} for room {room_id}, keeping {room.call_type}")
            room.members.append(connection)
            self.registry.assign(connection, room_id)
            logger.info(f"{connection} joined room {room_id}. Room size: {len(room.members)}")
            return JoinResult(
                room_id=room_id,
                is_initiator=False,
                call_type=room.call_type,
                initiator=room.initiator,
            )

    def remove_member(self, connection) -> Optional[RemovalResult]:
        """Take the connection out of its room. Safe to call for roomless connections and more than once."""
        with self._lock:
            room_id = self.registry.release(connection)
            if room_id is None:
                return None

            room = self._rooms.get(room_id)
            if room is None:
                return RemovalResult(room_id=room_id)

            room.members = [member for member in room.members if member is not connection]
            if not room.members:
                del self._rooms[room_id]
                logger.info(f"Room {room_id} is now empty. Deleting room.")
                return RemovalResult(room_id=room_id)

            logger.info(f"{connection} removed from room {room_id}. Room size: {len(room.members)}")
            return RemovalResult(room_id=room_id, remaining=room.members[0])

    def peer_of(self, connection):
        with self._lock:
            room_id = self.registry.room_of(connection)
            room = self._rooms.get(room_id) if room_id is not None else None
            if room is None:
                return None
            for member in room.members:
                if member is not connection:
                    return member
            return None

    def room_of(self, connection) -> Optional[str]:
        with self._lock:
            return self.registry.room_of(connection)

    def get_room(self, room_id: str) -> Optional[RoomSnapshot]:
        with self._lock:
            room = self._rooms.get(room_id)
            return self._snapshot(room) if room else None

    def list_rooms(self) -> List[RoomSnapshot]:
        with self._lock:
            return [self._snapshot(room) for room in self._rooms.values()]

    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def connection_count(self) -> int:
        with self._lock:
            return len(self.registry)

    @staticmethod
    def _snapshot(room: Room) -> RoomSnapshot:
        return RoomSnapshot(
            room_id=room.room_id,
            call_type=room.call_type,
            member_count=len(room.members),
            created_at=room.created_at,
        )
