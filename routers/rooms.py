from fastapi import APIRouter, HTTPException, Request

from backend import RoomBackend, RoomSnapshot
from logging_config import get_logger
from schemas.rooms import RoomDetailsResponse

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_room_backend(request: Request) -> RoomBackend:
    return request.app.state.room_backend


def to_details(room: RoomSnapshot) -> RoomDetailsResponse:
    return RoomDetailsResponse(
        room_id=room.room_id,
        call_type=room.call_type,
        created_at=room.created_at,
        member_count=room.member_count,
        is_full=room.is_full,
    )


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get details of an active room.

    Returns:
    - room_id: Room identifier chosen by the initiator
    - call_type: Call type frozen when the room was created
    - created_at: Room creation timestamp
    - member_count: 1 while the initiator waits, 2 once the joiner arrived
    - is_full: Whether the room is at capacity

    Member identities are never exposed.
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_id} from {client_host}")

    room = get_room_backend(request).get_room(room_id)
    if not room:
        logger.warning(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return to_details(room)
