from pydantic import BaseModel


class RoomDetailsResponse(BaseModel):
    room_id: str
    call_type: str
    created_at: str
    member_count: int
    is_full: bool


class HealthResponse(BaseModel):
    status: str
    rooms: int
    connections: int
