from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

# Inbound message types. offer/answer/candidate are relayed without being parsed.
CREATE_OR_JOIN = "create_or_join"
OFFER = "offer"
ANSWER = "answer"
CANDIDATE = "candidate"
HANGUP = "hangup"

RELAYED_TYPES = (OFFER, ANSWER, CANDIDATE)
INBOUND_TYPES = (CREATE_OR_JOIN, HANGUP) + RELAYED_TYPES


class CreateOrJoinMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["create_or_join"]
    roomId: Optional[str] = None
    callType: Optional[str] = None


# Outbound messages, all generated by the server

class JoinedMessage(BaseModel):
    type: Literal["joined"] = "joined"
    roomId: str
    isInitiator: bool
    callType: str


class PeerJoinedMessage(BaseModel):
    type: Literal["peer_joined"] = "peer_joined"
    roomId: str
    callType: str


class PeerHangupMessage(BaseModel):
    type: Literal["peer_hangup"] = "peer_hangup"


class PeerLeftMessage(BaseModel):
    type: Literal["peer_left"] = "peer_left"


class RoomFullMessage(BaseModel):
    type: Literal["room_full"] = "room_full"
    roomId: str


class PeerUnavailableMessage(BaseModel):
    type: Literal["peer_unavailable"] = "peer_unavailable"
    message: str


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str
