"""
Pytest fixtures for the signaling relay tests
"""
import json
import uuid

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import RoomBackend
from signaling import SignalingRelay


class FakeConnection:
    """Stands in for connection.Connection: records every frame sent to it."""

    def __init__(self, name: str = None, is_open: bool = True):
        self.connection_id = name or uuid.uuid4().hex
        self.sent = []
        self.is_open = is_open

    def mark_closed(self):
        self.is_open = False

    async def send(self, message) -> bool:
        if not self.is_open:
            return False
        self.sent.append(message if isinstance(message, str) else json.dumps(message))
        return True

    @property
    def messages(self):
        return [json.loads(frame) for frame in self.sent]

    def types(self):
        return [message["type"] for message in self.messages]

    def __repr__(self):
        return f"FakeConnection({self.connection_id})"


@pytest.fixture
def make_connection():
    def factory(name: str = None, is_open: bool = True):
        return FakeConnection(name=name, is_open=is_open)
    return factory


@pytest.fixture
def room_backend():
    return RoomBackend()


@pytest.fixture
def relay(room_backend):
    return SignalingRelay(room_backend)


@pytest.fixture
def app(room_backend):
    return create_app(room_backend)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
