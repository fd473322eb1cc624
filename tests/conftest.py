import pytest
from fastapi.testclient import TestClient

from database import LocalStore
from identity import Identity, create_session_token
from chats import ChatService
from main import create_app
from repositories import RideRepository, ItemRepository, TaskRepository, BillRepository
from schemas import User


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def identity(store):
    return Identity(store)


@pytest.fixture
def rides(store):
    return RideRepository(store)


@pytest.fixture
def items(store):
    return ItemRepository(store)


@pytest.fixture
def tasks(store):
    return TaskRepository(store)


@pytest.fixture
def bills(store):
    return BillRepository(store)


@pytest.fixture
def chats(store, identity):
    return ChatService(store, identity)


@pytest.fixture
def alice():
    return User(id="alice", name="Alice Rao", email="alice@campus.edu")


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as c:
        yield c


@pytest.fixture
def auth():
    def headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_session_token(user_id)}"}
    return headers
