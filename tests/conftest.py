import pytest
import pytest_asyncio

from helpers.backend import BASE_URL, FakeBackend
from shopai.client import APIClient
from shopai.config import ClientSettings
from shopai.session import AuthSession, MemoryStore


@pytest.fixture
def settings(tmp_path):
    return ClientSettings(base_url=BASE_URL, state_path=tmp_path / "state.json")


@pytest.fixture
def backend():
    """Fresh scripted backend for each test."""
    return FakeBackend()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def session(store):
    return AuthSession(store)


@pytest_asyncio.fixture
async def client(session, settings, backend):
    """APIClient wired to the scripted backend through MockTransport."""
    api = APIClient(session, settings, transport=backend.transport)
    yield api
    await api.aclose()
