"""Shared fixtures: a throwaway local mirror, an in-memory remote and the API."""

import pytest
from fastapi.testclient import TestClient

from app.core.config import RemoteBackend, Settings
from app.services.context import RepositoryContext, get_context
from app.services.data_access import DataAccessLayer, IdGenerator
from app.services.local_store import LocalStore
from app.services.remote.mock import MockRemoteService

ADMIN_PASSWORD = "rahasia"


class StepClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        supabase_url=None,
        supabase_anon_key=None,
        remote_backend=RemoteBackend.SUPABASE,
        data_directory=str(tmp_path / "data"),
        admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture
def local_store(tmp_path) -> LocalStore:
    return LocalStore(tmp_path / "data", lock_timeout=2)


@pytest.fixture
def mock_remote() -> MockRemoteService:
    return MockRemoteService()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def offline_data(local_store, clock) -> DataAccessLayer:
    return DataAccessLayer(local_store, None, id_generator=IdGenerator(clock))


@pytest.fixture
def online_data(local_store, mock_remote, clock) -> DataAccessLayer:
    return DataAccessLayer(local_store, mock_remote, id_generator=IdGenerator(clock))


@pytest.fixture
def context(settings, local_store) -> RepositoryContext:
    return RepositoryContext(settings, local_store, None)


@pytest.fixture
def client(context):
    """API client bound to an offline context; the lifespan is not run."""
    from app.main import app

    app.dependency_overrides[get_context] = lambda: context
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client):
    response = client.post("/admin/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client
