import pytest
from fastapi.testclient import TestClient

from project_tracker_api.app.core.config import settings
from project_tracker_api.app.core.db import init_db
from project_tracker_api.app.main import app


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file for every test."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "test.db"))
    init_db()
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
