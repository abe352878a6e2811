import pytest
from fastapi.testclient import TestClient
import mongomock

import database
from main import app
from database import get_db

# --- Mock Database Setup ---
# One mongomock client for the whole session; collections are wiped per test.
mock_mongo_client = mongomock.MongoClient(tz_aware=True)
mock_db = mock_mongo_client.art_folio_db


def get_mock_db_override():
    """Replaces the real `get_db` dependency during tests."""
    return mock_db


app.dependency_overrides[get_db] = get_mock_db_override


# --- Test Fixtures ---
@pytest.fixture(scope="function")
def db():
    for collection_name in mock_db.list_collection_names():
        mock_db.drop_collection(collection_name)
    return mock_db


@pytest.fixture(scope="function")
def client(db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def no_cached_db(monkeypatch):
    """Runs the real connection manager from a cold, unconfigured state."""
    monkeypatch.delenv("MONGODB_URI", raising=False)
    monkeypatch.delenv("DATABASE_NAME", raising=False)
    database.reset_db()
    yield
    database.reset_db()


@pytest.fixture
def make_artwork(client):
    """Creates an artwork through the API and returns its id."""
    def _make(**fields) -> str:
        response = client.post("/add-artwork", json=fields)
        assert response.status_code == 201
        return response.json()["insertedId"]
    return _make


@pytest.fixture
def override_db(client):
    """Swaps the database dependency for the duration of a test."""
    original = app.dependency_overrides[get_db]

    def _override(fn):
        app.dependency_overrides[get_db] = fn

    yield _override
    app.dependency_overrides[get_db] = original
