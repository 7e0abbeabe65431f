from datetime import date

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from database import create_document, ensure_indexes, get_db
from main import app, get_today

TODAY = date(2026, 2, 27)
USER_ID = "12345678-1234-1234-1234-123456789012"


@pytest.fixture
def db():
    database = mongomock.MongoClient().kindify_test
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_today] = lambda: TODAY
    try:
        yield TestClient(app, headers={"X-User-Id": USER_ID})
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_today, None)


@pytest.fixture
def add_act(db):
    """Insert an act for a day and return its id."""
    def _add(day: date, title: str = "Hold the door", description=None) -> str:
        return create_document(
            "act",
            {"title": title, "description": description, "date": day.isoformat()},
            database=db,
        )
    return _add


class _DownCollection:
    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise ServerSelectionTimeoutError("database is down")
        return _fail


class DownDatabase:
    """Stands in for a database whose server can't be reached."""

    def __getitem__(self, name):
        return _DownCollection()


@pytest.fixture
def down_client(client):
    app.dependency_overrides[get_db] = lambda: DownDatabase()
    return client
