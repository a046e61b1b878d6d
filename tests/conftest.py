"""
Shared fixtures for the API tests.

The store is never touched here: the connection dependency yields None and
each test patches the ``vidtube.crud`` functions its route reaches.
"""

import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from vidtube import auth_utils, crud
from vidtube.database import get_db_connection
from vidtube.main import app

BLOB_ROOT = "https://acct.blob.core.windows.net/vidtube"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


async def _no_connection():
    yield None


@pytest.fixture
def client():
    app.dependency_overrides[get_db_connection] = _no_connection
    yield TestClient(app)
    app.dependency_overrides.clear()


def _user(username: str) -> dict:
    return {
        "id": uuid.uuid4(),
        "username": username,
        "email": f"{username}@example.com",
        "full_name": username.title(),
        "avatar": f"{BLOB_ROOT}/avatar/{username}.png",
        "cover_image": "",
        "hashed_password": "not-a-real-hash",
        "refresh_token": None,
        "created_at": NOW,
        "updated_at": NOW,
    }


@pytest.fixture
def alice():
    return _user("alice")


@pytest.fixture
def bob():
    return _user("bob")


@pytest.fixture
def users(monkeypatch, alice, bob):
    """Registry behind crud.get_user_by_id, used by the auth gate and existence checks."""
    registry = {str(alice["id"]): alice, str(bob["id"]): bob}

    async def get_user_by_id(conn, user_id):
        return registry.get(str(user_id))

    monkeypatch.setattr(crud, "get_user_by_id", get_user_by_id)
    return registry


@pytest.fixture
def auth_header(users):
    def _header(user: dict) -> dict:
        return {"Authorization": f"Bearer {auth_utils.create_access_token(user)}"}
    return _header


def _owner_columns(owner: dict) -> dict:
    return {
        "owner_id": owner["id"],
        "owner_username": owner["username"],
        "owner_full_name": owner["full_name"],
        "owner_avatar": owner["avatar"],
    }


@pytest.fixture
def make_video():
    def _make(owner: dict, **overrides) -> dict:
        video_id = uuid.uuid4()
        row = {
            "id": video_id,
            "title": "Sunset timelapse",
            "description": "Forty minutes of sky in forty seconds",
            "video_file": f"{BLOB_ROOT}/video/{video_id}.mp4",
            "thumbnail": f"{BLOB_ROOT}/thumbnail/{video_id}.png",
            "duration": 40.0,
            "views": 0,
            "is_published": True,
            "created_at": NOW,
            "updated_at": NOW,
            "liker_ids": [],
            "owner_subscriber_ids": [],
            **_owner_columns(owner),
        }
        row.update(overrides)
        return row
    return _make


@pytest.fixture
def make_playlist():
    def _make(owner: dict, **overrides) -> dict:
        row = {
            "id": uuid.uuid4(),
            "name": "Faves",
            "description": "",
            "is_public": True,
            "is_watch_later": False,
            "video_count": 0,
            "created_at": NOW,
            "updated_at": NOW,
            **_owner_columns(owner),
        }
        row.update(overrides)
        return row
    return _make
