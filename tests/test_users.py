"""
Account routes: registration, profile updates, channel pages and watch history.
"""

import uuid
from unittest.mock import AsyncMock

from vidtube import auth_utils, blob_storage, crud
from vidtube.errors import InternalError

REGISTRATION = {
    "fullName": "Carol Danvers",
    "email": "carol@example.com",
    "username": "carol",
    "password": "higher-further",
}


class TestRegister:
    def test_missing_fields_are_rejected_before_any_lookup(self, client, monkeypatch):
        lookup = AsyncMock()
        monkeypatch.setattr(crud, "get_user_by_username_or_email", lookup)

        response = client.post("/api/v1/users/register", data={**REGISTRATION, "username": " "})

        assert response.status_code == 400
        assert response.json()["message"] == "All fields are required"
        lookup.assert_not_awaited()

    def test_avatar_is_required(self, client, monkeypatch):
        lookup = AsyncMock()
        monkeypatch.setattr(crud, "get_user_by_username_or_email", lookup)

        response = client.post("/api/v1/users/register", data=REGISTRATION)

        assert response.status_code == 400
        assert response.json()["message"] == "Avatar file is required"
        lookup.assert_not_awaited()

    def test_duplicate_user(self, client, monkeypatch, alice):
        monkeypatch.setattr(crud, "get_user_by_username_or_email", AsyncMock(return_value=alice))
        upload = AsyncMock()
        monkeypatch.setattr(blob_storage, "upload_file_to_blob", upload)

        response = client.post("/api/v1/users/register", data=REGISTRATION,
                               files={"avatar": ("me.png", b"\x89PNG", "image/png")})

        assert response.status_code == 409
        upload.assert_not_awaited()

    def test_registration(self, client, monkeypatch, alice):
        monkeypatch.setattr(crud, "get_user_by_username_or_email", AsyncMock(return_value=None))
        monkeypatch.setattr(blob_storage, "upload_file_to_blob",
                            AsyncMock(return_value="https://acct.blob.core.windows.net/vidtube/avatar/me.png"))
        create = AsyncMock(return_value={**alice, "username": "carol", "email": "carol@example.com"})
        monkeypatch.setattr(crud, "create_user", create)

        response = client.post("/api/v1/users/register", data=REGISTRATION,
                               files={"avatar": ("me.png", b"\x89PNG", "image/png")})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["username"] == "carol"
        assert "hashed_password" not in data
        kwargs = create.await_args.kwargs
        assert kwargs["hashed_password"] != REGISTRATION["password"]
        assert kwargs["cover_image"] == ""

    def test_conflicting_insert_discards_the_uploaded_avatar(self, client, monkeypatch):
        avatar_url = "https://acct.blob.core.windows.net/vidtube/avatar/me.png"
        monkeypatch.setattr(crud, "get_user_by_username_or_email", AsyncMock(return_value=None))
        monkeypatch.setattr(blob_storage, "upload_file_to_blob", AsyncMock(return_value=avatar_url))
        monkeypatch.setattr(crud, "create_user", AsyncMock(side_effect=ValueError("Username or email is already taken")))
        delete_blob = AsyncMock(return_value=True)
        monkeypatch.setattr(blob_storage, "delete_blob", delete_blob)

        response = client.post("/api/v1/users/register", data=REGISTRATION,
                               files={"avatar": ("me.png", b"\x89PNG", "image/png")})

        assert response.status_code == 409
        assert avatar_url in [call.args[0] for call in delete_blob.await_args_list]

    def test_failed_cover_upload_discards_the_avatar(self, client, monkeypatch):
        avatar_url = "https://acct.blob.core.windows.net/vidtube/avatar/me.png"
        monkeypatch.setattr(crud, "get_user_by_username_or_email", AsyncMock(return_value=None))
        monkeypatch.setattr(blob_storage, "upload_file_to_blob", AsyncMock(side_effect=[
            avatar_url, InternalError("Failed to upload cover-image file"),
        ]))
        delete_blob = AsyncMock(return_value=True)
        monkeypatch.setattr(blob_storage, "delete_blob", delete_blob)
        create = AsyncMock()
        monkeypatch.setattr(crud, "create_user", create)

        response = client.post("/api/v1/users/register", data=REGISTRATION, files={
            "avatar": ("me.png", b"\x89PNG", "image/png"),
            "coverImage": ("cover.png", b"\x89PNG", "image/png"),
        })

        assert response.status_code == 500
        delete_blob.assert_awaited_once_with(avatar_url)
        create.assert_not_awaited()


class TestProfile:
    def test_update_account_conflict(self, client, monkeypatch, alice, auth_header):
        monkeypatch.setattr(crud, "update_account", AsyncMock(side_effect=ValueError("Username or email is already taken")))

        response = client.patch("/api/v1/users/update-account", headers=auth_header(alice),
                                json={"fullName": "Alice", "username": "bob", "email": "alice@example.com"})

        assert response.status_code == 409

    def test_change_password_checks_the_old_one(self, client, monkeypatch, alice, auth_header):
        alice["hashed_password"] = auth_utils.get_password_hash("old-secret")
        update = AsyncMock()
        monkeypatch.setattr(crud, "update_password", update)

        response = client.post("/api/v1/users/change-password", headers=auth_header(alice),
                               json={"oldPassword": "guess", "newPassword": "new-secret"})

        assert response.status_code == 400
        update.assert_not_awaited()

    def test_avatar_replacement_removes_the_old_blob(self, client, monkeypatch, alice, auth_header):
        new_url = "https://acct.blob.core.windows.net/vidtube/avatar/new.png"
        monkeypatch.setattr(blob_storage, "upload_file_to_blob", AsyncMock(return_value=new_url))
        monkeypatch.setattr(crud, "update_user_image", AsyncMock(return_value={**alice, "avatar": new_url}))
        delete_blob = AsyncMock(return_value=True)
        monkeypatch.setattr(blob_storage, "delete_blob", delete_blob)

        response = client.patch("/api/v1/users/update-avatar", headers=auth_header(alice),
                                files={"avatar": ("new.png", b"\x89PNG", "image/png")})

        assert response.status_code == 200
        assert response.json()["data"]["avatar"] == new_url
        delete_blob.assert_awaited_once_with(alice["avatar"])


class TestChannel:
    def _channel(self, owner, subscribers):
        return {
            "id": owner["id"], "username": owner["username"], "email": owner["email"],
            "full_name": owner["full_name"], "avatar": owner["avatar"], "cover_image": "",
            "subscriber_ids": subscribers, "subscribed_to_count": 0, "videos_count": 2,
        }

    def test_anonymous_and_subscribed_viewers(self, client, users, monkeypatch, alice, bob, auth_header):
        monkeypatch.setattr(crud, "get_channel_profile", AsyncMock(return_value=self._channel(alice, [bob["id"]])))

        anonymous = client.get("/api/v1/users/channel/alice").json()["data"]
        as_bob = client.get("/api/v1/users/channel/alice", headers=auth_header(bob)).json()["data"]

        assert anonymous["isSubscribed"] is False
        assert anonymous["subscribersCount"] == 1
        assert as_bob["isSubscribed"] is True
        assert as_bob["videosCount"] == 2

    def test_unknown_channel(self, client, users, monkeypatch):
        monkeypatch.setattr(crud, "get_channel_profile", AsyncMock(return_value=None))
        assert client.get("/api/v1/users/channel/nobody").status_code == 404


class TestWatchHistory:
    def test_history_entries(self, client, monkeypatch, alice, bob, auth_header):
        entry = {
            "id": uuid.uuid4(), "title": "Clip", "description": "", "thumbnail": "t.png",
            "duration": 3.0, "views": 8, "owner_id": alice["id"], "owner_username": "alice",
            "owner_full_name": "Alice", "owner_avatar": "a.png", "watched_at": None,
        }
        monkeypatch.setattr(crud, "get_watch_history", AsyncMock(return_value=[entry]))

        data = client.get("/api/v1/users/watch-history", headers=auth_header(bob)).json()["data"]

        assert len(data) == 1
        assert data[0]["owner"]["username"] == "alice"

    def test_remove_one_entry(self, client, monkeypatch, bob, auth_header):
        remove = AsyncMock(return_value=1)
        monkeypatch.setattr(crud, "remove_from_watch_history", remove)
        video_id = uuid.uuid4()

        response = client.patch(f"/api/v1/users/watch-history/{video_id}", headers=auth_header(bob))

        assert response.status_code == 200
        remove.assert_awaited_once_with(None, bob["id"], video_id)

    def test_clear(self, client, monkeypatch, bob, auth_header):
        clear = AsyncMock(return_value=3)
        monkeypatch.setattr(crud, "clear_watch_history", clear)

        assert client.patch("/api/v1/users/watch-history", headers=auth_header(bob)).status_code == 200
        clear.assert_awaited_once_with(None, bob["id"])
