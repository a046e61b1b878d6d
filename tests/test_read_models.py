"""
Read-model shaping tests.

Projections are pure functions of a stored row and the viewer id, so these
run without the app or a database.
"""

import uuid

import pytest

from vidtube import crud, read_models
from vidtube.read_models import ListQuery


def _video_row(owner_id, **overrides):
    row = {
        "id": uuid.uuid4(),
        "title": "Clip",
        "description": "A clip",
        "video_file": "https://acct.blob.core.windows.net/vidtube/video/clip.mp4",
        "thumbnail": "https://acct.blob.core.windows.net/vidtube/thumbnail/clip.png",
        "duration": 12.0,
        "views": 3,
        "is_published": True,
        "owner_id": owner_id,
        "owner_username": "alice",
        "owner_full_name": "Alice",
        "owner_avatar": "https://acct.blob.core.windows.net/vidtube/avatar/alice.png",
        "liker_ids": [],
    }
    row.update(overrides)
    return row


class TestViewerFlags:
    """isLiked / isSubscribed are relative to the viewer and never fail for anonymous ones."""

    def test_anonymous_viewer_is_never_a_member(self):
        assert read_models.is_member(None, [uuid.uuid4(), uuid.uuid4()]) is False

    def test_empty_or_missing_ids(self):
        viewer = uuid.uuid4()
        assert read_models.is_member(viewer, []) is False
        assert read_models.is_member(viewer, None) is False

    def test_uuid_and_string_ids_compare_equal(self):
        viewer = uuid.uuid4()
        assert read_models.is_member(str(viewer), [viewer]) is True

    def test_anonymous_video_projection(self):
        liker = uuid.uuid4()
        row = _video_row(uuid.uuid4(), liker_ids=[liker], owner_subscriber_ids=[liker])

        shaped = read_models.shape_video(row, None)

        assert shaped["isLiked"] is False
        assert shaped["likeCount"] == 1
        assert shaped["owner"]["isSubscribed"] is False
        assert shaped["owner"]["subscriberCount"] == 1

    def test_liker_sees_is_liked(self):
        liker = uuid.uuid4()
        shaped = read_models.shape_video(_video_row(uuid.uuid4(), liker_ids=[liker]), liker)
        assert shaped["isLiked"] is True


class TestOwnerProjection:
    def test_owner_is_a_single_object_with_public_fields_only(self):
        owner_id = uuid.uuid4()
        shaped = read_models.shape_video(_video_row(owner_id), None)

        assert shaped["owner"] == {
            "id": owner_id,
            "username": "alice",
            "fullName": "Alice",
            "avatar": "https://acct.blob.core.windows.net/vidtube/avatar/alice.png",
        }

    def test_missing_owner_is_omitted(self):
        row = _video_row(uuid.uuid4(), owner_username=None, owner_full_name=None, owner_avatar=None)
        assert "owner" not in read_models.shape_video(row, None)

    def test_user_projection_never_carries_credentials(self):
        row = {
            "id": uuid.uuid4(), "username": "alice", "email": "alice@example.com",
            "full_name": "Alice", "avatar": "a.png", "cover_image": None,
            "hashed_password": "secret-hash", "refresh_token": "secret-token",
        }
        shaped = read_models.shape_user(row)

        assert "hashed_password" not in shaped
        assert "refresh_token" not in shaped
        assert shaped["coverImage"] == ""


class TestChannelAndPlaylist:
    def test_channel_counts_and_subscription_flag(self):
        fan = uuid.uuid4()
        row = {
            "id": uuid.uuid4(), "username": "alice", "email": "alice@example.com",
            "full_name": "Alice", "avatar": "a.png", "cover_image": "c.png",
            "subscriber_ids": [fan, uuid.uuid4()], "subscribed_to_count": 4, "videos_count": 7,
        }

        as_fan = read_models.shape_channel(row, fan)
        anonymous = read_models.shape_channel(row, None)

        assert as_fan["subscribersCount"] == 2
        assert as_fan["channelsSubscribedToCount"] == 4
        assert as_fan["videosCount"] == 7
        assert as_fan["isSubscribed"] is True
        assert anonymous["isSubscribed"] is False

    def test_playlist_total_videos_follows_the_video_list(self):
        owner = uuid.uuid4()
        playlist = {
            "id": uuid.uuid4(), "name": "Faves", "description": "", "is_public": False,
            "is_watch_later": False, "owner_id": owner, "owner_username": "alice",
            "owner_full_name": "Alice", "owner_avatar": "a.png", "video_count": 0,
        }
        videos = [_video_row(owner), _video_row(owner)]

        shaped = read_models.shape_playlist(playlist, videos, owner)

        assert shaped["totalVideos"] == 2
        assert len(shaped["videos"]) == 2
        assert shaped["visibility"] is False

    def test_visibility_gate(self):
        owner = uuid.uuid4()
        private = {"is_public": False, "owner_id": owner}

        assert read_models.can_view_playlist(private, owner) is True
        assert read_models.can_view_playlist(private, str(owner)) is True
        assert read_models.can_view_playlist(private, uuid.uuid4()) is False
        assert read_models.can_view_playlist(private, None) is False
        assert read_models.can_view_playlist({"is_public": True, "owner_id": owner}, None) is True

    def test_draft_video_gate(self):
        owner = uuid.uuid4()
        draft = {"is_published": False, "owner_id": owner}

        assert read_models.can_view_video(draft, str(owner)) is True
        assert read_models.can_view_video(draft, uuid.uuid4()) is False
        assert read_models.can_view_video(draft, None) is False
        assert read_models.can_view_video({"is_published": True, "owner_id": owner}, None) is True

    def test_channel_stats_default_to_zero(self):
        assert read_models.shape_channel_stats(None) == {
            "totalViews": 0, "totalVideos": 0, "totalLikes": 0, "totalSubscribers": 0,
        }


class TestPagination:
    @pytest.mark.parametrize("page,limit,expected", [
        (None, None, (1, 10)),
        ("abc", "xyz", (1, 10)),
        ("0", "-5", (1, 10)),
        ("3", "25", (3, 25)),
        ("2.5", "4", (1, 4)),
    ])
    def test_non_numeric_or_non_positive_input_falls_back(self, page, limit, expected):
        assert read_models.coerce_page_params(page, limit) == expected

    def test_five_documents_two_per_page(self):
        first = read_models.paginate(["a", "b"], total=5, page=1, limit=2)

        assert len(first["docs"]) == 2
        assert first["totalDocs"] == 5
        assert first["totalPages"] == 3
        assert first["hasPrevPage"] is False
        assert first["hasNextPage"] is True
        assert first["nextPage"] == 2
        assert first["prevPage"] is None
        assert first["pagingCounter"] == 1

        last = read_models.paginate(["e"], total=5, page=3, limit=2)
        assert last["hasNextPage"] is False
        assert last["prevPage"] == 2
        assert last["pagingCounter"] == 5

    def test_empty_result_is_an_empty_page(self):
        page = read_models.paginate([], total=0, page=1, limit=10)
        assert page["docs"] == []
        assert page["totalPages"] == 0
        assert page["hasNextPage"] is False


class TestSorting:
    def test_default_is_newest_first(self):
        assert read_models.resolve_sort(None, None, crud.VIDEO_SORT_COLUMNS) == ("v.created_at", "DESC")

    def test_unknown_keys_never_reach_sql(self):
        column, direction = read_models.resolve_sort("1; DROP TABLE videos", "sideways", crud.VIDEO_SORT_COLUMNS)
        assert column == "v.created_at"
        assert direction == "DESC"

    def test_whitelisted_key_ascending(self):
        assert read_models.resolve_sort("views", "ASC", crud.VIDEO_SORT_COLUMNS) == ("v.views", "ASC")


class TestListQuery:
    def test_offset_and_search(self):
        params = ListQuery(page="3", limit="5", query="  sunset ")
        assert params.offset == 10
        assert params.search == "sunset"

    def test_blank_search_is_dropped(self):
        assert ListQuery(query="   ").search is None
