# read_models.py
"""
Viewer-relative projections of stored rows.

The crud layer joins each entity with its owner columns (prefixed
``owner_``) and with the ids of related rows (``liker_ids``,
``owner_subscriber_ids``, ``subscriber_ids``). Everything here is a pure
function of such a row and the id of whoever is asking, so the same
shaping applies whether the viewer is signed in or anonymous.
"""
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from vidtube.config import DEFAULT_LIMIT, DEFAULT_PAGE
from vidtube.validators import same_id

Row = Mapping[str, Any]

# --- Viewer-relative flags ---
def is_member(viewer_id, ids: Optional[Iterable]) -> bool:
    """True iff the viewer's id is among ``ids``; always False for anonymous viewers."""
    if viewer_id is None or not ids:
        return False
    return any(same_id(viewer_id, candidate) for candidate in ids)


def can_view_playlist(playlist: Row, viewer_id) -> bool:
    return bool(playlist["is_public"]) or same_id(playlist["owner_id"], viewer_id)


def can_view_video(video: Row, viewer_id) -> bool:
    """Unpublished videos exist only for their owner."""
    return bool(video["is_published"]) or same_id(video["owner_id"], viewer_id)

# --- Users ---
def shape_owner(row: Row, prefix: str = "owner_") -> Optional[Dict[str, Any]]:
    """Public sub-projection of a joined user, or None when the join matched nothing."""
    if row.get(f"{prefix}username") is None:
        return None
    return {
        "id": row.get(f"{prefix}id"),
        "username": row[f"{prefix}username"],
        "fullName": row.get(f"{prefix}full_name"),
        "avatar": row.get(f"{prefix}avatar"),
    }


def shape_user(row: Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "username": row["username"],
        "email": row["email"],
        "fullName": row["full_name"],
        "avatar": row["avatar"],
        "coverImage": row.get("cover_image") or "",
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }


def shape_channel(row: Row, viewer_id=None) -> Dict[str, Any]:
    subscribers = row.get("subscriber_ids") or []
    return {
        "id": row["id"],
        "username": row["username"],
        "email": row["email"],
        "fullName": row["full_name"],
        "avatar": row["avatar"],
        "coverImage": row.get("cover_image") or "",
        "subscribersCount": len(subscribers),
        "channelsSubscribedToCount": int(row.get("subscribed_to_count") or 0),
        "isSubscribed": is_member(viewer_id, subscribers),
        "videosCount": int(row.get("videos_count") or 0),
    }


def _with_owner(projection: Dict[str, Any], row: Row, viewer_id) -> Dict[str, Any]:
    owner = shape_owner(row)
    if owner is None:
        return projection
    if "owner_subscriber_ids" in row:
        subscribers = row["owner_subscriber_ids"] or []
        owner["subscriberCount"] = len(subscribers)
        owner["isSubscribed"] = is_member(viewer_id, subscribers)
    projection["owner"] = owner
    return projection


def _like_fields(row: Row, viewer_id) -> Dict[str, Any]:
    likers = row.get("liker_ids") or []
    return {"likeCount": len(likers), "isLiked": is_member(viewer_id, likers)}

# --- Videos ---
def shape_video(row: Row, viewer_id=None) -> Dict[str, Any]:
    projection = {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "videoFile": row["video_file"],
        "thumbnail": row["thumbnail"],
        "duration": row["duration"],
        "views": row["views"],
        "isPublished": row["is_published"],
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }
    projection.update(_like_fields(row, viewer_id))
    return _with_owner(projection, row, viewer_id)


def shape_video_stats(row: Row, viewer_id=None) -> Dict[str, Any]:
    subscribers = row.get("owner_subscriber_ids") or []
    stats = _like_fields(row, viewer_id)
    stats.update({
        "subscriberCount": len(subscribers),
        "isSubscribed": is_member(viewer_id, subscribers),
        "views": row["views"],
    })
    return stats


def shape_history_entry(row: Row) -> Dict[str, Any]:
    projection = {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "thumbnail": row["thumbnail"],
        "duration": row["duration"],
        "views": row["views"],
        "watchedAt": row["watched_at"],
    }
    owner = shape_owner(row)
    if owner is not None:
        projection["owner"] = owner
    return projection

# --- Comments & tweets ---
def shape_comment(row: Row, viewer_id=None) -> Dict[str, Any]:
    projection = {
        "id": row["id"],
        "content": row["content"],
        "video": row["video_id"],
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }
    projection.update(_like_fields(row, viewer_id))
    return _with_owner(projection, row, viewer_id)


def shape_tweet(row: Row, viewer_id=None) -> Dict[str, Any]:
    projection = {
        "id": row["id"],
        "content": row["content"],
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }
    projection.update(_like_fields(row, viewer_id))
    return _with_owner(projection, row, viewer_id)


def shape_like(row: Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "video": row.get("video_id"),
        "comment": row.get("comment_id"),
        "tweet": row.get("tweet_id"),
        "likedBy": row["liked_by"],
        "createdAt": row.get("created_at"),
    }

# --- Playlists ---
def shape_playlist(row: Row, videos: Optional[List[Row]] = None, viewer_id=None) -> Dict[str, Any]:
    projection = {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"],
        "visibility": row["is_public"],
        "isWatchLater": row.get("is_watch_later", False),
        "totalVideos": int(row.get("video_count") or 0),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }
    if videos is not None:
        projection["videos"] = [shape_video(video, viewer_id) for video in videos]
        projection["totalVideos"] = len(videos)
    return _with_owner(projection, row, viewer_id)

# --- Subscriptions ---
def shape_subscription(row: Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "subscriber": row["subscriber_id"],
        "channel": row["channel_id"],
        "createdAt": row.get("created_at"),
    }


def shape_subscriber(row: Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "subscriber": shape_owner(row, prefix="subscriber_"),
        "createdAt": row.get("created_at"),
    }


def shape_subscribed_channel(row: Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "channel": shape_owner(row, prefix="channel_"),
        "subscriberCount": int(row.get("subscriber_count") or 0),
        "createdAt": row.get("created_at"),
    }

# --- Dashboard ---
def shape_channel_stats(row: Optional[Row]) -> Dict[str, Any]:
    row = row or {}
    return {
        "totalViews": int(row.get("total_views") or 0),
        "totalVideos": int(row.get("total_videos") or 0),
        "totalLikes": int(row.get("total_likes") or 0),
        "totalSubscribers": int(row.get("total_subscribers") or 0),
    }

# --- Lists ---
def coerce_positive_int(value, default: int) -> int:
    """Query strings arrive as text; anything that is not a positive integer falls back."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def coerce_page_params(page, limit) -> Tuple[int, int]:
    return coerce_positive_int(page, DEFAULT_PAGE), coerce_positive_int(limit, DEFAULT_LIMIT)


def resolve_sort(sort_by: Optional[str], sort_type: Optional[str],
                 allowed: Mapping[str, str], default: str = "createdAt") -> Tuple[str, str]:
    """Map a client sort key onto a whitelisted column; newest first unless asked otherwise."""
    column = allowed.get(sort_by or default, allowed[default])
    direction = "ASC" if (sort_type or "").lower() == "asc" else "DESC"
    return column, direction


def paginate(docs: List[Any], total: int, page: int, limit: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if total else 0
    has_prev = page > 1
    has_next = page < total_pages
    return {
        "docs": docs,
        "totalDocs": total,
        "limit": limit,
        "page": page,
        "totalPages": total_pages,
        "pagingCounter": (page - 1) * limit + 1,
        "hasPrevPage": has_prev,
        "hasNextPage": has_next,
        "prevPage": page - 1 if has_prev else None,
        "nextPage": page + 1 if has_next else None,
    }


class ListQuery:
    """Paging, search and sort parameters shared by every list endpoint (use with ``Depends()``)."""

    def __init__(self, page: Optional[str] = None, limit: Optional[str] = None,
                 query: Optional[str] = None, sortBy: Optional[str] = None,
                 sortType: Optional[str] = None):
        self.page, self.limit = coerce_page_params(page, limit)
        self.search = query.strip() if query and query.strip() else None
        self.sort_by = sortBy
        self.sort_type = sortType

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def order(self, allowed: Mapping[str, str]) -> Tuple[str, str]:
        return resolve_sort(self.sort_by, self.sort_type, allowed)

    def page_of(self, docs: List[Any], total: int) -> Dict[str, Any]:
        return paginate(docs, total, self.page, self.limit)
