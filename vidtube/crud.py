# crud.py
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psycopg
from psycopg import AsyncConnection  # For type hints
from psycopg.rows import dict_row

from vidtube.config import WATCH_LATER_PLAYLIST_NAME

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

OWNER_COLUMNS = """
    u.username AS owner_username,
    u.full_name AS owner_full_name,
    u.avatar AS owner_avatar
"""

VIDEO_SORT_COLUMNS = {
    "createdAt": "v.created_at",
    "updatedAt": "v.updated_at",
    "views": "v.views",
    "duration": "v.duration",
    "title": "v.title",
}
COMMENT_SORT_COLUMNS = {"createdAt": "c.created_at", "updatedAt": "c.updated_at"}
TWEET_SORT_COLUMNS = {"createdAt": "t.created_at", "updatedAt": "t.updated_at"}
PLAYLIST_SORT_COLUMNS = {"createdAt": "p.created_at", "updatedAt": "p.updated_at", "name": "p.name"}

LIKE_TARGET_COLUMNS = {"video": "video_id", "comment": "comment_id", "tweet": "tweet_id"}
USER_IMAGE_COLUMNS = ("avatar", "cover_image")


def like_pattern(text: str) -> str:
    """Case-insensitive substring pattern with LIKE wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def _fetch_one(conn: AsyncConnection, query: str, params: Sequence | dict = ()) -> Optional[Row]:
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, params)
        return await cursor.fetchone()


async def _fetch_all(conn: AsyncConnection, query: str, params: Sequence | dict = ()) -> List[Row]:
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, params)
        return await cursor.fetchall()


async def _write_one(conn: AsyncConnection, query: str, params: Sequence | dict = ()) -> Optional[Row]:
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, params)
        row = await cursor.fetchone()
    await conn.commit()
    return row


async def _write_count(conn: AsyncConnection, query: str, params: Sequence | dict = ()) -> int:
    async with conn.cursor() as cursor:
        await cursor.execute(query, params)
        affected = cursor.rowcount
    await conn.commit()
    return affected


async def _count(conn: AsyncConnection, query: str, params: Sequence | dict = ()) -> int:
    row = await _fetch_one(conn, query, params)
    return int(row["total"]) if row else 0

# --- User CRUD ---
async def get_user_by_id(conn: AsyncConnection, user_id) -> Optional[Row]:
    return await _fetch_one(conn, "SELECT * FROM users WHERE id = %s", (user_id,))

async def get_user_by_username_or_email(conn: AsyncConnection, username: Optional[str],
                                        email: Optional[str]) -> Optional[Row]:
    query = "SELECT * FROM users WHERE username = %s OR email = %s LIMIT 1"
    return await _fetch_one(conn, query, (
        username.strip().lower() if username else None,
        email.strip().lower() if email else None,
    ))

async def create_user(conn: AsyncConnection, full_name: str, username: str, email: str,
                      hashed_password: str, avatar: str, cover_image: str = "") -> Row:
    query = """
        INSERT INTO users (full_name, username, email, hashed_password, avatar, cover_image)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING *
    """
    try:
        row = await _write_one(conn, query, (
            full_name.strip(), username.strip().lower(), email.strip().lower(),
            hashed_password, avatar, cover_image or "",
        ))
    except psycopg.errors.UniqueViolation:
        await conn.rollback()
        raise ValueError("User with email or username already exists")
    logger.info("Created user %s", row["username"])
    return row

async def set_refresh_token(conn: AsyncConnection, user_id, refresh_token: Optional[str]) -> None:
    query = "UPDATE users SET refresh_token = %s, updated_at = now() WHERE id = %s"
    await _write_count(conn, query, (refresh_token, user_id))

async def update_password(conn: AsyncConnection, user_id, hashed_password: str) -> Optional[Row]:
    query = "UPDATE users SET hashed_password = %s, updated_at = now() WHERE id = %s RETURNING *"
    return await _write_one(conn, query, (hashed_password, user_id))

async def update_account(conn: AsyncConnection, user_id, full_name: str, username: str,
                         email: str) -> Optional[Row]:
    query = """
        UPDATE users SET full_name = %s, username = %s, email = %s, updated_at = now()
        WHERE id = %s
        RETURNING *
    """
    try:
        return await _write_one(conn, query, (
            full_name.strip(), username.strip().lower(), email.strip().lower(), user_id,
        ))
    except psycopg.errors.UniqueViolation:
        await conn.rollback()
        raise ValueError("Username or email is already taken")

async def update_user_image(conn: AsyncConnection, user_id, column: str, url: str) -> Optional[Row]:
    if column not in USER_IMAGE_COLUMNS:
        raise ValueError(f"Unknown image column: {column}")
    query = f"UPDATE users SET {column} = %s, updated_at = now() WHERE id = %s RETURNING *"
    return await _write_one(conn, query, (url, user_id))

async def get_channel_profile(conn: AsyncConnection, username: str) -> Optional[Row]:
    query = """
        SELECT
            u.id, u.username, u.email, u.full_name, u.avatar, u.cover_image,
            ARRAY(SELECT s.subscriber_id FROM subscriptions s WHERE s.channel_id = u.id) AS subscriber_ids,
            (SELECT count(*) FROM subscriptions s WHERE s.subscriber_id = u.id) AS subscribed_to_count,
            (SELECT count(*) FROM videos v WHERE v.owner_id = u.id) AS videos_count
        FROM users u
        WHERE u.username = %s
    """
    return await _fetch_one(conn, query, (username.strip().lower(),))

# --- Watch history ---
async def get_watch_history(conn: AsyncConnection, user_id) -> List[Row]:
    # Inner join: entries whose video has been deleted simply drop out
    query = f"""
        SELECT
            v.id, v.title, v.description, v.thumbnail, v.duration, v.views, v.owner_id,
            {OWNER_COLUMNS},
            w.watched_at
        FROM watch_history w
        JOIN videos v ON v.id = w.video_id
        LEFT JOIN users u ON u.id = v.owner_id
        WHERE w.user_id = %s AND (v.is_published OR v.owner_id = %s)
        ORDER BY w.watched_at DESC, w.id DESC
    """
    return await _fetch_all(conn, query, (user_id, user_id))

async def append_watch_history(conn: AsyncConnection, user_id, video_id) -> bool:
    """Record a view unless this video is already the user's most recent entry."""
    query = """
        INSERT INTO watch_history (user_id, video_id)
        SELECT %(user)s::uuid, %(video)s::uuid
        WHERE %(video)s::uuid IS DISTINCT FROM (
            SELECT w.video_id FROM watch_history w
            WHERE w.user_id = %(user)s
            ORDER BY w.watched_at DESC, w.id DESC
            LIMIT 1
        )
    """
    return await _write_count(conn, query, {"user": user_id, "video": video_id}) > 0

async def remove_from_watch_history(conn: AsyncConnection, user_id, video_id) -> int:
    query = "DELETE FROM watch_history WHERE user_id = %s AND video_id = %s"
    return await _write_count(conn, query, (user_id, video_id))

async def clear_watch_history(conn: AsyncConnection, user_id) -> int:
    return await _write_count(conn, "DELETE FROM watch_history WHERE user_id = %s", (user_id,))

# --- Video CRUD ---
VIDEO_LIST_SELECT = f"""
    SELECT
        v.*,
        {OWNER_COLUMNS},
        ARRAY(SELECT l.liked_by FROM likes l WHERE l.video_id = v.id) AS liker_ids
    FROM videos v
    LEFT JOIN users u ON u.id = v.owner_id
"""

async def list_videos(conn: AsyncConnection, *, viewer_id=None, owner_id=None,
                      search: Optional[str] = None, order_by: str = "v.created_at",
                      direction: str = "DESC", limit: int = 10, offset: int = 0) -> Tuple[List[Row], int]:
    # Unpublished videos are only listed for their owner
    clauses = ["(v.is_published OR v.owner_id = %s)"]
    params: List[Any] = [viewer_id]
    if owner_id is not None:
        clauses.append("v.owner_id = %s")
        params.append(owner_id)
    if search:
        clauses.append("(v.title ILIKE %s OR v.description ILIKE %s)")
        params.extend([like_pattern(search)] * 2)
    where = " AND ".join(clauses)

    total = await _count(conn, f"SELECT count(*) AS total FROM videos v WHERE {where}", params)
    query = f"""
        {VIDEO_LIST_SELECT}
        WHERE {where}
        ORDER BY {order_by} {direction}, v.id
        LIMIT %s OFFSET %s
    """
    rows = await _fetch_all(conn, query, [*params, limit, offset])
    return rows, total

async def get_video(conn: AsyncConnection, video_id) -> Optional[Row]:
    return await _fetch_one(conn, "SELECT * FROM videos WHERE id = %s", (video_id,))

async def get_video_detail(conn: AsyncConnection, video_id) -> Optional[Row]:
    query = f"""
        SELECT
            v.*,
            {OWNER_COLUMNS},
            ARRAY(SELECT l.liked_by FROM likes l WHERE l.video_id = v.id) AS liker_ids,
            ARRAY(SELECT s.subscriber_id FROM subscriptions s WHERE s.channel_id = v.owner_id) AS owner_subscriber_ids
        FROM videos v
        LEFT JOIN users u ON u.id = v.owner_id
        WHERE v.id = %s
    """
    return await _fetch_one(conn, query, (video_id,))

async def create_video(conn: AsyncConnection, title: str, description: str, video_file: str,
                       thumbnail: str, duration: float, owner_id) -> Row:
    query = """
        INSERT INTO videos (title, description, video_file, thumbnail, duration, owner_id)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING *
    """
    row = await _write_one(conn, query, (title, description, video_file, thumbnail, duration, owner_id))
    logger.info("Published video %s for user %s", row["id"], owner_id)
    return row

async def update_video(conn: AsyncConnection, video_id, title: str, description: str,
                       thumbnail: Optional[str] = None) -> Optional[Row]:
    query = """
        UPDATE videos
        SET title = %s, description = %s, thumbnail = COALESCE(%s, thumbnail), updated_at = now()
        WHERE id = %s
        RETURNING *
    """
    return await _write_one(conn, query, (title, description, thumbnail, video_id))

async def set_video_published(conn: AsyncConnection, video_id, is_published: bool) -> Optional[Row]:
    query = "UPDATE videos SET is_published = %s, updated_at = now() WHERE id = %s RETURNING *"
    return await _write_one(conn, query, (is_published, video_id))

async def increment_views(conn: AsyncConnection, video_id) -> Optional[int]:
    row = await _write_one(conn, "UPDATE videos SET views = views + 1 WHERE id = %s RETURNING views", (video_id,))
    return row["views"] if row else None

async def delete_video(conn: AsyncConnection, video_id) -> bool:
    """Delete a video with its likes and comments (and likes on those comments)."""
    try:
        async with conn.cursor() as cursor:
            await cursor.execute(
                """
                DELETE FROM likes
                WHERE video_id = %(video)s
                   OR comment_id IN (SELECT c.id FROM comments c WHERE c.video_id = %(video)s)
                """,
                {"video": video_id},
            )
            await cursor.execute("DELETE FROM comments WHERE video_id = %s", (video_id,))
            await cursor.execute("DELETE FROM videos WHERE id = %s", (video_id,))
            deleted_rows = cursor.rowcount
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    if deleted_rows > 0:
        logger.info("Deleted video %s with its likes and comments", video_id)
        return True
    return False

# --- Comment CRUD ---
COMMENT_DETAIL_SELECT = f"""
    SELECT
        c.*,
        {OWNER_COLUMNS},
        ARRAY(SELECT l.liked_by FROM likes l WHERE l.comment_id = c.id) AS liker_ids
    FROM comments c
    LEFT JOIN users u ON u.id = c.owner_id
"""

async def list_comments(conn: AsyncConnection, video_id, *, search: Optional[str] = None,
                        order_by: str = "c.created_at", direction: str = "DESC",
                        limit: int = 10, offset: int = 0) -> Tuple[List[Row], int]:
    clauses = ["c.video_id = %s"]
    params: List[Any] = [video_id]
    if search:
        clauses.append("c.content ILIKE %s")
        params.append(like_pattern(search))
    where = " AND ".join(clauses)

    total = await _count(conn, f"SELECT count(*) AS total FROM comments c WHERE {where}", params)
    query = f"""
        {COMMENT_DETAIL_SELECT}
        WHERE {where}
        ORDER BY {order_by} {direction}, c.id
        LIMIT %s OFFSET %s
    """
    return await _fetch_all(conn, query, [*params, limit, offset]), total

async def get_comment(conn: AsyncConnection, comment_id) -> Optional[Row]:
    return await _fetch_one(conn, "SELECT * FROM comments WHERE id = %s", (comment_id,))

async def get_comment_detail(conn: AsyncConnection, comment_id) -> Optional[Row]:
    return await _fetch_one(conn, f"{COMMENT_DETAIL_SELECT} WHERE c.id = %s", (comment_id,))

async def create_comment(conn: AsyncConnection, content: str, video_id, owner_id) -> Row:
    query = "INSERT INTO comments (content, video_id, owner_id) VALUES (%s, %s, %s) RETURNING *"
    return await _write_one(conn, query, (content, video_id, owner_id))

async def update_comment(conn: AsyncConnection, comment_id, content: str) -> Optional[Row]:
    query = "UPDATE comments SET content = %s, updated_at = now() WHERE id = %s RETURNING *"
    return await _write_one(conn, query, (content, comment_id))

async def delete_comment(conn: AsyncConnection, comment_id) -> bool:
    try:
        async with conn.cursor() as cursor:
            await cursor.execute("DELETE FROM likes WHERE comment_id = %s", (comment_id,))
            await cursor.execute("DELETE FROM comments WHERE id = %s", (comment_id,))
            deleted_rows = cursor.rowcount
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return deleted_rows > 0

# --- Like CRUD ---
async def delete_like(conn: AsyncConnection, target: str, target_id, user_id) -> bool:
    column = LIKE_TARGET_COLUMNS[target]
    query = f"DELETE FROM likes WHERE {column} = %s AND liked_by = %s"
    return await _write_count(conn, query, (target_id, user_id)) > 0

async def create_like(conn: AsyncConnection, target: str, target_id, user_id) -> Optional[Row]:
    """Returns None when a concurrent request already inserted the same like."""
    column = LIKE_TARGET_COLUMNS[target]
    query = f"""
        INSERT INTO likes ({column}, liked_by) VALUES (%s, %s)
        ON CONFLICT DO NOTHING
        RETURNING *
    """
    return await _write_one(conn, query, (target_id, user_id))

async def get_liked_videos(conn: AsyncConnection, user_id) -> List[Row]:
    query = f"""
        SELECT
            v.*,
            {OWNER_COLUMNS},
            ARRAY(SELECT l2.liked_by FROM likes l2 WHERE l2.video_id = v.id) AS liker_ids
        FROM likes l
        JOIN videos v ON v.id = l.video_id
        LEFT JOIN users u ON u.id = v.owner_id
        WHERE l.liked_by = %(user)s AND (v.is_published OR v.owner_id = %(user)s)
        ORDER BY l.created_at DESC
    """
    return await _fetch_all(conn, query, {"user": user_id})

async def count_likes(conn: AsyncConnection, target: str, target_id) -> int:
    column = LIKE_TARGET_COLUMNS[target]
    return await _count(conn, f"SELECT count(*) AS total FROM likes WHERE {column} = %s", (target_id,))

# --- Subscription CRUD ---
async def delete_subscription(conn: AsyncConnection, subscriber_id, channel_id) -> bool:
    query = "DELETE FROM subscriptions WHERE subscriber_id = %s AND channel_id = %s"
    return await _write_count(conn, query, (subscriber_id, channel_id)) > 0

async def create_subscription(conn: AsyncConnection, subscriber_id, channel_id) -> Optional[Row]:
    query = """
        INSERT INTO subscriptions (subscriber_id, channel_id) VALUES (%s, %s)
        ON CONFLICT (subscriber_id, channel_id) DO NOTHING
        RETURNING *
    """
    return await _write_one(conn, query, (subscriber_id, channel_id))

async def get_channel_subscribers(conn: AsyncConnection, channel_id) -> List[Row]:
    query = """
        SELECT
            s.id, s.created_at, s.subscriber_id,
            u.username AS subscriber_username,
            u.full_name AS subscriber_full_name,
            u.avatar AS subscriber_avatar
        FROM subscriptions s
        JOIN users u ON u.id = s.subscriber_id
        WHERE s.channel_id = %s
        ORDER BY s.created_at DESC
    """
    return await _fetch_all(conn, query, (channel_id,))

async def get_subscribed_channels(conn: AsyncConnection, subscriber_id) -> List[Row]:
    query = """
        SELECT
            s.id, s.created_at, s.channel_id,
            u.username AS channel_username,
            u.full_name AS channel_full_name,
            u.avatar AS channel_avatar,
            (SELECT count(*) FROM subscriptions s2 WHERE s2.channel_id = s.channel_id) AS subscriber_count
        FROM subscriptions s
        JOIN users u ON u.id = s.channel_id
        WHERE s.subscriber_id = %s
        ORDER BY s.created_at DESC
    """
    return await _fetch_all(conn, query, (subscriber_id,))

# --- Playlist CRUD ---
PLAYLIST_DETAIL_SELECT = f"""
    SELECT
        p.*,
        {OWNER_COLUMNS},
        (SELECT count(*) FROM playlist_videos pv WHERE pv.playlist_id = p.id) AS video_count
    FROM playlists p
    LEFT JOIN users u ON u.id = p.owner_id
"""

async def get_playlist(conn: AsyncConnection, playlist_id) -> Optional[Row]:
    return await _fetch_one(conn, f"{PLAYLIST_DETAIL_SELECT} WHERE p.id = %s", (playlist_id,))

async def get_playlist_videos(conn: AsyncConnection, playlist_id, viewer_id=None) -> List[Row]:
    """Videos of a playlist in insertion order, minus drafts the viewer does not own."""
    query = f"""
        SELECT
            v.*,
            {OWNER_COLUMNS},
            ARRAY(SELECT l.liked_by FROM likes l WHERE l.video_id = v.id) AS liker_ids
        FROM playlist_videos pv
        JOIN videos v ON v.id = pv.video_id
        LEFT JOIN users u ON u.id = v.owner_id
        WHERE pv.playlist_id = %s AND (v.is_published OR v.owner_id = %s)
        ORDER BY pv.position
    """
    return await _fetch_all(conn, query, (playlist_id, viewer_id))

async def list_user_playlists(conn: AsyncConnection, owner_id, *, include_private: bool = False,
                              search: Optional[str] = None, order_by: str = "p.created_at",
                              direction: str = "DESC", limit: int = 10,
                              offset: int = 0) -> Tuple[List[Row], int]:
    clauses = ["p.owner_id = %s"]
    params: List[Any] = [owner_id]
    if not include_private:
        clauses.append("p.is_public")
    if search:
        clauses.append("(p.name ILIKE %s OR p.description ILIKE %s)")
        params.extend([like_pattern(search)] * 2)
    where = " AND ".join(clauses)

    total = await _count(conn, f"SELECT count(*) AS total FROM playlists p WHERE {where}", params)
    query = f"""
        {PLAYLIST_DETAIL_SELECT}
        WHERE {where}
        ORDER BY {order_by} {direction}, p.id
        LIMIT %s OFFSET %s
    """
    return await _fetch_all(conn, query, [*params, limit, offset]), total

async def create_playlist(conn: AsyncConnection, name: str, description: str, owner_id,
                          is_public: bool = True) -> Row:
    query = """
        INSERT INTO playlists (name, description, is_public, owner_id)
        VALUES (%s, %s, %s, %s)
        RETURNING *
    """
    return await _write_one(conn, query, (name, description or "", is_public, owner_id))

async def update_playlist(conn: AsyncConnection, playlist_id, name: str, description: str) -> Optional[Row]:
    query = "UPDATE playlists SET name = %s, description = %s, updated_at = now() WHERE id = %s RETURNING *"
    return await _write_one(conn, query, (name, description, playlist_id))

async def set_playlist_visibility(conn: AsyncConnection, playlist_id, is_public: bool) -> Optional[Row]:
    query = "UPDATE playlists SET is_public = %s, updated_at = now() WHERE id = %s RETURNING *"
    return await _write_one(conn, query, (is_public, playlist_id))

async def delete_playlist(conn: AsyncConnection, playlist_id) -> bool:
    return await _write_count(conn, "DELETE FROM playlists WHERE id = %s", (playlist_id,)) > 0

async def add_video_to_playlist(conn: AsyncConnection, playlist_id, video_id) -> bool:
    """False when the video was already in the playlist."""
    try:
        async with conn.cursor() as cursor:
            await cursor.execute(
                "INSERT INTO playlist_videos (playlist_id, video_id) VALUES (%s, %s) ON CONFLICT DO NOTHING",
                (playlist_id, video_id),
            )
            inserted = cursor.rowcount
            if inserted:
                await cursor.execute("UPDATE playlists SET updated_at = now() WHERE id = %s", (playlist_id,))
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return inserted > 0

async def remove_video_from_playlist(conn: AsyncConnection, playlist_id, video_id) -> bool:
    """False when the video was not in the playlist."""
    try:
        async with conn.cursor() as cursor:
            await cursor.execute(
                "DELETE FROM playlist_videos WHERE playlist_id = %s AND video_id = %s",
                (playlist_id, video_id),
            )
            removed = cursor.rowcount
            if removed:
                await cursor.execute("UPDATE playlists SET updated_at = now() WHERE id = %s", (playlist_id,))
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return removed > 0

async def find_watch_later(conn: AsyncConnection, owner_id) -> Optional[Row]:
    return await _fetch_one(conn, f"{PLAYLIST_DETAIL_SELECT} WHERE p.owner_id = %s AND p.is_watch_later",
                            (owner_id,))

async def get_or_create_watch_later(conn: AsyncConnection, owner_id) -> Row:
    # The partial unique index on (owner_id) WHERE is_watch_later makes this safe to race
    query = """
        INSERT INTO playlists (name, description, is_public, is_watch_later, owner_id)
        VALUES (%s, '', FALSE, TRUE, %s)
        ON CONFLICT DO NOTHING
    """
    created = await _write_count(conn, query, (WATCH_LATER_PLAYLIST_NAME, owner_id))
    if created:
        logger.info("Created Watch Later playlist for user %s", owner_id)
    return await find_watch_later(conn, owner_id)

# --- Tweet CRUD ---
TWEET_DETAIL_SELECT = f"""
    SELECT
        t.*,
        {OWNER_COLUMNS},
        ARRAY(SELECT l.liked_by FROM likes l WHERE l.tweet_id = t.id) AS liker_ids
    FROM tweets t
    LEFT JOIN users u ON u.id = t.owner_id
"""

async def list_user_tweets(conn: AsyncConnection, owner_id, *, search: Optional[str] = None,
                           order_by: str = "t.created_at", direction: str = "DESC",
                           limit: int = 10, offset: int = 0) -> Tuple[List[Row], int]:
    clauses = ["t.owner_id = %s"]
    params: List[Any] = [owner_id]
    if search:
        clauses.append("t.content ILIKE %s")
        params.append(like_pattern(search))
    where = " AND ".join(clauses)

    total = await _count(conn, f"SELECT count(*) AS total FROM tweets t WHERE {where}", params)
    query = f"""
        {TWEET_DETAIL_SELECT}
        WHERE {where}
        ORDER BY {order_by} {direction}, t.id
        LIMIT %s OFFSET %s
    """
    return await _fetch_all(conn, query, [*params, limit, offset]), total

async def get_tweet(conn: AsyncConnection, tweet_id) -> Optional[Row]:
    return await _fetch_one(conn, "SELECT * FROM tweets WHERE id = %s", (tweet_id,))

async def get_tweet_detail(conn: AsyncConnection, tweet_id) -> Optional[Row]:
    return await _fetch_one(conn, f"{TWEET_DETAIL_SELECT} WHERE t.id = %s", (tweet_id,))

async def create_tweet(conn: AsyncConnection, content: str, owner_id) -> Row:
    return await _write_one(conn, "INSERT INTO tweets (content, owner_id) VALUES (%s, %s) RETURNING *",
                            (content, owner_id))

async def update_tweet(conn: AsyncConnection, tweet_id, content: str) -> Optional[Row]:
    query = "UPDATE tweets SET content = %s, updated_at = now() WHERE id = %s RETURNING *"
    return await _write_one(conn, query, (content, tweet_id))

async def delete_tweet(conn: AsyncConnection, tweet_id) -> bool:
    try:
        async with conn.cursor() as cursor:
            await cursor.execute("DELETE FROM likes WHERE tweet_id = %s", (tweet_id,))
            await cursor.execute("DELETE FROM tweets WHERE id = %s", (tweet_id,))
            deleted_rows = cursor.rowcount
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return deleted_rows > 0

# --- Dashboard ---
async def get_channel_stats(conn: AsyncConnection, owner_id) -> Optional[Row]:
    query = """
        SELECT
            (SELECT COALESCE(sum(v.views), 0) FROM videos v WHERE v.owner_id = %(owner)s) AS total_views,
            (SELECT count(*) FROM videos v WHERE v.owner_id = %(owner)s) AS total_videos,
            (SELECT count(*) FROM likes l JOIN videos v ON v.id = l.video_id
              WHERE v.owner_id = %(owner)s) AS total_likes,
            (SELECT count(*) FROM subscriptions s WHERE s.channel_id = %(owner)s) AS total_subscribers
    """
    return await _fetch_one(conn, query, {"owner": owner_id})
