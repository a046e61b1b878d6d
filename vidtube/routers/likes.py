# routers/likes.py
from fastapi import APIRouter, Depends
import psycopg

from vidtube import auth_utils, crud, read_models, schemas
from vidtube.database import get_db_connection
from vidtube.errors import NotFoundError
from vidtube.validators import parse_id

router = APIRouter()

LIKE_TARGETS = {
    "video": ("get_video", "Video"),
    "comment": ("get_comment", "Comment"),
    "tweet": ("get_tweet", "Tweet"),
}

async def toggle_like(conn: psycopg.AsyncConnection, target: str, target_id: str, user: dict) -> dict:
    """Remove the caller's like if present, otherwise add it."""
    fetcher, label = LIKE_TARGETS[target]
    if target == "video":
        target_uuid = (await auth_utils.visible_video(conn, target_id, user))["id"]
    else:
        target_uuid = parse_id(target_id, label)
        if await getattr(crud, fetcher)(conn, target_uuid) is None:
            raise NotFoundError(f"{label} not found")

    like = None
    if await crud.delete_like(conn, target, target_uuid, user["id"]):
        result = "removed"
    else:
        # A concurrent toggle may already have inserted it; either way it is now liked
        like = await crud.create_like(conn, target, target_uuid, user["id"])
        result = "added"
    return {
        "status": result,
        "isLiked": result == "added",
        "likeCount": await crud.count_likes(conn, target, target_uuid),
        "like": read_models.shape_like(like) if like else None,
    }

def _message(label: str, outcome: dict) -> str:
    return f"{label} liked" if outcome["isLiked"] else f"{label} unliked"

@router.post("/toggle/v/{video_id}")
async def toggle_video_like(
    video_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    outcome = await toggle_like(conn, "video", video_id, current_user)
    return schemas.respond(outcome, _message("Video", outcome))

@router.post("/toggle/c/{comment_id}")
async def toggle_comment_like(
    comment_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    outcome = await toggle_like(conn, "comment", comment_id, current_user)
    return schemas.respond(outcome, _message("Comment", outcome))

@router.post("/toggle/t/{tweet_id}")
async def toggle_tweet_like(
    tweet_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    outcome = await toggle_like(conn, "tweet", tweet_id, current_user)
    return schemas.respond(outcome, _message("Tweet", outcome))

@router.get("/videos")
async def get_liked_videos(
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    rows = await crud.get_liked_videos(conn, current_user["id"])
    videos = [read_models.shape_video(row, current_user["id"]) for row in rows]
    return schemas.respond({"likedVideos": videos, "videosCount": len(videos)},
                           "Liked videos fetched successfully")
