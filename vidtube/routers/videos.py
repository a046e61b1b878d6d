# routers/videos.py
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
import psycopg

from vidtube import auth_utils, blob_storage, crud, read_models, schemas
from vidtube.database import get_db_connection
from vidtube.errors import BadRequestError, NotFoundError
from vidtube.validators import is_blank, parse_duration, parse_id, require_fields

logger = logging.getLogger(__name__)

router = APIRouter()

async def _visible_video(conn, video_id: str, current_user: Optional[dict]) -> dict:
    """Detail row for a video the caller may see; unpublished videos exist only for their owner."""
    return await auth_utils.visible_video(conn, video_id, current_user, fetcher="get_video_detail")

@router.get("/")
async def get_all_videos(
    params: read_models.ListQuery = Depends(),
    userId: Optional[str] = Query(None),
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    owner_id = parse_id(userId, "User") if userId else None
    viewer = auth_utils.viewer_id(current_user)
    order_by, direction = params.order(crud.VIDEO_SORT_COLUMNS)
    rows, total = await crud.list_videos(
        conn,
        viewer_id=viewer,
        owner_id=owner_id,
        search=params.search,
        order_by=order_by,
        direction=direction,
        limit=params.limit,
        offset=params.offset,
    )
    page = params.page_of([read_models.shape_video(row, viewer) for row in rows], total)
    return schemas.respond(page, "Videos fetched successfully" if rows else "No videos found")

@router.post("/", status_code=status.HTTP_201_CREATED)
async def publish_a_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    videoFile: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields("Title and description are required", title, description)
    if not blob_storage.has_upload(videoFile):
        raise BadRequestError("Video file is required")
    if not blob_storage.has_upload(thumbnail):
        raise BadRequestError("Thumbnail is required")

    video_url = await blob_storage.upload_file_to_blob(videoFile, file_type="video")
    try:
        thumbnail_url = await blob_storage.upload_file_to_blob(thumbnail, file_type="thumbnail")
    except Exception:
        await blob_storage.discard_blobs(video_url)
        raise

    try:
        video = await crud.create_video(
            conn,
            title=title.strip(),
            description=description.strip(),
            video_file=video_url,
            thumbnail=thumbnail_url,
            duration=parse_duration(duration),
            owner_id=current_user["id"],
        )
    except Exception:
        await blob_storage.discard_blobs(video_url, thumbnail_url)
        raise
    return schemas.respond(read_models.shape_video(video, current_user["id"]),
                           "Video published successfully", status.HTTP_201_CREATED)

@router.get("/stats/{video_id}")
async def get_video_stats(
    video_id: str,
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video = await _visible_video(conn, video_id, current_user)
    return schemas.respond(
        read_models.shape_video_stats(video, auth_utils.viewer_id(current_user)),
        "Video stats fetched successfully",
    )

@router.patch("/view/{video_id}")
async def view_video(
    video_id: str,
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    """Count a view; signed-in viewers also get a watch history entry."""
    video = await _visible_video(conn, video_id, current_user)
    views = await crud.increment_views(conn, video["id"])
    added_to_history = False
    if current_user is not None:
        added_to_history = await crud.append_watch_history(conn, current_user["id"], video["id"])
    return schemas.respond({"views": views, "addedToHistory": added_to_history}, "Video view recorded")

@router.patch("/toggle/publish/{video_id}")
async def toggle_publish_status(
    video_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video_uuid = parse_id(video_id, "Video")
    video = await crud.get_video(conn, video_uuid)
    if video is None:
        raise NotFoundError("Video not found")
    auth_utils.ensure_owner(video, current_user, "You are not allowed to change this video's publish status")

    updated = await crud.set_video_published(conn, video_uuid, not video["is_published"])
    message = "Video published" if updated["is_published"] else "Video unpublished"
    return schemas.respond({"isPublished": updated["is_published"]}, message)

@router.get("/{video_id}")
async def get_video_by_id(
    video_id: str,
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video = await _visible_video(conn, video_id, current_user)
    return schemas.respond(
        read_models.shape_video(video, auth_utils.viewer_id(current_user)),
        "Video fetched successfully",
    )

@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    background_tasks: BackgroundTasks,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields("Title and description are required", title, description)
    video_uuid = parse_id(video_id, "Video")
    video = await crud.get_video(conn, video_uuid)
    if video is None:
        raise NotFoundError("Video not found")
    auth_utils.ensure_owner(video, current_user, "You are not allowed to update this video")

    thumbnail_url = None
    if blob_storage.has_upload(thumbnail):
        thumbnail_url = await blob_storage.upload_file_to_blob(thumbnail, file_type="thumbnail")
        background_tasks.add_task(blob_storage.delete_blob, video["thumbnail"])

    updated = await crud.update_video(conn, video_uuid, title.strip(), description.strip(), thumbnail=thumbnail_url)
    return schemas.respond(read_models.shape_video(updated, current_user["id"]), "Video updated successfully")

@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    """Removes the video with its likes and comments; stored media is deleted after the response."""
    video_uuid = parse_id(video_id, "Video")
    video = await crud.get_video(conn, video_uuid)
    if video is None:
        raise NotFoundError("Video not found")
    auth_utils.ensure_owner(video, current_user, "You are not allowed to delete this video")

    if not await crud.delete_video(conn, video_uuid):
        raise NotFoundError("Video not found")

    for url in (video["video_file"], video["thumbnail"]):
        if not is_blank(url):
            background_tasks.add_task(blob_storage.delete_blob, url)
    logger.info("User %s deleted video %s", current_user["id"], video_uuid)
    return schemas.respond({}, "Video deleted successfully")
