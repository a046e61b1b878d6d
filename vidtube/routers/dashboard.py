# routers/dashboard.py
from fastapi import APIRouter, Depends
import psycopg

from vidtube import auth_utils, crud, read_models, schemas
from vidtube.database import get_db_connection

router = APIRouter()

@router.get("/stats")
async def get_channel_stats(
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    stats = await crud.get_channel_stats(conn, current_user["id"])
    return schemas.respond(read_models.shape_channel_stats(stats), "Channel stats fetched successfully")

@router.get("/videos")
async def get_channel_videos(
    params: read_models.ListQuery = Depends(),
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    """The caller's own uploads, unpublished ones included."""
    order_by, direction = params.order(crud.VIDEO_SORT_COLUMNS)
    rows, total = await crud.list_videos(
        conn,
        viewer_id=current_user["id"],
        owner_id=current_user["id"],
        search=params.search,
        order_by=order_by,
        direction=direction,
        limit=params.limit,
        offset=params.offset,
    )
    page = params.page_of([read_models.shape_video(row, current_user["id"]) for row in rows], total)
    return schemas.respond(page, "Channel videos fetched successfully")
