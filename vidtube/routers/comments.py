# routers/comments.py
from typing import Optional

from fastapi import APIRouter, Depends, status
import psycopg

from vidtube import auth_utils, crud, read_models, schemas
from vidtube.database import get_db_connection
from vidtube.errors import NotFoundError
from vidtube.validators import parse_id, require_fields

router = APIRouter()

EMPTY_COMMENT = "Comment cannot be empty"

@router.get("/{video_id}")
async def get_video_comments(
    video_id: str,
    params: read_models.ListQuery = Depends(),
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video = await auth_utils.visible_video(conn, video_id, current_user)

    viewer = auth_utils.viewer_id(current_user)
    order_by, direction = params.order(crud.COMMENT_SORT_COLUMNS)
    rows, total = await crud.list_comments(
        conn, video["id"],
        search=params.search, order_by=order_by, direction=direction,
        limit=params.limit, offset=params.offset,
    )
    page = params.page_of([read_models.shape_comment(row, viewer) for row in rows], total)
    return schemas.respond(page, "Comments fetched successfully")

@router.post("/{video_id}", status_code=status.HTTP_201_CREATED)
async def add_comment(
    video_id: str,
    body: schemas.ContentBody,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields(EMPTY_COMMENT, body.content)
    video = await auth_utils.visible_video(conn, video_id, current_user)

    comment = await crud.create_comment(conn, body.content.strip(), video["id"], current_user["id"])
    detail = await crud.get_comment_detail(conn, comment["id"])
    return schemas.respond(read_models.shape_comment(detail, current_user["id"]),
                           "Comment added successfully", status.HTTP_201_CREATED)

@router.patch("/c/{comment_id}")
async def update_comment(
    comment_id: str,
    body: schemas.ContentBody,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields(EMPTY_COMMENT, body.content)
    comment_uuid = parse_id(comment_id, "Comment")
    comment = await crud.get_comment(conn, comment_uuid)
    if comment is None:
        raise NotFoundError("Comment not found")
    auth_utils.ensure_owner(comment, current_user, "You are not allowed to update this comment")

    await crud.update_comment(conn, comment_uuid, body.content.strip())
    detail = await crud.get_comment_detail(conn, comment_uuid)
    return schemas.respond(read_models.shape_comment(detail, current_user["id"]), "Comment updated successfully")

@router.delete("/c/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    comment_uuid = parse_id(comment_id, "Comment")
    comment = await crud.get_comment(conn, comment_uuid)
    if comment is None:
        raise NotFoundError("Comment not found")
    auth_utils.ensure_owner(comment, current_user, "You are not allowed to delete this comment")

    await crud.delete_comment(conn, comment_uuid)
    return schemas.respond({}, "Comment deleted successfully")
