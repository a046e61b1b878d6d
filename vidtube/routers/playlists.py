# routers/playlists.py
from typing import Optional

from fastapi import APIRouter, Depends, status
import psycopg

from vidtube import auth_utils, crud, read_models, schemas
from vidtube.database import get_db_connection
from vidtube.errors import BadRequestError, NotFoundError, UnauthorizedError
from vidtube.validators import parse_id, require_fields, same_id

router = APIRouter()

async def _owned_playlist(conn, playlist_id: str, current_user: dict, message: str) -> dict:
    playlist_uuid = parse_id(playlist_id, "Playlist")
    playlist = await crud.get_playlist(conn, playlist_uuid)
    if playlist is None:
        raise NotFoundError("Playlist not found")
    auth_utils.ensure_owner(playlist, current_user, message)
    return playlist

async def _shape_with_videos(conn, playlist: dict, viewer) -> dict:
    videos = await crud.get_playlist_videos(conn, playlist["id"], viewer)
    return read_models.shape_playlist(playlist, videos, viewer)

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_playlist(
    body: schemas.PlaylistCreate,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields("Playlist name is required", body.name)
    created = await crud.create_playlist(
        conn, body.name.strip(), (body.description or "").strip(), current_user["id"], is_public=body.visibility,
    )
    playlist = await crud.get_playlist(conn, created["id"])
    return schemas.respond(read_models.shape_playlist(playlist, [], current_user["id"]),
                           "Playlist created successfully", status.HTTP_201_CREATED)

@router.get("/user/{user_id}")
async def get_user_playlists(
    user_id: str,
    params: read_models.ListQuery = Depends(),
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    """Public playlists of a user; the owner also sees their private ones."""
    owner_uuid = parse_id(user_id, "User")
    if await crud.get_user_by_id(conn, owner_uuid) is None:
        raise NotFoundError("User not found")

    viewer = auth_utils.viewer_id(current_user)
    order_by, direction = params.order(crud.PLAYLIST_SORT_COLUMNS)
    rows, total = await crud.list_user_playlists(
        conn, owner_uuid,
        include_private=same_id(owner_uuid, viewer),
        search=params.search, order_by=order_by, direction=direction,
        limit=params.limit, offset=params.offset,
    )
    page = params.page_of([read_models.shape_playlist(row, viewer_id=viewer) for row in rows], total)
    return schemas.respond(page, "Playlists fetched successfully")

@router.get("/get/watch-later")
async def get_watch_later_videos(
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    playlist = await crud.find_watch_later(conn, current_user["id"])
    videos = []
    if playlist is not None:
        rows = await crud.get_playlist_videos(conn, playlist["id"], current_user["id"])
        videos = [read_models.shape_video(row, current_user["id"]) for row in rows]
    return schemas.respond(videos, "Watch later videos fetched successfully")

@router.post("/save/watch-later/{video_id}")
async def save_to_watch_later(
    video_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video = await auth_utils.visible_video(conn, video_id, current_user)
    playlist = await crud.get_or_create_watch_later(conn, current_user["id"])
    added = await crud.add_video_to_playlist(conn, playlist["id"], video["id"])
    result = "added" if added else "already_present"
    message = "Video saved to watch later" if added else "Video is already in watch later"
    return schemas.respond({"status": result, "playlistId": playlist["id"], "videoId": video["id"]}, message)

@router.delete("/remove/watch-later/{video_id}")
async def remove_from_watch_later(
    video_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video_uuid = parse_id(video_id, "Video")
    playlist = await crud.find_watch_later(conn, current_user["id"])
    removed = playlist is not None and await crud.remove_video_from_playlist(conn, playlist["id"], video_uuid)
    result = "removed" if removed else "not_present"
    message = "Video removed from watch later" if removed else "Video is not in watch later"
    return schemas.respond({"status": result, "videoId": video_uuid}, message)

@router.patch("/add/{video_id}/{playlist_id}")
async def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video = await auth_utils.visible_video(conn, video_id, current_user)
    playlist = await _owned_playlist(conn, playlist_id, current_user,
                                     "You are not allowed to add videos to this playlist")

    added = await crud.add_video_to_playlist(conn, playlist["id"], video["id"])
    data = await _shape_with_videos(conn, playlist, current_user["id"])
    data["status"] = "added" if added else "already_present"
    message = "Video added to playlist" if added else "Video is already in the playlist"
    return schemas.respond(data, message)

@router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video_uuid = parse_id(video_id, "Video")
    playlist = await _owned_playlist(conn, playlist_id, current_user,
                                     "You are not allowed to remove videos from this playlist")

    removed = await crud.remove_video_from_playlist(conn, playlist["id"], video_uuid)
    data = await _shape_with_videos(conn, playlist, current_user["id"])
    data["status"] = "removed" if removed else "not_present"
    message = "Video removed from playlist" if removed else "Video is not in the playlist"
    return schemas.respond(data, message)

@router.patch("/toggle/{playlist_id}")
async def toggle_playlist_visibility(
    playlist_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    playlist = await _owned_playlist(conn, playlist_id, current_user,
                                     "You are not allowed to change this playlist's visibility")
    if playlist["is_watch_later"]:
        raise BadRequestError("Watch later playlist is always private")

    updated = await crud.set_playlist_visibility(conn, playlist["id"], not playlist["is_public"])
    visibility = "public" if updated["is_public"] else "private"
    return schemas.respond({"visibility": updated["is_public"], "status": visibility},
                           f"Playlist is now {visibility}")

@router.get("/{playlist_id}")
async def get_playlist_by_id(
    playlist_id: str,
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    playlist_uuid = parse_id(playlist_id, "Playlist")
    playlist = await crud.get_playlist(conn, playlist_uuid)
    if playlist is None:
        raise NotFoundError("Playlist not found")

    viewer = auth_utils.viewer_id(current_user)
    if not read_models.can_view_playlist(playlist, viewer):
        raise UnauthorizedError("This playlist is private")
    return schemas.respond(await _shape_with_videos(conn, playlist, viewer), "Playlist fetched successfully")

@router.patch("/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    body: schemas.PlaylistUpdate,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields("Playlist name is required", body.name)
    playlist = await _owned_playlist(conn, playlist_id, current_user, "You are not allowed to update this playlist")
    if playlist["is_watch_later"]:
        raise BadRequestError("Watch later playlist cannot be edited")

    description = playlist["description"] if body.description is None else body.description.strip()
    await crud.update_playlist(conn, playlist["id"], body.name.strip(), description)
    updated = await crud.get_playlist(conn, playlist["id"])
    return schemas.respond(read_models.shape_playlist(updated, viewer_id=current_user["id"]),
                           "Playlist updated successfully")

@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    playlist = await _owned_playlist(conn, playlist_id, current_user, "You are not allowed to delete this playlist")
    await crud.delete_playlist(conn, playlist["id"])
    return schemas.respond({}, "Playlist deleted successfully")
