# routers/users.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, Response, UploadFile, status
import psycopg

from vidtube import auth_utils, blob_storage, crud, read_models, schemas
from vidtube.database import get_db_connection
from vidtube.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from vidtube.validators import ensure_email, parse_id, require_fields

router = APIRouter()

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    fullName: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    coverImage: Optional[UploadFile] = File(None),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields("All fields are required", fullName, email, username, password)
    email = ensure_email(email)
    if not blob_storage.has_upload(avatar):
        raise BadRequestError("Avatar file is required")

    if await crud.get_user_by_username_or_email(conn, username=username, email=email):
        raise ConflictError("User with email or username already exists")

    avatar_url = await blob_storage.upload_file_to_blob(avatar, file_type="avatar")
    cover_image_url = ""
    if blob_storage.has_upload(coverImage):
        try:
            cover_image_url = await blob_storage.upload_file_to_blob(coverImage, file_type="cover-image")
        except Exception:
            await blob_storage.discard_blobs(avatar_url)
            raise

    try:
        user = await crud.create_user(
            conn,
            full_name=fullName,
            username=username,
            email=email,
            hashed_password=auth_utils.get_password_hash(password),
            avatar=avatar_url,
            cover_image=cover_image_url,
        )
    except ValueError as e:
        await blob_storage.discard_blobs(avatar_url, cover_image_url)
        raise ConflictError(str(e))
    except Exception:
        await blob_storage.discard_blobs(avatar_url, cover_image_url)
        raise
    return schemas.respond(read_models.shape_user(user), "User registered successfully", status.HTTP_201_CREATED)

@router.post("/login")
async def login_user(
    credentials: schemas.UserLogin,
    response: Response,
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    if not credentials.username and not credentials.email:
        raise BadRequestError("Username or email is required")

    user = await crud.get_user_by_username_or_email(conn, username=credentials.username, email=credentials.email)
    if user is None:
        raise NotFoundError("User does not exist")
    if not auth_utils.verify_password(credentials.password, user["hashed_password"]):
        raise UnauthorizedError("Invalid user credentials")

    tokens = await auth_utils.issue_tokens(conn, user)
    auth_utils.set_auth_cookies(response, tokens)
    return schemas.respond(
        {"user": read_models.shape_user(user), **tokens},
        "User logged in successfully",
    )

@router.post("/logout")
async def logout_user(
    response: Response,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    await crud.set_refresh_token(conn, current_user["id"], None)
    auth_utils.clear_auth_cookies(response)
    return schemas.respond({}, "User logged out")

@router.post("/refresh-token")
async def refresh_access_token(
    request: Request,
    response: Response,
    body: Optional[schemas.RefreshTokenRequest] = None,
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    """Trade a valid refresh token for a new token pair; the old refresh token stops working."""
    incoming = request.cookies.get("refreshToken") or (body.refreshToken if body else None)
    if not incoming:
        raise UnauthorizedError("Unauthorized request")

    user_id = auth_utils.decode_refresh_token(incoming)
    user = await crud.get_user_by_id(conn, user_id)
    if user is None:
        raise UnauthorizedError("Invalid refresh token")
    if incoming != user["refresh_token"]:
        raise UnauthorizedError("Refresh token is expired or used")

    tokens = await auth_utils.issue_tokens(conn, user)
    auth_utils.set_auth_cookies(response, tokens)
    return schemas.respond(tokens, "Access token refreshed")

@router.post("/change-password")
async def change_password(
    passwords: schemas.PasswordChange,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    user = await crud.get_user_by_id(conn, current_user["id"])
    if user is None or not auth_utils.verify_password(passwords.oldPassword, user["hashed_password"]):
        raise BadRequestError("Invalid old password")

    await crud.update_password(conn, user["id"], auth_utils.get_password_hash(passwords.newPassword))
    return schemas.respond({}, "Password changed successfully")

@router.get("/current-user")
async def get_current_user(current_user: dict = Depends(auth_utils.get_current_user)):
    return schemas.respond(read_models.shape_user(current_user), "User fetched successfully")

@router.patch("/update-account")
async def update_account_details(
    details: schemas.AccountUpdate,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    try:
        user = await crud.update_account(
            conn, current_user["id"],
            full_name=details.fullName, username=details.username, email=str(details.email),
        )
    except ValueError as e:
        raise ConflictError(str(e))
    return schemas.respond(read_models.shape_user(user), "Account details updated successfully")

async def _replace_user_image(conn, current_user: dict, file: Optional[UploadFile], column: str,
                              label: str, background_tasks: BackgroundTasks) -> dict:
    if not blob_storage.has_upload(file):
        raise BadRequestError(f"{label} file is missing")
    url = await blob_storage.upload_file_to_blob(file, file_type=column.replace("_", "-"))
    user = await crud.update_user_image(conn, current_user["id"], column, url)
    background_tasks.add_task(blob_storage.delete_blob, current_user.get(column))
    return read_models.shape_user(user)

@router.patch("/update-avatar")
async def update_user_avatar(
    background_tasks: BackgroundTasks,
    avatar: Optional[UploadFile] = File(None),
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    user = await _replace_user_image(conn, current_user, avatar, "avatar", "Avatar", background_tasks)
    return schemas.respond(user, "Avatar image updated successfully")

@router.patch("/update-cover-img")
async def update_user_cover_image(
    background_tasks: BackgroundTasks,
    coverImage: Optional[UploadFile] = File(None),
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    user = await _replace_user_image(conn, current_user, coverImage, "cover_image", "Cover image", background_tasks)
    return schemas.respond(user, "Cover image updated successfully")

@router.get("/channel/{username}")
async def get_user_channel_profile(
    username: str,
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    """Public channel page; isSubscribed is relative to the caller, false when anonymous."""
    require_fields("Username is missing", username)
    channel = await crud.get_channel_profile(conn, username)
    if channel is None:
        raise NotFoundError("Channel does not exist")
    return schemas.respond(
        read_models.shape_channel(channel, auth_utils.viewer_id(current_user)),
        "User channel fetched successfully",
    )

@router.get("/watch-history")
async def get_watch_history(
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    rows = await crud.get_watch_history(conn, current_user["id"])
    return schemas.respond(
        [read_models.shape_history_entry(row) for row in rows],
        "Watch history fetched successfully",
    )

@router.patch("/watch-history")
async def clear_watch_history(
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    await crud.clear_watch_history(conn, current_user["id"])
    return schemas.respond({}, "Watch history cleared successfully")

@router.patch("/watch-history/{video_id}")
async def remove_video_from_watch_history(
    video_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    video_uuid = parse_id(video_id, "Video")
    await crud.remove_from_watch_history(conn, current_user["id"], video_uuid)
    return schemas.respond({}, "Video removed from watch history")
