# auth_utils.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
import psycopg

from vidtube import crud, read_models, schemas
from vidtube.config import (
    ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET, ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_EXPIRE_DAYS, settings,
)
from vidtube.database import get_db_connection
from vidtube.errors import NotFoundError, UnauthorizedError
from vidtube.validators import is_valid_id, parse_id, same_id

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error=False so a missing header can fall through to the cookie, or to anonymous
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/users/login", auto_error=False)

CREDENTIAL_FIELDS = ("hashed_password", "refresh_token")

def verify_password(plain_password, hashed_password):
    """Verify a plain password against a hashed password"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    """Hash a password"""
    return pwd_context.hash(password)

def _encode(claims: dict, secret: str, expires_delta: timedelta) -> str:
    to_encode = claims.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)

def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Short-lived token identifying the user on every request"""
    claims = {
        "sub": str(user["id"]),
        "username": user["username"],
        "email": user["email"],
        "fullName": user["full_name"],
    }
    return _encode(claims, ACCESS_TOKEN_SECRET, expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

def create_refresh_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Long-lived token, persisted on the user row and rotated on each refresh"""
    return _encode({"sub": str(user["id"])}, REFRESH_TOKEN_SECRET,
                   expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))

def _decode_subject(token: str, secret: str, message: str) -> str:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedError(message)
    token_data = schemas.TokenData(user_id=payload.get("sub"))
    if not is_valid_id(token_data.user_id):
        raise UnauthorizedError(message)
    return token_data.user_id

def decode_access_token(token: str) -> str:
    return _decode_subject(token, ACCESS_TOKEN_SECRET, "Invalid access token")

def decode_refresh_token(token: str) -> str:
    return _decode_subject(token, REFRESH_TOKEN_SECRET, "Invalid refresh token")

def strip_credentials(user: Optional[dict]) -> Optional[dict]:
    if user is None:
        return None
    return {key: value for key, value in user.items() if key not in CREDENTIAL_FIELDS}

def extract_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    """The accessToken cookie wins over the Authorization header"""
    return request.cookies.get("accessToken") or bearer

async def _resolve_user(token: str, conn: psycopg.AsyncConnection) -> dict:
    user_id = decode_access_token(token)
    user = await crud.get_user_by_id(conn, user_id)
    if user is None:
        raise UnauthorizedError("Invalid access token")
    return strip_credentials(user)

async def get_current_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
) -> dict:
    """Required authentication: no token or a bad token is a 401"""
    token = extract_token(request, bearer)
    if not token:
        raise UnauthorizedError("Unauthorized request")
    return await _resolve_user(token, conn)

async def get_optional_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
) -> Optional[dict]:
    """Optional authentication: no token means anonymous, a bad token is still a 401"""
    token = extract_token(request, bearer)
    if not token:
        return None
    return await _resolve_user(token, conn)

def viewer_id(user: Optional[dict]):
    return user["id"] if user else None

def ensure_owner(entity: dict, current_user: Optional[dict], message: str, field: str = "owner_id") -> None:
    """Any row with an owner column can be checked here; mismatch is a 401."""
    if not same_id(entity.get(field), viewer_id(current_user)):
        raise UnauthorizedError(message)

async def issue_tokens(conn: psycopg.AsyncConnection, user: dict) -> dict:
    """Create a fresh token pair and persist the refresh token, replacing any previous one."""
    tokens = schemas.TokenPair(
        accessToken=create_access_token(user),
        refreshToken=create_refresh_token(user),
    )
    await crud.set_refresh_token(conn, user["id"], tokens.refreshToken)
    return tokens.model_dump()

def _cookie_options() -> dict:
    if settings.cookie_secure:
        return {"httponly": True, "secure": True, "samesite": "none"}
    return {"httponly": True, "secure": False, "samesite": "lax"}

def set_auth_cookies(response: Response, tokens: dict) -> None:
    options = _cookie_options()
    response.set_cookie("accessToken", tokens["accessToken"], **options)
    response.set_cookie("refreshToken", tokens["refreshToken"], **options)

def clear_auth_cookies(response: Response) -> None:
    options = _cookie_options()
    response.delete_cookie("accessToken", **options)
    response.delete_cookie("refreshToken", **options)

async def visible_video(conn: psycopg.AsyncConnection, video_id: str, current_user: Optional[dict],
                        fetcher: str = "get_video") -> dict:
    """Fetch a video the caller may see. A draft looks missing to everyone but its owner."""
    video_uuid = parse_id(video_id, "Video")
    video = await getattr(crud, fetcher)(conn, video_uuid)
    if video is None or not read_models.can_view_video(video, viewer_id(current_user)):
        raise NotFoundError("Video not found")
    return video
