# schemas.py
from typing import Annotated, Any, Optional

from pydantic import BaseModel, EmailStr, Field, StringConstraints

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# --- Envelope ---
class ApiResponse(BaseModel):
    statusCode: int
    data: Any = None
    message: str = "Success"
    success: bool = True


def respond(data: Any, message: str, status_code: int = 200) -> ApiResponse:
    """Wrap a payload in the uniform success envelope."""
    return ApiResponse(statusCode=status_code, data=data, message=message, success=status_code < 400)

# --- User Schemas ---
class UserLogin(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: NonBlank

class PasswordChange(BaseModel):
    oldPassword: NonBlank
    newPassword: NonBlank

class AccountUpdate(BaseModel):
    fullName: NonBlank
    username: NonBlank
    email: EmailStr

class RefreshTokenRequest(BaseModel):
    refreshToken: Optional[str] = None

# --- Comment / Tweet Schemas ---
class ContentBody(BaseModel):
    content: Optional[str] = None

# --- Playlist Schemas ---
class PlaylistCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = ""
    visibility: bool = True

class PlaylistUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None

# --- Auth Schemas ---
class TokenPair(BaseModel):
    accessToken: str
    refreshToken: str

class TokenData(BaseModel):
    user_id: Optional[str] = Field(default=None)
