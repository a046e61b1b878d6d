# validators.py
import uuid
from typing import Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from vidtube.errors import BadRequestError


def is_valid_id(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def parse_id(value: Optional[str], label: str) -> uuid.UUID:
    """Turn a path id into a UUID or reject the request before the store is touched."""
    if not is_valid_id(value):
        raise BadRequestError(f"{label} id is missing or invalid")
    return uuid.UUID(str(value))


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def require_fields(message: str, *values) -> None:
    if any(is_blank(value) for value in values):
        raise BadRequestError(message)


def same_id(left, right) -> bool:
    """Ids come back from psycopg as UUID objects and from tokens as strings."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


_email_adapter = TypeAdapter(EmailStr)


def ensure_email(value: str) -> str:
    try:
        return str(_email_adapter.validate_python(value.strip()))
    except ValidationError:
        raise BadRequestError("Email is invalid")


def parse_duration(value) -> float:
    """Seconds, as sent by the uploader; unusable values count as zero."""
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return 0.0
    return duration if duration > 0 else 0.0
