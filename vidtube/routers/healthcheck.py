# routers/healthcheck.py
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from vidtube import schemas

router = APIRouter()

STARTED_AT = time.monotonic()

@router.get("/")
async def healthcheck():
    return schemas.respond(
        {
            "uptime": round(time.monotonic() - STARTED_AT, 3),
            "message": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "Health check passed",
    )
