# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vidtube.config import settings
from vidtube.database import startup_database, shutdown_database
from vidtube.errors import register_exception_handlers
from vidtube.routers import (
    comments, dashboard, healthcheck, likes, playlists, subscriptions, tweets, users, videos,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await startup_database()
    logger.info("VidTube API started")
    yield

    await shutdown_database()

app = FastAPI(
    title="VidTube API",
    description="Video sharing backend: users, videos, comments, likes, subscriptions, playlists and tweets",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origin.split(",") if origin.strip()],
    allow_credentials=True,         # session cookies travel cross-origin
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(healthcheck.router, prefix=f"{API_PREFIX}/healthcheck", tags=["Healthcheck"])
app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["Users"])
app.include_router(videos.router, prefix=f"{API_PREFIX}/videos", tags=["Videos"])
app.include_router(comments.router, prefix=f"{API_PREFIX}/comments", tags=["Comments"])
app.include_router(likes.router, prefix=f"{API_PREFIX}/likes", tags=["Likes"])
app.include_router(subscriptions.router, prefix=f"{API_PREFIX}/subscriptions", tags=["Subscriptions"])
app.include_router(playlists.router, prefix=f"{API_PREFIX}/playlists", tags=["Playlists"])
app.include_router(tweets.router, prefix=f"{API_PREFIX}/tweets", tags=["Tweets"])
app.include_router(dashboard.router, prefix=f"{API_PREFIX}/dashboard", tags=["Dashboard"])
