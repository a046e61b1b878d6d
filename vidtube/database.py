# database.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import psycopg
from psycopg_pool import AsyncConnectionPool

from vidtube.config import DATABASE_URL

logger = logging.getLogger(__name__)

class DatabaseManager:
    def __init__(self, conninfo: str = DATABASE_URL):
        self.conninfo = conninfo
        self.pool: AsyncConnectionPool | None = None

    async def create_pool(self):
        """Create a connection pool to PostgreSQL using psycopg (async)"""
        if self.pool is not None:
            return self.pool

        try:
            self.pool = AsyncConnectionPool(
                conninfo=self.conninfo,
                min_size=1,
                max_size=10,
                open=False
            )
            await self.pool.open()
            logger.info("Database connection pool created")
            return self.pool
        except Exception:
            logger.exception("Failed to create database pool")
            self.pool = None
            raise

    async def close_pool(self):
        """Close the connection pool"""
        if self.pool:
            await self.pool.close()
            logger.info("Database connection pool closed")
            self.pool = None

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Get a database connection from the pool"""
        if not self.pool:
            await self.create_pool()

        async with self.pool.connection() as conn:
            yield conn

# Global database manager instance
db_manager = DatabaseManager()

# Dependency function for FastAPI
async def get_db_connection():
    async with db_manager.get_connection() as conn:
        yield conn

SCHEMA_STATEMENTS = (
    '''
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        username VARCHAR(255) UNIQUE NOT NULL,
        email VARCHAR(255) UNIQUE NOT NULL,
        full_name VARCHAR(255) NOT NULL,
        hashed_password VARCHAR(255) NOT NULL,
        avatar VARCHAR(500) NOT NULL,
        cover_image VARCHAR(500) DEFAULT '' NOT NULL,
        refresh_token TEXT,
        created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        updated_at TIMESTAMPTZ DEFAULT now() NOT NULL
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS videos (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        title VARCHAR(255) NOT NULL,
        description TEXT NOT NULL,
        video_file VARCHAR(500) NOT NULL,
        thumbnail VARCHAR(500) NOT NULL,
        duration DOUBLE PRECISION DEFAULT 0 NOT NULL,
        views BIGINT DEFAULT 0 NOT NULL,
        is_published BOOLEAN DEFAULT TRUE NOT NULL,
        owner_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        updated_at TIMESTAMPTZ DEFAULT now() NOT NULL
    );
    ''',
    # No FK on video_id: entries for deleted videos are dropped when history is read.
    '''
    CREATE TABLE IF NOT EXISTS watch_history (
        id BIGSERIAL PRIMARY KEY,
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        video_id UUID NOT NULL,
        watched_at TIMESTAMPTZ DEFAULT now() NOT NULL
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS comments (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        content TEXT NOT NULL,
        video_id UUID NOT NULL REFERENCES videos(id),
        owner_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        updated_at TIMESTAMPTZ DEFAULT now() NOT NULL
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS tweets (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        content TEXT NOT NULL,
        owner_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        updated_at TIMESTAMPTZ DEFAULT now() NOT NULL
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS likes (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        video_id UUID REFERENCES videos(id),
        comment_id UUID REFERENCES comments(id),
        tweet_id UUID REFERENCES tweets(id),
        liked_by UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        updated_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        CHECK (num_nonnulls(video_id, comment_id, tweet_id) = 1)
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS subscriptions (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        subscriber_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        channel_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        updated_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        UNIQUE (subscriber_id, channel_id),
        CHECK (subscriber_id <> channel_id)
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS playlists (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name VARCHAR(255) NOT NULL,
        description TEXT DEFAULT '' NOT NULL,
        is_public BOOLEAN DEFAULT TRUE NOT NULL,
        is_watch_later BOOLEAN DEFAULT FALSE NOT NULL,
        owner_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        updated_at TIMESTAMPTZ DEFAULT now() NOT NULL
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS playlist_videos (
        playlist_id UUID NOT NULL REFERENCES playlists(id) ON DELETE CASCADE,
        video_id UUID NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
        position BIGSERIAL,
        added_at TIMESTAMPTZ DEFAULT now() NOT NULL,
        PRIMARY KEY (playlist_id, video_id)
    );
    ''',
)

INDEX_STATEMENTS = (
    'CREATE INDEX IF NOT EXISTS idx_videos_owner_id ON videos(owner_id);',
    'CREATE INDEX IF NOT EXISTS idx_videos_created_at ON videos(created_at DESC);',
    'CREATE INDEX IF NOT EXISTS idx_comments_video_id ON comments(video_id);',
    'CREATE INDEX IF NOT EXISTS idx_tweets_owner_id ON tweets(owner_id);',
    'CREATE INDEX IF NOT EXISTS idx_watch_history_user ON watch_history(user_id, watched_at DESC);',
    'CREATE INDEX IF NOT EXISTS idx_subscriptions_channel ON subscriptions(channel_id);',
    'CREATE INDEX IF NOT EXISTS idx_playlists_owner_id ON playlists(owner_id);',
    # One like per (liker, target) and one Watch Later playlist per user.
    'CREATE UNIQUE INDEX IF NOT EXISTS uq_likes_video ON likes(liked_by, video_id) WHERE video_id IS NOT NULL;',
    'CREATE UNIQUE INDEX IF NOT EXISTS uq_likes_comment ON likes(liked_by, comment_id) WHERE comment_id IS NOT NULL;',
    'CREATE UNIQUE INDEX IF NOT EXISTS uq_likes_tweet ON likes(liked_by, tweet_id) WHERE tweet_id IS NOT NULL;',
    'CREATE UNIQUE INDEX IF NOT EXISTS uq_playlists_watch_later ON playlists(owner_id) WHERE is_watch_later;',
)

# Initialize database tables
async def create_tables(manager: DatabaseManager = db_manager):
    """Create all necessary tables"""
    async with manager.get_connection() as conn:
        for statement in SCHEMA_STATEMENTS + INDEX_STATEMENTS:
            await conn.execute(statement)
        await conn.commit()
        logger.info("Database tables created/verified successfully")

# Startup and shutdown events
async def startup_database():
    """Initialize database on startup"""
    await db_manager.create_pool()
    await create_tables()

async def shutdown_database():
    """Cleanup database connections on shutdown"""
    await db_manager.close_pool()
