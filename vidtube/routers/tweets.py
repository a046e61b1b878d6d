# routers/tweets.py
from typing import Optional

from fastapi import APIRouter, Depends, status
import psycopg

from vidtube import auth_utils, crud, read_models, schemas
from vidtube.database import get_db_connection
from vidtube.errors import NotFoundError
from vidtube.validators import parse_id, require_fields

router = APIRouter()

EMPTY_TWEET = "Tweet content is required"

async def _owned_tweet(conn, tweet_id: str, current_user: dict, message: str):
    tweet_uuid = parse_id(tweet_id, "Tweet")
    tweet = await crud.get_tweet(conn, tweet_uuid)
    if tweet is None:
        raise NotFoundError("Tweet not found")
    auth_utils.ensure_owner(tweet, current_user, message)
    return tweet_uuid

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_tweet(
    body: schemas.ContentBody,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields(EMPTY_TWEET, body.content)
    tweet = await crud.create_tweet(conn, body.content.strip(), current_user["id"])
    detail = await crud.get_tweet_detail(conn, tweet["id"])
    return schemas.respond(read_models.shape_tweet(detail, current_user["id"]),
                           "Tweet created successfully", status.HTTP_201_CREATED)

@router.get("/user/{user_id}")
async def get_user_tweets(
    user_id: str,
    params: read_models.ListQuery = Depends(),
    current_user: Optional[dict] = Depends(auth_utils.get_optional_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    owner_uuid = parse_id(user_id, "User")
    if await crud.get_user_by_id(conn, owner_uuid) is None:
        raise NotFoundError("User not found")

    viewer = auth_utils.viewer_id(current_user)
    order_by, direction = params.order(crud.TWEET_SORT_COLUMNS)
    rows, total = await crud.list_user_tweets(
        conn, owner_uuid,
        search=params.search, order_by=order_by, direction=direction,
        limit=params.limit, offset=params.offset,
    )
    page = params.page_of([read_models.shape_tweet(row, viewer) for row in rows], total)
    return schemas.respond(page, "Tweets fetched successfully")

@router.patch("/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    body: schemas.ContentBody,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    require_fields(EMPTY_TWEET, body.content)
    tweet_uuid = await _owned_tweet(conn, tweet_id, current_user, "You are not allowed to update this tweet")
    await crud.update_tweet(conn, tweet_uuid, body.content.strip())
    detail = await crud.get_tweet_detail(conn, tweet_uuid)
    return schemas.respond(read_models.shape_tweet(detail, current_user["id"]), "Tweet updated successfully")

@router.delete("/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    tweet_uuid = await _owned_tweet(conn, tweet_id, current_user, "You are not allowed to delete this tweet")
    await crud.delete_tweet(conn, tweet_uuid)
    return schemas.respond({}, "Tweet deleted successfully")
