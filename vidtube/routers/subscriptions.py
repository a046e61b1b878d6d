# routers/subscriptions.py
from fastapi import APIRouter, Depends
import psycopg

from vidtube import auth_utils, crud, read_models, schemas
from vidtube.database import get_db_connection
from vidtube.errors import BadRequestError, NotFoundError
from vidtube.validators import parse_id, same_id

router = APIRouter()

@router.post("/c/{channel_id}")
async def toggle_subscription(
    channel_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    channel_uuid = parse_id(channel_id, "Channel")
    if same_id(channel_uuid, current_user["id"]):
        raise BadRequestError("You cannot subscribe to your own channel")
    if await crud.get_user_by_id(conn, channel_uuid) is None:
        raise NotFoundError("Channel not found")

    subscription = None
    if await crud.delete_subscription(conn, current_user["id"], channel_uuid):
        result = "removed"
    else:
        subscription = await crud.create_subscription(conn, current_user["id"], channel_uuid)
        result = "added"

    data = {
        "status": result,
        "isSubscribed": result == "added",
        "subscription": read_models.shape_subscription(subscription) if subscription else None,
    }
    message = "Subscribed successfully" if result == "added" else "Unsubscribed successfully"
    return schemas.respond(data, message)

@router.get("/c/{channel_id}")
async def get_channel_subscribers(
    channel_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    channel_uuid = parse_id(channel_id, "Channel")
    if await crud.get_user_by_id(conn, channel_uuid) is None:
        raise NotFoundError("Channel not found")

    rows = await crud.get_channel_subscribers(conn, channel_uuid)
    subscribers = [read_models.shape_subscriber(row) for row in rows]
    return schemas.respond({"subscribers": subscribers, "subscribersCount": len(subscribers)},
                           "Subscribers fetched successfully")

@router.get("/u/{subscriber_id}")
async def get_subscribed_channels(
    subscriber_id: str,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: psycopg.AsyncConnection = Depends(get_db_connection)
):
    subscriber_uuid = parse_id(subscriber_id, "Subscriber")
    if await crud.get_user_by_id(conn, subscriber_uuid) is None:
        raise NotFoundError("User not found")

    rows = await crud.get_subscribed_channels(conn, subscriber_uuid)
    channels = [read_models.shape_subscribed_channel(row) for row in rows]
    return schemas.respond({"subscribedChannels": channels, "channelsCount": len(channels)},
                           "Subscribed channels fetched successfully")
