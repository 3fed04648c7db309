"""
JSON API router — the board intents for script and XHR clients.

Endpoints:
    GET  /api/device                     → this browser's device identity
    GET  /api/wishes                     → feed snapshot, newest first
    POST /api/wishes                     → submit a wish
    POST /api/wishes/{wish_id}/like      → toggle this device's like
    GET  /api/wishes/{wish_id}/comments  → thread snapshot for a wish
    POST /api/wishes/{wish_id}/comments  → comment on a wish
"""

from fastapi import APIRouter, Depends, status

from wishboard.exceptions import WishNotFound
from wishboard.routers.deps import get_device_id, get_feed, get_thread
from wishboard.schemas.wish import (
    CommentCreate,
    CommentOut,
    DeviceOut,
    FeedSnapshot,
    ThreadSnapshot,
    WishCreate,
    WishOut,
)
from wishboard.services.board import CommentThreadController, WishFeedController

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/device", response_model=DeviceOut)
async def read_device(device_id: str = Depends(get_device_id)):
    return DeviceOut(device_id=device_id, tracking=bool(device_id))


@router.get("/wishes", response_model=FeedSnapshot)
async def list_wishes(feed: WishFeedController = Depends(get_feed)):
    return await feed.load()


@router.post("/wishes", response_model=WishOut, status_code=status.HTTP_201_CREATED)
async def create_wish(
    payload: WishCreate,
    feed: WishFeedController = Depends(get_feed),
):
    """Submit a wish and return it with its (fresh) stats."""
    wish = await feed.submit_wish(payload.text)
    return feed.get(wish.id) or WishOut.model_validate(wish)


@router.post("/wishes/{wish_id}/like", response_model=WishOut)
async def toggle_like(
    wish_id: int,
    feed: WishFeedController = Depends(get_feed),
):
    await feed.load()
    wish = await feed.toggle_like(wish_id)
    if wish is None:
        raise WishNotFound(wish_id)
    return wish


@router.get("/wishes/{wish_id}/comments", response_model=ThreadSnapshot)
async def list_comments(
    wish_id: int,
    thread: CommentThreadController = Depends(get_thread),
):
    return await thread.select_wish(wish_id)


@router.post(
    "/wishes/{wish_id}/comments",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    wish_id: int,
    payload: CommentCreate,
    thread: CommentThreadController = Depends(get_thread),
):
    await thread.select_wish(wish_id)
    comment = await thread.submit_comment(payload.text)
    return CommentOut.model_validate(comment)
