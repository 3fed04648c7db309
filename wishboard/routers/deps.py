"""Shared FastAPI dependencies — store, device identity and the board controllers."""

from fastapi import Depends, Request

from wishboard.config import settings
from wishboard.database import async_session
from wishboard.services.board import CommentThreadController, SubmissionRegistry, WishFeedController
from wishboard.services.store import WishStore


def get_store() -> WishStore:
    return WishStore(async_session)


def get_device_id(request: Request) -> str:
    """Device identifier resolved by the identity middleware ("" when untracked)."""
    return getattr(request.state, "device_id", "")


def get_submissions(request: Request) -> SubmissionRegistry:
    """The app-wide registry of in-flight wish submissions."""
    return request.app.state.submissions


def get_feed(
    store: WishStore = Depends(get_store),
    device_id: str = Depends(get_device_id),
    submissions: SubmissionRegistry = Depends(get_submissions),
) -> WishFeedController:
    return WishFeedController(
        store,
        device_id,
        submissions=submissions,
        confirmation_delay=settings.CONFIRMATION_DELAY_SECONDS,
        max_text_length=settings.MAX_TEXT_LENGTH,
        batch_aggregation=settings.BATCH_AGGREGATION,
    )


def get_thread(
    store: WishStore = Depends(get_store),
    feed: WishFeedController = Depends(get_feed),
) -> CommentThreadController:
    return CommentThreadController(store, feed, max_text_length=settings.MAX_TEXT_LENGTH)
