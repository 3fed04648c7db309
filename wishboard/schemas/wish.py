"""Wish board Pydantic schemas — submissions, read models, controller snapshots."""

import enum
from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel


class WishCreate(BaseModel):
    """Body of ``POST /api/wishes``."""
    text: str


class CommentCreate(BaseModel):
    """Body of ``POST /api/wishes/{wish_id}/comments``."""
    text: str


class WishOut(BaseModel):
    """A wish with the stats derived for the requesting device."""
    id: int
    text: str
    created_at: Optional[datetime] = None
    likes: int = 0
    comments: int = 0
    is_liked: bool = False
    # Set when a stat query failed and the numbers above are defaults.
    degraded: bool = False

    model_config = {"from_attributes": True, "frozen": True}


class CommentOut(BaseModel):
    id: int
    wish_id: int
    text: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "frozen": True}


class FeedState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    SUBMITTING = "submitting"


class FeedSnapshot(BaseModel):
    """Read-only view of the wish feed controller."""
    state: FeedState
    wishes: Tuple[WishOut, ...] = ()
    confirmation: bool = False

    model_config = {"frozen": True}


class ThreadSnapshot(BaseModel):
    """Read-only view of the comment thread controller."""
    wish_id: Optional[int] = None
    comments: Tuple[CommentOut, ...] = ()

    model_config = {"frozen": True}


class DeviceOut(BaseModel):
    device_id: str
    tracking: bool
