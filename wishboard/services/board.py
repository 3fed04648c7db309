"""
Board controllers — the wish feed and the comment thread.

Both hold their own state and hand out read-only snapshots. Every write is
followed by a full reload so the store stays the source of truth; local
optimistic patches only bridge the gap until that reload lands.
"""

import asyncio
import logging
from typing import Dict, Hashable, Optional, Sequence, Set, Tuple

from wishboard.exceptions import (
    InvalidText,
    NoWishSelected,
    StoreError,
    SubmissionInProgress,
)
from wishboard.models.comment import Comment
from wishboard.models.wish import Wish
from wishboard.schemas.wish import CommentOut, FeedSnapshot, FeedState, ThreadSnapshot, WishOut
from wishboard.services.store import WishStats, WishStore

logger = logging.getLogger(__name__)


def clean_text(text: Optional[str], max_length: int) -> str:
    """Trim submitted text and reject it when empty or too long."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise InvalidText()
    if len(cleaned) > max_length:
        raise InvalidText(f"Text must be at most {max_length} characters")
    return cleaned


class SubmissionRegistry:
    """Devices with a wish submission still running.

    One registry is shared by every request of the app, so a controller
    built for a later request still sees the earlier one's submission.
    Claims happen without an ``await`` in between, which keeps them atomic
    on the event loop.
    """

    def __init__(self):
        self._active: Set[Hashable] = set()

    def claim(self, key: Hashable) -> bool:
        if key in self._active:
            return False
        self._active.add(key)
        return True

    def release(self, key: Hashable) -> None:
        self._active.discard(key)

    def is_active(self, key: Hashable) -> bool:
        return key in self._active


class WishFeedController:
    """Owns the feed: loading, wish submission and like toggling."""

    def __init__(
        self,
        store: WishStore,
        device_id: str,
        *,
        submissions: Optional[SubmissionRegistry] = None,
        confirmation_delay: float = 0.0,
        max_text_length: int = 500,
        batch_aggregation: bool = True,
    ):
        self._store = store
        self.device_id = device_id
        self._submissions = submissions if submissions is not None else SubmissionRegistry()
        # Untracked devices cannot be told apart; each controller guards only itself.
        self._submission_key: Hashable = device_id or object()
        self._confirmation_delay = confirmation_delay
        self._max_text_length = max_text_length
        self._batch_aggregation = batch_aggregation

        self._state = FeedState.IDLE
        self._wishes: Tuple[WishOut, ...] = ()

    @property
    def submitting(self) -> bool:
        """True while this device has a submission running, in any request."""
        return self._submissions.is_active(self._submission_key)

    @property
    def state(self) -> FeedState:
        return FeedState.SUBMITTING if self.submitting else self._state

    def snapshot(self) -> FeedSnapshot:
        return FeedSnapshot(
            state=self.state,
            wishes=self._wishes,
            confirmation=self.submitting,
        )

    def get(self, wish_id: int) -> Optional[WishOut]:
        return next((w for w in self._wishes if w.id == wish_id), None)

    # ── Loading ──

    async def load(self) -> FeedSnapshot:
        """Fetch every wish and its stats; a failed fetch leaves an empty feed."""
        if self._state is not FeedState.SUBMITTING:
            self._state = FeedState.LOADING
        await self._reload()
        if self._state is FeedState.LOADING:
            self._state = FeedState.LOADED
        return self.snapshot()

    async def _reload(self) -> None:
        try:
            wishes = await self._store.list_wishes()
        except StoreError:
            logger.error("Feed fetch failed, showing an empty board")
            self._wishes = ()
            return

        stats = await self._resolve_stats(wishes)
        self._wishes = tuple(
            self._to_view(wish, stats.get(wish.id, WishStats(degraded=True)))
            for wish in wishes
        )

    @staticmethod
    def _to_view(wish: Wish, stats: WishStats) -> WishOut:
        return WishOut(
            id=wish.id,
            text=wish.text,
            created_at=wish.created_at,
            likes=stats.likes,
            comments=stats.comments,
            is_liked=stats.is_liked,
            degraded=stats.degraded,
        )

    async def _resolve_stats(self, wishes: Sequence[Wish]) -> Dict[int, WishStats]:
        wish_ids = [wish.id for wish in wishes]
        if self._batch_aggregation:
            try:
                return await self._store.aggregate_stats(wish_ids, self.device_id)
            except StoreError:
                logger.warning("Batched stats failed, resolving %d wishes one by one", len(wish_ids))

        results = await asyncio.gather(*(self._stats_for(wish_id) for wish_id in wish_ids))
        return dict(zip(wish_ids, results))

    async def _stats_for(self, wish_id: int) -> WishStats:
        likes, is_liked, comments = await asyncio.gather(
            self._store.count_upvotes(wish_id),
            self._store.has_upvoted(wish_id, self.device_id),
            self._store.count_comments(wish_id),
            return_exceptions=True,
        )
        degraded = False
        if isinstance(likes, Exception) or isinstance(is_liked, Exception):
            logger.debug("Vote stats unavailable for wish %s", wish_id)
            likes, is_liked, degraded = 0, False, True
        if isinstance(comments, Exception):
            logger.debug("Comment count unavailable for wish %s", wish_id)
            comments, degraded = 0, True
        return WishStats(likes=likes, comments=comments, is_liked=is_liked, degraded=degraded)

    # ── Intents ──

    async def submit_wish(self, text: str) -> Wish:
        cleaned = clean_text(text, self._max_text_length)
        if not self._submissions.claim(self._submission_key):
            raise SubmissionInProgress()

        previous = self._state
        self._state = FeedState.SUBMITTING
        held = False
        try:
            wish = await self._store.create_wish(cleaned)
            await self._reload()
            self._state = FeedState.LOADED
            held = self._hold_confirmation()
        except StoreError:
            self._state = previous
            raise
        finally:
            if not held:
                self._submissions.release(self._submission_key)
        return wish

    def _hold_confirmation(self) -> bool:
        """
        Keep the device's claim for ``confirmation_delay`` seconds after a
        successful submission. Feeds loaded meanwhile report ``submitting``
        with the confirmation flag set, and new submissions are refused.
        The request itself returns straight away.
        """
        if self._confirmation_delay <= 0:
            return False
        asyncio.get_running_loop().call_later(
            self._confirmation_delay, self._submissions.release, self._submission_key
        )
        return True

    async def toggle_like(self, wish_id: int) -> Optional[WishOut]:
        """
        Flip the like locally, write it, then reload regardless of outcome.
        Returns the wish as it stands afterwards.
        """
        self._flip_like(wish_id)

        if not self.device_id:
            logger.info("No device identity, updating wish %s locally only", wish_id)
            return self.get(wish_id)

        try:
            await self._store.toggle_upvote(wish_id, self.device_id)
        finally:
            await self.load()
        return self.get(wish_id)

    def _flip_like(self, wish_id: int) -> None:
        self._wishes = tuple(
            wish.model_copy(update={
                "is_liked": not wish.is_liked,
                "likes": wish.likes - 1 if wish.is_liked else wish.likes + 1,
            })
            if wish.id == wish_id else wish
            for wish in self._wishes
        )


class CommentThreadController:
    """Owns the comment thread of the currently selected wish."""

    def __init__(self, store: WishStore, feed: WishFeedController, *, max_text_length: int = 500):
        self._store = store
        self._feed = feed
        self._max_text_length = max_text_length
        self._wish_id: Optional[int] = None
        self._comments: Tuple[CommentOut, ...] = ()

    @property
    def selected_wish_id(self) -> Optional[int]:
        return self._wish_id

    def snapshot(self) -> ThreadSnapshot:
        return ThreadSnapshot(wish_id=self._wish_id, comments=self._comments)

    async def select_wish(self, wish_id: int) -> ThreadSnapshot:
        self._wish_id = wish_id
        await self._reload()
        return self.snapshot()

    def deselect(self) -> None:
        self._wish_id = None
        self._comments = ()

    async def _reload(self) -> None:
        if self._wish_id is None:
            self._comments = ()
            return
        try:
            comments = await self._store.list_comments(self._wish_id)
        except StoreError:
            logger.error("Comment fetch failed for wish %s", self._wish_id)
            self._comments = ()
            return
        self._comments = tuple(CommentOut.model_validate(c) for c in comments)

    async def submit_comment(self, text: str) -> Comment:
        cleaned = clean_text(text, self._max_text_length)
        if self._wish_id is None:
            raise NoWishSelected()

        comment = await self._store.create_comment(self._wish_id, cleaned)
        await self._reload()
        # Refresh the comment badge on the wish.
        await self._feed.load()
        return comment
