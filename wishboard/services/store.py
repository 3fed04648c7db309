"""Data access for the wish board — filtered reads and writes against the hosted store.

Every call opens its own session, so independent calls can be awaited
together. Store failures are logged and re-raised as ``StoreError``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Sequence

from pydantic import BaseModel
from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wishboard.exceptions import StoreError, WishNotFound
from wishboard.models.comment import Comment
from wishboard.models.vote import Vote, VoteType
from wishboard.models.wish import Wish

logger = logging.getLogger(__name__)

UPVOTE = VoteType.UPVOTE.value


class WishStats(BaseModel):
    """Derived stats for one wish; ``degraded`` marks defaults standing in for a failed query."""
    likes: int = 0
    comments: int = 0
    is_liked: bool = False
    degraded: bool = False

    model_config = {"frozen": True}


class WishStore:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessions() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.error("Error %s: %s", action, exc)
            raise StoreError() from exc

    @staticmethod
    async def _require_wish(db: AsyncSession, wish_id: int) -> None:
        result = await db.execute(select(Wish.id).where(Wish.id == wish_id))
        if result.scalar_one_or_none() is None:
            raise WishNotFound(wish_id)

    # ── Wishes ──

    async def list_wishes(self) -> List[Wish]:
        """All wishes, newest first. No pagination."""
        async with self._session("fetching wishes") as db:
            result = await db.execute(
                select(Wish).order_by(desc(Wish.created_at), desc(Wish.id))
            )
            return list(result.scalars().all())

    async def create_wish(self, text: str) -> Wish:
        async with self._session("submitting wish") as db:
            wish = Wish(text=text)
            db.add(wish)
            await db.commit()
            await db.refresh(wish)
            return wish

    # ── Votes ──

    async def count_upvotes(self, wish_id: int) -> int:
        async with self._session(f"counting upvotes for wish {wish_id}") as db:
            result = await db.execute(
                select(func.count(Vote.id)).where(
                    Vote.wish_id == wish_id,
                    Vote.type == UPVOTE,
                )
            )
            return result.scalar() or 0

    async def has_upvoted(self, wish_id: int, voter_id: str) -> bool:
        if not voter_id:
            return False
        async with self._session(f"checking upvote on wish {wish_id}") as db:
            result = await db.execute(
                select(Vote.id)
                .where(
                    Vote.wish_id == wish_id,
                    Vote.client_id == voter_id,
                    Vote.type == UPVOTE,
                )
                .limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def toggle_upvote(self, wish_id: int, voter_id: str) -> bool:
        """
        Remove this device's upvote if present, otherwise add one.
        Returns True when the wish ends up liked by ``voter_id``.
        """
        if not voter_id:
            raise ValueError("voter_id is required to toggle an upvote")

        async with self._session(f"toggling upvote on wish {wish_id}") as db:
            own_vote = (
                Vote.wish_id == wish_id,
                Vote.client_id == voter_id,
                Vote.type == UPVOTE,
            )
            existing = await db.execute(select(Vote.id).where(*own_vote).limit(1))
            if existing.scalar_one_or_none() is not None:
                await db.execute(delete(Vote).where(*own_vote))
                await db.commit()
                return False

            await self._require_wish(db, wish_id)
            db.add(Vote(wish_id=wish_id, client_id=voter_id, type=UPVOTE))
            try:
                await db.commit()
            except IntegrityError:
                # A concurrent toggle from the same device inserted first.
                await db.rollback()
                logger.info("Upvote on wish %s already recorded for this device", wish_id)
            return True

    # ── Comments ──

    async def count_comments(self, wish_id: int) -> int:
        async with self._session(f"counting comments for wish {wish_id}") as db:
            result = await db.execute(
                select(func.count(Comment.id)).where(Comment.wish_id == wish_id)
            )
            return result.scalar() or 0

    async def list_comments(self, wish_id: int) -> List[Comment]:
        """Comments on one wish, newest first."""
        async with self._session(f"fetching comments for wish {wish_id}") as db:
            result = await db.execute(
                select(Comment)
                .where(Comment.wish_id == wish_id)
                .order_by(desc(Comment.created_at), desc(Comment.id))
            )
            return list(result.scalars().all())

    async def create_comment(self, wish_id: int, text: str) -> Comment:
        async with self._session(f"submitting comment on wish {wish_id}") as db:
            await self._require_wish(db, wish_id)
            comment = Comment(wish_id=wish_id, text=text)
            db.add(comment)
            await db.commit()
            await db.refresh(comment)
            return comment

    # ── Aggregation ──

    async def aggregate_stats(self, wish_ids: Sequence[int], voter_id: str) -> Dict[int, WishStats]:
        """Likes, comment counts and liked-by-device for many wishes in one round."""
        if not wish_ids:
            return {}

        async with self._session("aggregating wish stats") as db:
            likes_result = await db.execute(
                select(Vote.wish_id, func.count(Vote.id))
                .where(Vote.wish_id.in_(wish_ids), Vote.type == UPVOTE)
                .group_by(Vote.wish_id)
            )
            likes = {wish_id: count for wish_id, count in likes_result.all()}

            comments_result = await db.execute(
                select(Comment.wish_id, func.count(Comment.id))
                .where(Comment.wish_id.in_(wish_ids))
                .group_by(Comment.wish_id)
            )
            comments = {wish_id: count for wish_id, count in comments_result.all()}

            liked = set()
            if voter_id:
                liked_result = await db.execute(
                    select(Vote.wish_id).where(
                        Vote.wish_id.in_(wish_ids),
                        Vote.client_id == voter_id,
                        Vote.type == UPVOTE,
                    )
                )
                liked = set(liked_result.scalars().all())

        return {
            wish_id: WishStats(
                likes=likes.get(wish_id, 0),
                comments=comments.get(wish_id, 0),
                is_liked=wish_id in liked,
            )
            for wish_id in wish_ids
        }
