"""Vote model — per-device upvote (like) on a wish."""

import enum

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from wishboard.database import Base


class VoteType(str, enum.Enum):
    UPVOTE = "upvote"


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        # One vote of each kind per wish per device.
        UniqueConstraint("wish_id", "client_id", "type", name="uq_votes_wish_client_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    wish_id: Mapped[int] = mapped_column(
        ForeignKey("wishes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=VoteType.UPVOTE.value)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
