"""
Wish – SQLAlchemy ORM models package.

Imports all model classes so the app can discover them
through a single ``import wishboard.models``.
"""

from wishboard.models.wish import Wish              # noqa: F401
from wishboard.models.comment import Comment        # noqa: F401
from wishboard.models.vote import Vote, VoteType    # noqa: F401
