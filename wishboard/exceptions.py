"""Wish board error hierarchy.

Each error carries the HTTP status the JSON API answers with; the HTML
board turns them into an alert banner instead.
"""

from fastapi import status


class WishBoardError(Exception):
    """Base class for errors raised by the board services."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Something went wrong"

    def __init__(self, detail: str = None):
        self.detail = detail or self.detail
        super().__init__(self.detail)


class ConfigurationError(WishBoardError):
    """Store connection parameters are missing or still placeholders."""

    detail = "The wish store is not configured"


class StoreError(WishBoardError):
    """A query or mutation against the hosted store failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "The wish store did not answer. Please try again."


class InvalidText(WishBoardError):
    """Submitted wish or comment text is empty or too long."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Text must not be empty"


class SubmissionInProgress(WishBoardError):
    """A wish submission is already in flight."""

    status_code = status.HTTP_409_CONFLICT
    detail = "A wish is already being sent"


class NoWishSelected(WishBoardError):
    """A comment was submitted without an active wish."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Select a wish to comment"


class WishNotFound(WishBoardError):
    """The referenced wish does not exist in the store."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, wish_id: int):
        self.wish_id = wish_id
        super().__init__(f"Wish {wish_id} not found")
