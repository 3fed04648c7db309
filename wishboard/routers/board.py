"""
Board router — the server-rendered wish board.

Endpoints:
    GET  /board                          → feed, wish form and comment thread
    POST /board/wishes                   → submit a wish
    POST /board/wishes/{wish_id}/like    → toggle this device's like
    POST /board/wishes/{wish_id}/comments → comment on the selected wish

Every POST redirects back to the board. Failures travel as ``?error=`` and
are shown as an alert; confirmations as ``?success=``.
"""

from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from wishboard.exceptions import StoreError, WishBoardError
from wishboard.routers.deps import get_feed, get_thread
from wishboard.services.board import CommentThreadController, WishFeedController

router = APIRouter(prefix="/board", tags=["board"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

WISH_FAILED = "Failed to submit wish. Please try again."
COMMENT_FAILED = "Failed to submit comment. Please try again."
LIKE_FAILED = "Failed to update your like. Please try again."


def _board_url(wish_id: Optional[int] = None, **messages: str) -> str:
    params = {}
    if wish_id is not None:
        params["wish"] = wish_id
    params.update({k: v for k, v in messages.items() if v})
    return "/board" + (f"?{urlencode(params)}" if params else "")


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


# ═══════════════════════════════════════════════════════════════
#  Page
# ═══════════════════════════════════════════════════════════════

@router.get("", response_class=HTMLResponse, name="board_page")
async def board_page(
    request: Request,
    wish: Optional[int] = None,
    error: Optional[str] = None,
    success: Optional[str] = None,
    feed: WishFeedController = Depends(get_feed),
    thread: CommentThreadController = Depends(get_thread),
):
    """Render the feed and, when a wish is selected, its comment thread."""
    snapshot = await feed.load()

    selected = feed.get(wish) if wish is not None else None
    if selected is not None:
        await thread.select_wish(selected.id)
    else:
        thread.deselect()

    return templates.TemplateResponse(
        request,
        "board.html",
        {
            "feed": snapshot,
            "thread": thread.snapshot(),
            "selected": selected,
            "error": error,
            "success": success,
            "tracking": bool(feed.device_id),
        },
    )


# ═══════════════════════════════════════════════════════════════
#  Intents
# ═══════════════════════════════════════════════════════════════

@router.post("/wishes")
async def submit_wish(
    text: str = Form(""),
    feed: WishFeedController = Depends(get_feed),
):
    try:
        await feed.submit_wish(text)
    except StoreError:
        return _redirect(_board_url(error=WISH_FAILED))
    except WishBoardError as exc:
        return _redirect(_board_url(error=exc.detail))
    return _redirect(_board_url(success="Your wish is out there ✨"))


@router.post("/wishes/{wish_id}/like")
async def toggle_like(
    wish_id: int,
    selected: Optional[int] = Form(None),
    feed: WishFeedController = Depends(get_feed),
):
    await feed.load()
    try:
        await feed.toggle_like(wish_id)
    except StoreError:
        return _redirect(_board_url(selected, error=LIKE_FAILED))
    except WishBoardError as exc:
        return _redirect(_board_url(selected, error=exc.detail))
    return _redirect(_board_url(selected))


@router.post("/wishes/{wish_id}/comments")
async def submit_comment(
    wish_id: int,
    text: str = Form(""),
    thread: CommentThreadController = Depends(get_thread),
):
    await thread.select_wish(wish_id)
    try:
        await thread.submit_comment(text)
    except StoreError:
        return _redirect(_board_url(wish_id, error=COMMENT_FAILED))
    except WishBoardError as exc:
        return _redirect(_board_url(wish_id, error=exc.detail))
    return _redirect(_board_url(wish_id))
