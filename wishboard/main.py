"""
Wish — FastAPI application entry-point.

Run with:
    uvicorn wishboard.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from wishboard.config import settings
from wishboard.database import create_tables, engine
from wishboard.exceptions import WishBoardError
from wishboard.routers import api, board
from wishboard.services.board import SubmissionRegistry
from wishboard.services.identity import CookieStorage, get_or_create_device_id

PACKAGE_DIR = Path(__file__).resolve().parent

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: create missing tables on startup ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.CREATE_TABLES:
        await create_tables(engine)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Share your wishes, get anonymous love.",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.submissions = SubmissionRegistry()


# ── Device identity: one long-lived cookie per browser ──
@app.middleware("http")
async def device_identity(request: Request, call_next):
    storage = CookieStorage(request.cookies)
    request.state.device_id = get_or_create_device_id(storage, settings.DEVICE_COOKIE_NAME)
    response = await call_next(request)
    return storage.persist(response, max_age=settings.DEVICE_COOKIE_MAX_AGE)


# ── JSON errors for the API ──
@app.exception_handler(WishBoardError)
async def board_error_handler(request: Request, exc: WishBoardError):
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


# ── Static files & templates ──
app.mount("/static", StaticFiles(directory=str(PACKAGE_DIR / "static")), name="static")
templates = Jinja2Templates(directory=str(PACKAGE_DIR / "templates"))

# ── Register routers ──
app.include_router(board.router)
app.include_router(api.router)


# ── Landing page ──
@app.get("/", response_class=HTMLResponse)
async def homepage(request: Request):
    return templates.TemplateResponse(request, "landing.html", {"app_name": settings.APP_NAME})


@app.get("/health")
async def health():
    return {"status": "ok"}
