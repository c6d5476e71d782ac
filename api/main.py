"""
FastAPI application for the Portfolio Tools API.

This module assembles the backend for the portfolio site's tools:
- /calories/...: Calorie tracker (days, foods, goals, TDEE, library, progress, export/import)
- /study/...: Flashcard decks and study sessions
- GET /health: Health check
- GET /: API information

All tracker and flashcard state is stored per session, identified by the
X-Session-ID header. Domain errors are turned into HTTP errors here:
validation problems give 400, missing records 404.

Run the API with:
    uvicorn api.main:app --reload

Access API documentation at:
    http://localhost:8000/docs (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

# Import config early to load .env file before any other code accesses environment variables
import api.config  # noqa: F401

import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from api.routers import calories as calories_router
from api.routers import study as study_router
from calories.errors import NotFoundError, TrackerError
from api.config import get_required_env_vars
from storage.db import db_is_enabled, init_db
from study.decks import DeckError, DeckNotFoundError

logger = logging.getLogger(__name__)

API_NAME = "Portfolio Tools API"
API_VERSION = "1.0.0"
API_DESCRIPTION = "Backend API for the portfolio site: a calorie tracker and a flashcard study app"

# Track app start time for uptime calculation
_APP_START_TIME = time.time()

app = FastAPI(
    title=API_NAME,
    description=API_DESCRIPTION,
    version=API_VERSION,
    openapi_tags=[
        {
            "name": "calories",
            "description": "Calorie tracker: days, foods, goals, TDEE, favourites, recipes, plans, "
                           "progress and export/import. Use the X-Session-ID header.",
        },
        {
            "name": "food-data",
            "description": "Food search (USDA FoodData Central) and barcode lookup (Open Food Facts).",
        },
        {
            "name": "study",
            "description": "Flashcard decks, cards and view/test study sessions. Use the X-Session-ID header.",
        },
        {
            "name": "health",
            "description": "Health check and monitoring endpoints.",
        },
    ],
)

# Initialize database if DATABASE_URL is set
if db_is_enabled():
    try:
        init_db()
    except Exception as e:
        # Don't crash the app; requests will surface the database error
        logger.warning(f"Database initialization failed: {e}")


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Missing days, foods, favourites, recipes..."""
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """Tracker validation errors (including failed imports)."""
    logger.debug(f"{request.method} {request.url.path} rejected: {exc}")
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(DeckNotFoundError)
async def deck_not_found_handler(request: Request, exc: DeckNotFoundError) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(DeckError)
async def deck_error_handler(request: Request, exc: DeckError) -> JSONResponse:
    """Deck and card validation errors."""
    logger.debug(f"{request.method} {request.url.path} rejected: {exc}")
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


app.include_router(calories_router.router)
app.include_router(study_router.router)


@app.get("/health", tags=["health"])
def health():
    """
    Health check endpoint for monitoring and status checks.

    Returns:
        Dictionary with status, API metadata, uptime information, database status and which
        optional integrations are configured.
        Always returns 200 OK if the endpoint is reachable.
    """
    uptime_seconds = int(time.time() - _APP_START_TIME)

    return {
        "status": "ok",
        "name": API_NAME,
        "version": API_VERSION,
        "description": API_DESCRIPTION,
        "uptime_seconds": uptime_seconds,
        "db_enabled": db_is_enabled(),
        "integrations": get_required_env_vars(),
    }


@app.get("/")
def root():
    """
    Root endpoint providing API information.

    Returns:
        Dictionary with API name and version
    """
    return {
        "name": API_NAME,
        "version": API_VERSION,
        "description": API_DESCRIPTION,
        "docs": "/docs",
    }
