"""Liked-track swiper – FastAPI entry point.

Lifespan:
- Read Spotify app credentials and settings
- Build one SpotifyService and keep it on ``app.state``
- Shutdown: drop it

Middleware: CORS + bearer token on ``/api/*``

Routers: auth (``/login``, ``/callback``, ``/refresh-token``), tracks (``/api``)

Health:
- GET /liveness → always 200
- GET /health   → 200 with timestamp
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings_loader import load_settings, server_port, spotify_credentials
from core.auth import BearerAuthMiddleware
from core.logging_config import setup_logging
from core.spotify_service import SpotifyService
from routers.auth import router as auth_router
from routers.tracks import router as tracks_router

# Setup structured logging before anything else
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: startup and shutdown."""
    # --- Startup ---
    logger.info("Swiper server starting up...")

    credentials = spotify_credentials()
    if not credentials.configured:
        logger.warning("CLIENT_ID / CLIENT_SECRET not set; /login and /callback will fail")

    # Tests may pre-seed app.state.spotify with a stubbed transport
    if getattr(app.state, "spotify", None) is None:
        app.state.spotify = SpotifyService(credentials, load_settings()["spotify"])
    logger.info("SpotifyService initialized (redirect_uri=%s)", credentials.redirect_uri)

    yield

    # --- Shutdown ---
    logger.info("Swiper server shutting down...")
    app.state.spotify = None


# Create app
app = FastAPI(
    title="Liked-track swiper",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Middleware ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(BearerAuthMiddleware)


# --- Health Endpoints ---


@app.get("/liveness")
async def liveness() -> dict[str, str]:
    """Always returns 200 -- proves the process is alive."""
    return {"status": "alive"}


@app.get("/health")
async def health() -> dict[str, str]:
    logger.debug("Health check endpoint hit")
    return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}


# --- Routers ---

app.include_router(auth_router)
app.include_router(tracks_router, prefix="/api")


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    port = server_port()
    logger.info("Server is running at http://localhost:%d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_config=None)  # noqa: S104


if __name__ == "__main__":
    run()
