"""OAuth routes: login redirect, authorization-code callback, token refresh.

The callback hands both tokens to the browser as query parameters on a
redirect to ``/``; the client consumes them once and strips them from the
address bar.
"""

from __future__ import annotations

import logging
import urllib.parse

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from core.spotify_service import SpotifyError, SpotifyService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def get_spotify_service(request: Request) -> SpotifyService:
    """FastAPI dependency: the per-app SpotifyService built in the lifespan."""
    service: SpotifyService | None = getattr(request.app.state, "spotify", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Spotify service not initialized")
    return service


@router.get("/login")
async def login(spotify: SpotifyService = Depends(get_spotify_service)) -> RedirectResponse:
    """Redirect the browser to Spotify's authorize page."""
    if not spotify.credentials.configured:
        raise HTTPException(status_code=500, detail="CLIENT_ID / CLIENT_SECRET are not configured")
    auth_url = spotify.get_auth_url()
    logger.info("Redirecting to Spotify authorize URL")
    return RedirectResponse(auth_url)


@router.get("/callback")
async def callback(
    code: str | None = None,
    error: str | None = None,
    spotify: SpotifyService = Depends(get_spotify_service),
) -> RedirectResponse:
    """Exchange the authorization code and hand the tokens to the client."""
    if error:
        logger.warning("Spotify authorization denied: %s", error)
        raise HTTPException(status_code=400, detail=f"Authorization failed: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    try:
        pair = await spotify.exchange_code(code)
    except SpotifyError as e:
        logger.error("Error in callback: %s", e.detail)
        raise HTTPException(status_code=500, detail="Authentication failed") from e

    params = {"access_token": pair.access_token}
    if pair.refresh_token:
        params["refresh_token"] = pair.refresh_token
    return RedirectResponse(f"/?{urllib.parse.urlencode(params)}")


class RefreshTokenRequest(BaseModel):
    refresh_token: str


@router.post("/refresh-token")
async def refresh_token(
    request: RefreshTokenRequest,
    spotify: SpotifyService = Depends(get_spotify_service),
) -> dict[str, str]:
    """Mint a new access token; any failure means the session must re-authenticate."""
    if not request.refresh_token.strip():
        raise HTTPException(status_code=400, detail="Missing refresh token")
    try:
        access_token = await spotify.refresh(request.refresh_token)
    except SpotifyError as e:
        logger.warning("Token refresh failed (upstream %d)", e.status)
        raise HTTPException(status_code=401, detail="Failed to refresh token") from e
    return {"access_token": access_token}
