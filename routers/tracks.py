"""Track Store proxy: the user's saved tracks, paged, plus save/remove.

All routes sit under ``/api`` and therefore behind ``BearerAuthMiddleware``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from core.auth import get_access_token
from core.spotify_service import SpotifyError, SpotifyService
from routers.auth import get_spotify_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tracks"])

# Spotify caps /me/tracks pages at 50
MAX_PAGE_SIZE = 50


def _to_http_error(e: SpotifyError, message: str) -> HTTPException:
    if e.unauthorized:
        return HTTPException(status_code=401, detail="Invalid or expired token")
    status = e.status if 400 <= e.status < 600 else 502
    return HTTPException(status_code=status, detail=f"{message}: {e.detail}")


@router.get("/liked-songs")
async def liked_songs(
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    access_token: str = Depends(get_access_token),
    spotify: SpotifyService = Depends(get_spotify_service),
) -> dict[str, Any]:
    """One page of saved tracks: ``{"items": [...], "total": n}``."""
    try:
        return await spotify.get_liked_songs(access_token, limit=limit, offset=offset)
    except SpotifyError as e:
        logger.error("Error fetching liked songs: %s", e.detail, extra={"offset": offset, "limit": limit})
        raise _to_http_error(e, "Failed to fetch liked songs") from e


@router.delete("/remove-liked-song/{track_id}")
async def remove_liked_song(
    track_id: str,
    access_token: str = Depends(get_access_token),
    spotify: SpotifyService = Depends(get_spotify_service),
) -> dict[str, str]:
    try:
        await spotify.remove_liked_song(access_token, track_id)
    except SpotifyError as e:
        logger.error("Error removing liked song: %s", e.detail, extra={"track_id": track_id})
        raise _to_http_error(e, "Failed to remove song") from e
    return {"message": "Song removed successfully"}


@router.post("/like-song/{track_id}")
async def like_song(
    track_id: str,
    access_token: str = Depends(get_access_token),
    spotify: SpotifyService = Depends(get_spotify_service),
) -> dict[str, str]:
    try:
        await spotify.like_song(access_token, track_id)
    except SpotifyError as e:
        logger.error("Error liking song: %s", e.detail, extra={"track_id": track_id})
        raise _to_http_error(e, "Failed to like song") from e
    return {"message": "Song liked successfully"}
