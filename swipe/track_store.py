"""HTTP client for the swiper server's Track Store and token-refresh routes.

Every call is bearer-authenticated from the ``SessionStore``.  A 401 gets one
refresh attempt followed by one retry; when that fails the session is cleared
and ``SessionExpired`` is raised so the UI can send the user back to login.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.logging_config import RequestTimer
from swipe.errors import AuthMissing, RemoteFetchFailed, RemoteMutationFailed, SessionExpired
from swipe.models import Page
from swipe.session import SessionStore

logger = logging.getLogger(__name__)


class TrackStoreClient:
    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout, transport=self._transport)

    # -- public operations ---------------------------------------------------

    async def list_tracks(self, offset: int, limit: int) -> Page:
        """Fetch one page of saved tracks."""
        try:
            resp = await self._authorized("GET", "/api/liked-songs", params={"offset": offset, "limit": limit})
        except httpx.HTTPError as e:
            raise RemoteFetchFailed(f"Failed to fetch liked songs: {e}") from e

        if resp.status_code >= 400:
            raise RemoteFetchFailed(f"Failed to fetch liked songs (HTTP {resp.status_code})")
        try:
            payload = resp.json()
        except ValueError as e:
            raise RemoteFetchFailed("Liked songs response was not JSON") from e
        if not isinstance(payload, dict):
            raise RemoteFetchFailed(f"Liked songs response was not an object: {payload!r}")
        try:
            page = Page.from_payload(payload)
        except (TypeError, ValueError) as e:
            raise RemoteFetchFailed(f"Malformed liked songs page: {e}") from e
        logger.info("Fetched %d items", len(page.items), extra={"offset": offset, "limit": limit})
        return page

    async def remove(self, track_id: str) -> None:
        await self._mutate("DELETE", f"/api/remove-liked-song/{track_id}", track_id, "remove song")

    async def like(self, track_id: str) -> None:
        await self._mutate("POST", f"/api/like-song/{track_id}", track_id, "like song")

    async def refresh(self) -> str:
        """Trade the stored refresh token for a new access token.

        Raises ``SessionExpired`` when there is no refresh token or the server
        refuses it.
        """
        refresh_token = self.session.get_refresh_token()
        if not refresh_token:
            raise SessionExpired("No refresh token available")

        try:
            async with self._client() as client:
                resp = await client.post("/refresh-token", json={"refresh_token": refresh_token})
        except httpx.HTTPError as e:
            raise SessionExpired(f"Token refresh failed: {e}") from e

        if resp.status_code >= 400:
            raise SessionExpired(f"Token refresh failed (HTTP {resp.status_code})")
        try:
            payload = resp.json()
        except ValueError as e:
            raise SessionExpired("Token refresh response was not JSON") from e
        if not isinstance(payload, dict):
            raise SessionExpired("Token refresh response was not an object")
        access_token = str(payload.get("access_token") or "")
        if not access_token:
            raise SessionExpired("Token refresh returned no access token")

        self.session.set_auth(access_token)
        return access_token

    # -- internals -----------------------------------------------------------

    async def _mutate(self, method: str, path: str, track_id: str, action: str) -> None:
        try:
            resp = await self._authorized(method, path)
        except httpx.HTTPError as e:
            raise RemoteMutationFailed(track_id, f"Failed to {action}: {e}") from e
        if resp.status_code >= 400:
            raise RemoteMutationFailed(track_id, f"Failed to {action} (HTTP {resp.status_code})")

    async def _authorized(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        resp = await self._send(method, path, params=params)
        if resp.status_code != 401:
            return resp

        logger.info("401 from %s %s; attempting token refresh", method, path)
        try:
            await self.refresh()
        except SessionExpired:
            logger.warning("Token refresh failed; clearing session")
            self.session.clear_auth()
            raise

        resp = await self._send(method, path, params=params)
        if resp.status_code == 401:
            self.session.clear_auth()
            raise SessionExpired("Session expired. Please log in again.")
        return resp

    async def _send(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        token = self.session.access_token
        if not token:
            raise AuthMissing("No access token available")

        with RequestTimer() as t:
            async with self._client() as client:
                resp = await client.request(method, path, params=params, headers={"Authorization": f"Bearer {token}"})
        logger.debug(
            "%s %s -> %d",
            method,
            path,
            resp.status_code,
            extra={"status": resp.status_code, "latency_ms": round(t.elapsed_ms, 1)},
        )
        return resp
