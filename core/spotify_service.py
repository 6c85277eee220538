"""Spotify Web API access for the server side.

Covers both collaborators the swiper talks to through this service:

- Auth Provider: authorize URL, authorization-code exchange, token refresh
  (``accounts.spotify.com``, confidential client with Basic auth)
- Track Store: saved tracks listing, save, remove (``api.spotify.com/v1``)

Every upstream failure is raised as ``SpotifyError`` carrying the upstream
HTTP status so routers can map it onto their own responses.
"""

from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Any

import httpx

from config.settings_loader import SpotifyCredentials, load_settings
from core.logging_config import RequestTimer, token_fingerprint

logger = logging.getLogger(__name__)


class SpotifyError(Exception):
    """Upstream Spotify call failed.

    ``status`` is the upstream HTTP status, or 502 when no response arrived.
    """

    def __init__(self, status: int, detail: str) -> None:
        super().__init__(f"Spotify error {status}: {detail}")
        self.status = status
        self.detail = detail

    @property
    def unauthorized(self) -> bool:
        return self.status == 401


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str | None = None
    expires_in: int = 0

    @staticmethod
    def from_token_response(payload: dict[str, Any]) -> TokenPair:
        return TokenPair(
            access_token=str(payload.get("access_token") or ""),
            refresh_token=payload.get("refresh_token"),
            expires_in=int(payload.get("expires_in") or 0),
        )


class SpotifyService:
    """Thin async client over the Spotify accounts service and Web API.

    ``transport`` is handed to every ``httpx.AsyncClient`` the service opens;
    tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        credentials: SpotifyCredentials,
        settings: dict[str, Any] | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self.settings = settings if settings is not None else load_settings()["spotify"]
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=float(self.settings.get("timeout_seconds", 30)),
            follow_redirects=False,
            transport=self._transport,
        )

    # -- Auth Provider -------------------------------------------------------

    def get_auth_url(self, state: str | None = None) -> str:
        """Build the authorize URL the browser is redirected to on login."""
        params: dict[str, str] = {
            "client_id": self.credentials.client_id,
            "response_type": "code",
            "redirect_uri": self.credentials.redirect_uri,
            "scope": " ".join(self.settings.get("scopes", [])),
            "show_dialog": "true" if self.settings.get("show_dialog", True) else "false",
        }
        if state:
            params["state"] = state
        return f"{self.settings['auth_url']}?{urllib.parse.urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenPair:
        """Exchange an authorization code for an access/refresh token pair."""
        logger.info("Requesting access token with authorization code")
        payload = await self._post_token_form(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.credentials.redirect_uri,
            }
        )
        pair = TokenPair.from_token_response(payload)
        if not pair.access_token:
            raise SpotifyError(502, "Token response carried no access_token")
        logger.info("Access token received", extra={"token": token_fingerprint(pair.access_token)})
        return pair

    async def refresh(self, refresh_token: str) -> str:
        """Mint a new access token from a refresh token."""
        logger.info("Refreshing access token")
        payload = await self._post_token_form({"grant_type": "refresh_token", "refresh_token": refresh_token})
        access_token = str(payload.get("access_token") or "")
        if not access_token:
            raise SpotifyError(502, "Refresh response carried no access_token")
        logger.info("New access token issued", extra={"token": token_fingerprint(access_token)})
        return access_token

    async def _post_token_form(self, form: dict[str, str]) -> dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.post(
                    self.settings["token_url"],
                    data=form,
                    auth=(self.credentials.client_id, self.credentials.client_secret),
                )
        except httpx.HTTPError as e:
            raise SpotifyError(502, f"Token request failed: {e}") from e

        if resp.status_code >= 400:
            raise SpotifyError(resp.status_code, resp.text)

        try:
            payload = resp.json()
        except ValueError as e:
            raise SpotifyError(502, f"Token response was not JSON: {resp.text}") from e
        if not isinstance(payload, dict):
            raise SpotifyError(502, f"Token response was not an object: {payload}")
        return payload

    # -- Track Store ---------------------------------------------------------

    async def get_liked_songs(self, access_token: str, *, limit: int = 20, offset: int = 0) -> dict[str, Any]:
        """Return one page of saved tracks as ``{"items": [...], "total": n}``."""
        resp = await self._api_request(
            "GET", "/me/tracks", access_token, params={"limit": limit, "offset": offset}
        )
        try:
            data = resp.json()
        except ValueError as e:
            raise SpotifyError(502, f"Saved tracks response was not JSON: {resp.text}") from e

        items = data.get("items") or []
        logger.info(
            "Fetched %d liked songs",
            len(items),
            extra={"offset": offset, "limit": limit},
        )
        return {"items": items, "total": int(data.get("total") or 0)}

    async def like_song(self, access_token: str, track_id: str) -> None:
        await self._api_request("PUT", "/me/tracks", access_token, params={"ids": track_id})
        logger.info("Song liked", extra={"track_id": track_id})

    async def remove_liked_song(self, access_token: str, track_id: str) -> None:
        await self._api_request("DELETE", "/me/tracks", access_token, params={"ids": track_id})
        logger.info("Song removed from liked songs", extra={"track_id": track_id})

    async def _api_request(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self.settings['api_url']}{path}"
        try:
            with RequestTimer() as t:
                async with self._client() as client:
                    resp = await client.request(
                        method,
                        url,
                        params=params,
                        headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
                    )
        except httpx.HTTPError as e:
            logger.error("Spotify %s %s failed: %s", method, path, e)
            raise SpotifyError(502, f"Spotify request failed: {e}") from e

        logger.debug(
            "Spotify %s %s -> %d",
            method,
            path,
            resp.status_code,
            extra={"status": resp.status_code, "latency_ms": round(t.elapsed_ms, 1)},
        )
        if resp.status_code >= 400:
            logger.warning("Spotify %s %s rejected: %s", method, path, resp.text, extra={"status": resp.status_code})
            raise SpotifyError(resp.status_code, resp.text)
        return resp
