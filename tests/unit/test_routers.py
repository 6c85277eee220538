"""Tests for routers/auth.py and routers/tracks.py against a stubbed Spotify."""

from __future__ import annotations

import urllib.parse
from collections.abc import Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from config.settings_loader import SpotifyCredentials, load_settings
from core.spotify_service import SpotifyService

Handler = Callable[[httpx.Request], httpx.Response]
AUTH = {"Authorization": "Bearer tok"}


class SpotifyStub:
    """Routes MockTransport requests to a per-test handler and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Handler = lambda request: httpx.Response(200, json={})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture()
def spotify() -> SpotifyStub:
    return SpotifyStub()


def _boot(spotify: SpotifyStub, credentials: SpotifyCredentials) -> Iterator[TestClient]:
    import api

    api.app.state.spotify = SpotifyService(
        credentials, load_settings()["spotify"], transport=httpx.MockTransport(spotify)
    )
    with TestClient(api.app, follow_redirects=False) as c:
        yield c


@pytest.fixture()
def client(spotify: SpotifyStub) -> Iterator[TestClient]:
    yield from _boot(spotify, SpotifyCredentials("cid", "secret", "http://localhost:3000/callback"))


@pytest.fixture()
def unconfigured_client(spotify: SpotifyStub) -> Iterator[TestClient]:
    yield from _boot(spotify, SpotifyCredentials("", "", "http://localhost:3000/callback"))


# ---------------------------------------------------------------------------
# /login
# ---------------------------------------------------------------------------


def test_login_redirects_to_authorize(client: TestClient) -> None:
    resp = client.get("/login")
    assert resp.status_code == 307
    location = resp.headers["location"]
    assert location.startswith("https://accounts.spotify.com/authorize?")
    assert "client_id=cid" in location


def test_login_without_credentials_is_500(unconfigured_client: TestClient) -> None:
    resp = unconfigured_client.get("/login")
    assert resp.status_code == 500


# ---------------------------------------------------------------------------
# /callback
# ---------------------------------------------------------------------------


def test_callback_redirects_with_tokens(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(
        200, json={"access_token": "a", "refresh_token": "r", "expires_in": 3600}
    )

    resp = client.get("/callback", params={"code": "c"})

    assert resp.status_code == 307
    parts = urllib.parse.urlsplit(resp.headers["location"])
    assert parts.path == "/"
    assert dict(urllib.parse.parse_qsl(parts.query)) == {"access_token": "a", "refresh_token": "r"}


def test_callback_with_error_param(client: TestClient, spotify: SpotifyStub) -> None:
    resp = client.get("/callback", params={"error": "access_denied"})

    assert resp.status_code == 400
    assert "access_denied" in resp.json()["detail"]
    assert spotify.requests == []


def test_callback_without_code(client: TestClient) -> None:
    assert client.get("/callback").status_code == 400


def test_callback_exchange_failure_is_500(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(400, json={"error": "invalid_grant"})

    resp = client.get("/callback", params={"code": "c"})

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Authentication failed"


# ---------------------------------------------------------------------------
# /refresh-token
# ---------------------------------------------------------------------------


def test_refresh_token_ok(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(200, json={"access_token": "fresh"})

    resp = client.post("/refresh-token", json={"refresh_token": "r"})

    assert resp.status_code == 200
    assert resp.json() == {"access_token": "fresh"}


def test_refresh_token_rejected_is_401(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(400, json={"error": "invalid_grant"})

    resp = client.post("/refresh-token", json={"refresh_token": "r"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Failed to refresh token"


def test_refresh_token_blank_is_400(client: TestClient) -> None:
    assert client.post("/refresh-token", json={"refresh_token": "  "}).status_code == 400


def test_refresh_token_missing_body_is_422(client: TestClient) -> None:
    assert client.post("/refresh-token", json={}).status_code == 422


# ---------------------------------------------------------------------------
# /api/liked-songs
# ---------------------------------------------------------------------------


def test_liked_songs_requires_token(client: TestClient, spotify: SpotifyStub) -> None:
    resp = client.get("/api/liked-songs")

    assert resp.status_code == 401
    assert spotify.requests == []


def test_liked_songs_proxies_page(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(200, json={"items": [{"track": {"id": "x"}}], "total": 7})

    resp = client.get("/api/liked-songs", params={"offset": 5, "limit": 2}, headers=AUTH)

    assert resp.status_code == 200
    assert resp.json() == {"items": [{"track": {"id": "x"}}], "total": 7}
    upstream = spotify.requests[0]
    assert upstream.url.params["offset"] == "5"
    assert upstream.url.params["limit"] == "2"
    assert upstream.headers["authorization"] == "Bearer tok"


def test_liked_songs_defaults(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(200, json={"items": [], "total": 0})

    client.get("/api/liked-songs", headers=AUTH)

    assert spotify.requests[0].url.params["offset"] == "0"
    assert spotify.requests[0].url.params["limit"] == "20"


def test_liked_songs_upstream_401(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(401, json={"error": {"status": 401}})

    resp = client.get("/api/liked-songs", headers=AUTH)

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid or expired token"


def test_liked_songs_upstream_failure_keeps_status(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(503, text="unavailable")

    resp = client.get("/api/liked-songs", headers=AUTH)

    assert resp.status_code == 503
    assert resp.json()["detail"].startswith("Failed to fetch liked songs")


@pytest.mark.parametrize("params", [{"limit": 51}, {"limit": 0}, {"offset": -1}])
def test_liked_songs_rejects_bad_window(client: TestClient, spotify: SpotifyStub, params: dict[str, int]) -> None:
    resp = client.get("/api/liked-songs", params=params, headers=AUTH)

    assert resp.status_code == 422
    assert spotify.requests == []


# ---------------------------------------------------------------------------
# remove / like
# ---------------------------------------------------------------------------


def test_remove_liked_song(client: TestClient, spotify: SpotifyStub) -> None:
    resp = client.delete("/api/remove-liked-song/abc", headers=AUTH)

    assert resp.status_code == 200
    assert resp.json() == {"message": "Song removed successfully"}
    assert spotify.requests[0].method == "DELETE"
    assert spotify.requests[0].url.params["ids"] == "abc"


def test_remove_liked_song_failure(client: TestClient, spotify: SpotifyStub) -> None:
    spotify.handler = lambda request: httpx.Response(500, text="boom")

    resp = client.delete("/api/remove-liked-song/abc", headers=AUTH)

    assert resp.status_code == 500
    assert resp.json()["detail"].startswith("Failed to remove song")


def test_like_song(client: TestClient, spotify: SpotifyStub) -> None:
    resp = client.post("/api/like-song/abc", headers=AUTH)

    assert resp.status_code == 200
    assert resp.json() == {"message": "Song liked successfully"}
    assert spotify.requests[0].method == "PUT"
    assert spotify.requests[0].url.params["ids"] == "abc"
