"""Tests for swipe/session.py — token slots, persistence, redirect tokens."""

from __future__ import annotations

from pathlib import Path

from swipe.session import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    FileTokenStorage,
    MemoryTokenStorage,
    SessionStore,
    consume_token_params,
)


def test_init_without_tokens_is_unauthenticated() -> None:
    store = SessionStore(MemoryTokenStorage())
    assert store.init() is False
    assert store.is_authenticated is False
    assert store.access_token is None


def test_init_loads_both_tokens() -> None:
    store = SessionStore(MemoryTokenStorage({ACCESS_TOKEN_KEY: "a", REFRESH_TOKEN_KEY: "r"}))
    assert store.init() is True
    assert store.access_token == "a"
    assert store.get_refresh_token() == "r"


def test_set_auth_persists_and_authenticates() -> None:
    storage = MemoryTokenStorage()
    store = SessionStore(storage)
    store.init()

    store.set_auth("a")

    assert store.is_authenticated is True
    assert storage.get(ACCESS_TOKEN_KEY) == "a"


def test_set_auth_empty_is_noop() -> None:
    storage = MemoryTokenStorage({ACCESS_TOKEN_KEY: "a"})
    store = SessionStore(storage)
    store.init()

    store.set_auth("")
    store.set_auth(None)

    assert store.access_token == "a"
    assert storage.get(ACCESS_TOKEN_KEY) == "a"


def test_clear_auth_wipes_memory_and_storage() -> None:
    storage = MemoryTokenStorage({ACCESS_TOKEN_KEY: "a", REFRESH_TOKEN_KEY: "r"})
    store = SessionStore(storage)
    store.init()

    store.clear_auth()

    assert store.is_authenticated is False
    assert store.access_token is None
    assert store.get_refresh_token() is None
    assert storage.slots == {}


def test_file_storage_survives_reload(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "tokens.json"
    first = SessionStore(FileTokenStorage(path))
    first.init()
    first.set_auth("a")
    first.set_refresh_token("r")

    second = SessionStore(FileTokenStorage(path))
    assert second.init() is True
    assert second.access_token == "a"
    assert second.get_refresh_token() == "r"

    second.clear_auth()
    assert SessionStore(FileTokenStorage(path)).init() is False


def test_file_storage_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "tokens.json"
    path.write_text("{not json")

    assert SessionStore(FileTokenStorage(path)).init() is False


def test_consume_token_params_strips_tokens() -> None:
    access, refresh, cleaned = consume_token_params("http://localhost:3000/?access_token=a&refresh_token=r&x=1")

    assert access == "a"
    assert refresh == "r"
    assert cleaned == "http://localhost:3000/?x=1"


def test_consume_token_params_without_tokens() -> None:
    access, refresh, cleaned = consume_token_params("http://localhost:3000/")

    assert access is None
    assert refresh is None
    assert cleaned == "http://localhost:3000/"


def test_absorb_redirect_stores_tokens() -> None:
    store = SessionStore(MemoryTokenStorage())
    store.init()

    cleaned = store.absorb_redirect("http://localhost:3000/?access_token=a&refresh_token=r")

    assert cleaned == "http://localhost:3000/"
    assert store.is_authenticated is True
    assert store.get_refresh_token() == "r"
