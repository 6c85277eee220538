"""Session/Token Store: the access/refresh token pair for one browser-like session.

Durable storage is two string slots with fixed names.  ``FileTokenStorage``
keeps them in a small JSON file; ``MemoryTokenStorage`` is for tests and
throwaway sessions.
"""

from __future__ import annotations

import json
import logging
import urllib.parse
from pathlib import Path
from typing import Protocol

from core.logging_config import token_fingerprint

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"


class TokenStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryTokenStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.slots: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.slots.get(key)

    def set(self, key: str, value: str) -> None:
        self.slots[key] = value

    def remove(self, key: str) -> None:
        self.slots.pop(key, None)


class FileTokenStorage:
    """Token slots persisted as a JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable token file %s: %s", self.path, e)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)} if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


def consume_token_params(url: str) -> tuple[str | None, str | None, str]:
    """Pull ``access_token`` / ``refresh_token`` out of a callback redirect URL.

    Returns ``(access_token, refresh_token, cleaned_url)`` where the cleaned
    URL no longer carries either token.
    """
    parts = urllib.parse.urlsplit(url)
    query = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
    found: dict[str, str] = {}
    kept: list[tuple[str, str]] = []
    for key, value in query:
        if key in ("access_token", "refresh_token"):
            found[key] = value
        else:
            kept.append((key, value))
    cleaned = urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(kept)))
    return found.get("access_token") or None, found.get("refresh_token") or None, cleaned


class SessionStore:
    """Holds the current token pair and mirrors it into durable storage."""

    def __init__(self, storage: TokenStorage) -> None:
        self.storage = storage
        self.access_token: str | None = None
        self.refresh_token: str | None = None
        self.is_authenticated = False

    def init(self) -> bool:
        """Load persisted tokens; authenticated iff an access token exists."""
        self.access_token = self.storage.get(ACCESS_TOKEN_KEY) or None
        self.refresh_token = self.storage.get(REFRESH_TOKEN_KEY) or None
        self.is_authenticated = self.access_token is not None
        logger.info(
            "Session initialized (authenticated=%s)",
            self.is_authenticated,
            extra={"token": token_fingerprint(self.access_token)},
        )
        return self.is_authenticated

    def set_auth(self, token: str | None) -> None:
        if not token:
            logger.error("Refusing to set an empty access token")
            return
        self.access_token = token
        self.is_authenticated = True
        self.storage.set(ACCESS_TOKEN_KEY, token)
        logger.info("Access token stored", extra={"token": token_fingerprint(token)})

    def set_refresh_token(self, token: str | None) -> None:
        if not token:
            logger.error("Refusing to set an empty refresh token")
            return
        self.refresh_token = token
        self.storage.set(REFRESH_TOKEN_KEY, token)

    def get_refresh_token(self) -> str | None:
        return self.refresh_token

    def clear_auth(self) -> None:
        logger.info("Clearing authentication")
        self.access_token = None
        self.refresh_token = None
        self.is_authenticated = False
        self.storage.remove(ACCESS_TOKEN_KEY)
        self.storage.remove(REFRESH_TOKEN_KEY)

    def absorb_redirect(self, url: str) -> str:
        """Store any tokens carried by a callback redirect and return the stripped URL."""
        access_token, refresh_token, cleaned = consume_token_params(url)
        if access_token:
            logger.info("Access token found in redirect URL")
            self.set_auth(access_token)
        if refresh_token:
            self.set_refresh_token(refresh_token)
        return cleaned
