"""
Centralized Settings Loader

Tunables live in ``settings.defaults.json`` and may be overridden by a local
``settings.json`` next to it.  Secrets never live in these files; they come
from the environment (``.env`` is loaded via python-dotenv).

Usage:
    from config.settings_loader import load_settings, spotify_credentials

    batch_size = load_settings()["swipe"]["batch_size"]
    creds = spotify_credentials()
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

# Paths
CONFIG_DIR = Path(__file__).parent
SETTINGS_FILE = CONFIG_DIR / "settings.json"
DEFAULTS_FILE = CONFIG_DIR / "settings.defaults.json"

DEFAULT_REDIRECT_URI = "http://localhost:3000/callback"
DEFAULT_PORT = 3000

# --- Settings Cache ---
_settings_cache: dict[str, Any] | None = None


def _deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    for key, value in update.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_settings() -> dict[str, Any]:
    """Load settings from file. Uses cache if already loaded."""
    global _settings_cache
    if _settings_cache is None:
        if not DEFAULTS_FILE.exists():
            raise FileNotFoundError(f"No defaults file found at {DEFAULTS_FILE}")
        merged: dict[str, Any] = json.loads(DEFAULTS_FILE.read_text())
        if SETTINGS_FILE.exists():
            _deep_merge(merged, json.loads(SETTINGS_FILE.read_text()))
        _settings_cache = merged
    return _settings_cache


def reload_settings() -> dict[str, Any]:
    """Force reload settings from disk (useful after external changes)."""
    global _settings_cache
    _settings_cache = None
    return load_settings()


@dataclass(frozen=True)
class SpotifyCredentials:
    client_id: str
    client_secret: str
    redirect_uri: str

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


def spotify_credentials() -> SpotifyCredentials:
    """Read the OAuth app credentials from the environment."""
    return SpotifyCredentials(
        client_id=os.environ.get("CLIENT_ID", ""),
        client_secret=os.environ.get("CLIENT_SECRET", ""),
        redirect_uri=os.environ.get("REDIRECT_URI", "") or DEFAULT_REDIRECT_URI,
    )


def server_port() -> int:
    try:
        return int(os.environ.get("PORT", DEFAULT_PORT))
    except ValueError:
        return DEFAULT_PORT
