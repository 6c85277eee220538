"""Items and pages as the swipe client sees them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Item:
    """One saved track. Identity is ``id``; everything else is display data."""

    id: str
    title: str = ""
    artists: tuple[str, ...] = ()
    album: str = ""
    thumbnail_url: str | None = None

    @property
    def artist_line(self) -> str:
        return ", ".join(self.artists)

    @staticmethod
    def from_saved_track(entry: Any) -> Item | None:
        """Build an Item from a ``/me/tracks`` entry (``{"added_at", "track"}``).

        Returns None for entries that carry no usable track id (local files,
        removed tracks).
        """
        if not isinstance(entry, dict):
            return None
        track = entry.get("track") if "track" in entry else entry
        if not isinstance(track, dict) or not track.get("id"):
            return None

        artists = tuple(
            str(a["name"]).strip() for a in track.get("artists") or [] if isinstance(a, dict) and a.get("name")
        )
        album = track.get("album") if isinstance(track.get("album"), dict) else {}
        images = album.get("images") or []
        thumbnail = images[0].get("url") if images and isinstance(images[0], dict) else None

        return Item(
            id=str(track["id"]),
            title=str(track.get("name") or ""),
            artists=artists,
            album=str(album.get("name") or ""),
            thumbnail_url=thumbnail,
        )


@dataclass
class Page:
    """One Track Store page: the items returned and the remote total.

    ``fetched`` is the number of raw entries the remote returned, before
    entries without a usable track were dropped; it is what the pagination
    cursor advances by.
    """

    items: list[Item] = field(default_factory=list)
    total: int = 0
    fetched: int | None = None

    @property
    def entry_count(self) -> int:
        return len(self.items) if self.fetched is None else self.fetched

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> Page:
        entries = list(payload.get("items") or [])
        items = [item for item in map(Item.from_saved_track, entries) if item is not None]
        return Page(items=items, total=int(payload.get("total") or 0), fetched=len(entries))
