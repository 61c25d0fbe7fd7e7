"""Data structures used across the application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TypedDict

from constants import APPID_PLACEHOLDER


@dataclass(frozen=True)
class SourceDescriptor:
    """One mirror endpoint, loaded once from the sources file."""

    name: str
    url_template: str
    success_code: int = 200
    unavailable_code: int = 404
    enabled: bool = True

    def probe_url(self, game_id: str) -> str:
        """Return the template with the game identifier substituted."""
        return self.url_template.replace(APPID_PLACEHOLDER, game_id)


class ProbeResult(TypedDict):
    """Outcome of probing a single source for a single game."""

    source_name: str
    available: bool
    direct_url: Optional[str]
    status: Optional[int]
    error: Optional[str]


class ReleaseDate(TypedDict):
    coming_soon: bool
    date: Optional[str]


class Media(TypedDict):
    videos: List[Dict[str, Any]]
    screenshots: List[Dict[str, Any]]


class Dlc(TypedDict):
    id: int
    name: Optional[str]


class GameDetails(TypedDict):
    """Normalized Steam store payload for one app."""

    steam_appid: int
    name: str
    header_image: Optional[str]
    release_date: ReleaseDate
    developers: List[str]
    publishers: List[str]
    price_overview: Optional[Dict[str, Any]]
    is_free: bool
    detailed_description: str
    short_description: str
    media: Media
    dlcs: List[Dlc]


class RecentSearch(TypedDict):
    id: str
    name: str
    timestamp: int


__all__ = [
    "SourceDescriptor",
    "ProbeResult",
    "ReleaseDate",
    "Media",
    "Dlc",
    "GameDetails",
    "RecentSearch",
]
