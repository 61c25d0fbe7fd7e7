"""Steam store metadata lookup."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from constants import STEAM_APPDETAILS_URL, STEAM_TIMEOUT, USER_AGENT
from exceptions import GameNotFoundError, InvalidGameIdError, SteamApiError
from models import Dlc, GameDetails, Media, ReleaseDate

__all__ = [
    "validate_game_id",
    "html_to_text",
    "sanitize_html",
    "normalize_app_details",
    "fetch_game_details",
]

logger = logging.getLogger(__name__)


def validate_game_id(raw: Optional[str]) -> str:
    """Return the stripped identifier or raise InvalidGameIdError."""
    game_id = (raw or "").strip()
    if not game_id:
        raise InvalidGameIdError("Please enter a Steam Game ID")
    if not game_id.isascii() or not game_id.isdigit():
        raise InvalidGameIdError("Game ID must be a number")
    return game_id


_UNSAFE_TAGS = ["script", "style", "iframe", "object", "embed", "form", "noscript", "template"]
_URL_ATTRS = ("href", "src", "action", "formaction", "poster")


def sanitize_html(html: str) -> str:
    """Drop active content from store HTML before it is rendered as markup."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_UNSAFE_TAGS):
        tag.decompose()
    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            # browsers ignore whitespace and control characters inside a scheme
            value = "".join(ch for ch in str(tag.attrs[attr]) if ch > " ").lower()
            if attr.lower().startswith("on"):
                del tag.attrs[attr]
            elif attr.lower() in _URL_ATTRS and value.startswith(("javascript:", "data:text/html")):
                del tag.attrs[attr]
    return str(soup)


def html_to_text(html: str) -> str:
    """Strip markup from a Steam description and collapse whitespace."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    return soup.get_text(separator=" ", strip=True)


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


def _media(app: Dict[str, Any]) -> Media:
    videos = []
    for movie in app.get("movies") or []:
        webm = movie.get("webm") or {}
        mp4 = movie.get("mp4") or {}
        videos.append({
            "id": movie.get("id"),
            "name": movie.get("name"),
            "thumbnail": movie.get("thumbnail"),
            "src": webm.get("max") or mp4.get("max") or webm.get("480") or mp4.get("480"),
        })
    screenshots = [
        {
            "id": shot.get("id"),
            "path_thumbnail": shot.get("path_thumbnail"),
            "path_full": shot.get("path_full"),
        }
        for shot in app.get("screenshots") or []
    ]
    return {"videos": videos, "screenshots": screenshots}


def normalize_app_details(app_id: str, payload: Dict[str, Any]) -> GameDetails:
    """Turn a raw ``appdetails`` response into GameDetails.

    ``payload`` is the whole JSON document, keyed by app id.
    """
    entry = payload.get(str(app_id)) if isinstance(payload, dict) else None
    if not isinstance(entry, dict) or not entry.get("success"):
        raise GameNotFoundError(app_id)

    app = entry.get("data") or {}
    name = app.get("name")
    if not name:
        raise GameNotFoundError(app_id)

    raw_release = app.get("release_date") or {}
    release: ReleaseDate = {
        "coming_soon": bool(raw_release.get("coming_soon", False)),
        "date": raw_release.get("date") or None,
    }

    # Steam returns DLC as bare ids; names need one lookup each, skipped here
    dlcs: List[Dlc] = [{"id": int(dlc_id), "name": None} for dlc_id in app.get("dlc") or []]

    short = app.get("short_description") or ""
    return {
        "steam_appid": int(app.get("steam_appid") or app_id),
        "name": str(name),
        "header_image": app.get("header_image"),
        "release_date": release,
        "developers": _str_list(app.get("developers")),
        "publishers": _str_list(app.get("publishers")),
        "price_overview": app.get("price_overview"),
        "is_free": bool(app.get("is_free", False)),
        "detailed_description": sanitize_html(app.get("detailed_description") or ""),
        "short_description": html_to_text(short) if short else "",
        "media": _media(app),
        "dlcs": dlcs,
    }


def fetch_game_details(
    app_id: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = STEAM_TIMEOUT,
) -> GameDetails:
    """Fetch and normalize store metadata for ``app_id``.

    Raises GameNotFoundError when Steam has no such app and SteamApiError on
    any network, HTTP or decoding failure.
    """
    http = session or requests.Session()
    try:
        resp = http.get(
            STEAM_APPDETAILS_URL,
            params={"appids": app_id},
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        resp.raise_for_status()
        payload = resp.json()
    except requests.exceptions.HTTPError as exc:
        logger.warning("Steam appdetails HTTP error for %s: %s", app_id, exc)
        raise SteamApiError(f"Steam returned HTTP {exc.response.status_code}") from exc
    except requests.exceptions.JSONDecodeError as exc:
        logger.warning("Steam appdetails returned invalid JSON for %s", app_id)
        raise SteamApiError("Steam returned an unreadable response") from exc
    except requests.exceptions.RequestException as exc:
        logger.warning("Steam appdetails request failed for %s: %s", app_id, exc)
        raise SteamApiError("Network error while contacting Steam") from exc
    finally:
        if session is None:
            http.close()

    details = normalize_app_details(app_id, payload)
    logger.info("Fetched Steam details for %s (%s)", app_id, details["name"])
    return details
