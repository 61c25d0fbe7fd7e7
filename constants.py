"""Shared configuration constants for the application."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List

DEFAULT_TIMEOUT = float(os.getenv("PROBE_TIMEOUT", "10"))
STEAM_TIMEOUT = float(os.getenv("STEAM_TIMEOUT", "15"))
SOURCES_FILE = Path(os.getenv("SOURCES_FILE", "sources.json"))
SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

APPID_PLACEHOLDER = "<appid>"
STEAM_APPDETAILS_URL = "https://store.steampowered.com/api/appdetails"
RECENT_SEARCHES_LIMIT = 5

# Extra seconds granted past the probe timeout before a still-running
# probe is abandoned as timed out.
PROBE_GRACE = 1.0
CANCEL_POLL_INTERVAL = 0.1

POPULAR_GAMES: List[Dict[str, str]] = [
    {"id": "730", "name": "CS:GO"},
    {"id": "570", "name": "Dota 2"},
    {"id": "440", "name": "Team Fortress 2"},
    {"id": "620", "name": "Portal 2"},
    {"id": "400", "name": "Portal"},
    {"id": "220", "name": "Half-Life 2"},
    {"id": "10", "name": "Counter-Strike"},
    {"id": "80", "name": "Counter-Strike: Condition Zero"},
    {"id": "240", "name": "Counter-Strike: Source"},
    {"id": "500", "name": "Left 4 Dead"},
]

THEMES: Dict[str, Dict[str, str]] = {
    "midnight": {
        "background": "linear-gradient(135deg, #0f0c29 0%, #302b63 50%, #24243e 100%)",
        "text": "#e0e0e0",
        "accent": "#667eea",
        "panel": "rgba(0, 0, 0, 0.4)",
    },
    "steam": {
        "background": "linear-gradient(180deg, #1b2838 0%, #171a21 100%)",
        "text": "#c7d5e0",
        "accent": "#66c0f4",
        "panel": "rgba(23, 26, 33, 0.8)",
    },
    "light": {
        "background": "#f4f5f7",
        "text": "#1f2328",
        "accent": "#5a4fcf",
        "panel": "#ffffff",
    },
}
DEFAULT_THEME = os.getenv("SITE_THEME", "midnight")

_EXPORTED_NAMES = (
    "DEFAULT_TIMEOUT",
    "STEAM_TIMEOUT",
    "SOURCES_FILE",
    "SECRET_KEY",
    "USER_AGENT",
    "APPID_PLACEHOLDER",
    "STEAM_APPDETAILS_URL",
    "RECENT_SEARCHES_LIMIT",
    "PROBE_GRACE",
    "CANCEL_POLL_INTERVAL",
    "POPULAR_GAMES",
    "THEMES",
    "DEFAULT_THEME",
)

__all__ = [name for name in _EXPORTED_NAMES if name in globals()]
