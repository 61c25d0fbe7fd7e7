"""Exception hierarchy for Steam Game DL.

Everything derives from SteamGameDLError so callers can catch broadly or
specifically. Per-source probe failures are never raised; they are recorded
in the matching ProbeResult instead.
"""

from __future__ import annotations


class SteamGameDLError(Exception):
    """Base class for all application errors."""


class ConfigError(SteamGameDLError):
    """Raised when the mirror source configuration is missing or invalid."""


class InvalidGameIdError(SteamGameDLError, ValueError):
    """Raised when a caller supplies an empty or non-numeric game identifier."""


class GameNotFoundError(SteamGameDLError):
    """Raised when Steam reports no app for the requested identifier."""

    def __init__(self, app_id: str) -> None:
        self.app_id = app_id
        super().__init__(
            "Failed to fetch game data. The game might not exist on Steam."
        )


class SteamApiError(SteamGameDLError):
    """Raised when the Steam store API cannot be reached or returns garbage."""


class ResolveCancelled(SteamGameDLError):
    """Raised when the caller cancels an in-flight availability check."""


__all__ = [
    "SteamGameDLError",
    "ConfigError",
    "InvalidGameIdError",
    "GameNotFoundError",
    "SteamApiError",
    "ResolveCancelled",
]
