#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Flask front end: game lookup, download availability and recent searches."""

from __future__ import annotations

import datetime
import io
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import Flask, Response, current_app, jsonify, render_template, request, send_file, session

from constants import (
    DEFAULT_THEME,
    DEFAULT_TIMEOUT,
    POPULAR_GAMES,
    SECRET_KEY,
    SOURCES_FILE,
    THEMES,
)
from exceptions import GameNotFoundError, InvalidGameIdError, SteamApiError
from history import add_recent_search, coerce_recent_searches
from logging_setup import configure_logging
from models import GameDetails, ProbeResult, RecentSearch, SourceDescriptor
from resolver import resolve, to_csv_bytes
from sources import load_sources
from steam_client import fetch_game_details, validate_game_id

logger = logging.getLogger(__name__)

RECENT_SESSION_KEY = "recent_searches"


def create_app(
    sources: Optional[Sequence[SourceDescriptor]] = None,
    sources_path: Path | str = SOURCES_FILE,
) -> Flask:
    """Build the application; sources are loaded once, here.

    A ConfigError from an invalid sources file propagates and aborts start-up.
    """
    app = Flask(__name__)
    app.config["SECRET_KEY"] = SECRET_KEY
    app.config["PROBE_TIMEOUT"] = DEFAULT_TIMEOUT
    app.config["SOURCES"] = tuple(sources if sources is not None else load_sources(sources_path))

    app.add_url_rule("/", view_func=index)
    app.add_url_rule("/api/steam-game", view_func=api_steam_game)
    app.add_url_rule("/api/check-download", view_func=api_check_download)
    app.add_url_rule("/api/check-download.csv", view_func=api_check_download_csv)
    app.add_url_rule("/api/recent", view_func=api_recent)
    app.add_url_rule("/api/popular", view_func=api_popular)
    logger.info("Serving %d mirror source(s)", len(app.config["SOURCES"]))
    return app


# ----------------- Helpers -----------------
def _recent_searches() -> List[RecentSearch]:
    return coerce_recent_searches(session.get(RECENT_SESSION_KEY))


def _remember(game_id: str, name: str) -> None:
    session[RECENT_SESSION_KEY] = add_recent_search(_recent_searches(), game_id, name)


def _check(game_id: str) -> List[ProbeResult]:
    return resolve(
        game_id,
        current_app.config["SOURCES"],
        timeout=current_app.config["PROBE_TIMEOUT"],
    )


def _lookup(game_id: str) -> Tuple[Optional[GameDetails], Optional[str], int]:
    """Return (details, error message, HTTP status) for a validated id."""
    try:
        details = fetch_game_details(game_id)
    except GameNotFoundError as exc:
        return None, str(exc), 404
    except SteamApiError as exc:
        logger.warning("Game lookup failed for %s: %s", game_id, exc)
        return None, f"Network error. {exc}", 502
    _remember(game_id, details["name"])
    return details, None, 200


def _error(message: str, status: int) -> Tuple[Response, int]:
    return jsonify({"success": False, "error": message}), status


# ----------------- Pages -----------------
def index():
    theme_name = request.args.get("theme", DEFAULT_THEME)
    if theme_name not in THEMES:
        theme_name = DEFAULT_THEME if DEFAULT_THEME in THEMES else next(iter(THEMES))

    context: Dict[str, Any] = {
        "game_id": request.args.get("id", ""),
        "game": None,
        "error": None,
        "results": None,
        "theme_name": theme_name,
        "theme": THEMES[theme_name],
        "themes": sorted(THEMES),
        "popular": POPULAR_GAMES,
        "timeout": current_app.config["PROBE_TIMEOUT"],
    }

    if "id" in request.args:
        try:
            game_id = validate_game_id(request.args.get("id"))
        except InvalidGameIdError as exc:
            context["error"] = str(exc)
        else:
            context["game_id"] = game_id
            game, error, _ = _lookup(game_id)
            context["game"] = game
            context["error"] = error
            if game is not None and request.args.get("check") == "1":
                context["results"] = _check(game_id)

    context["recent"] = _recent_searches()
    return render_template("index.html", **context)


# ----------------- JSON API -----------------
def api_steam_game():
    try:
        game_id = validate_game_id(request.args.get("id"))
    except InvalidGameIdError as exc:
        return _error(str(exc), 400)

    details, error, status = _lookup(game_id)
    if details is None:
        return _error(error or "Failed to fetch game data", status)
    return jsonify({"success": True, "data": details})


def api_check_download():
    try:
        game_id = validate_game_id(request.args.get("appid"))
    except InvalidGameIdError as exc:
        return _error(str(exc), 400)
    return jsonify({"success": True, "data": _check(game_id)})


def api_check_download_csv():
    try:
        game_id = validate_game_id(request.args.get("appid"))
    except InvalidGameIdError as exc:
        return _error(str(exc), 400)

    mem = io.BytesIO(to_csv_bytes({game_id: _check(game_id)}))
    mem.seek(0)
    ts = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d_%H%M%S")
    return send_file(
        mem,
        mimetype="text/csv; charset=utf-8",
        as_attachment=True,
        download_name=f"availability_{game_id}_{ts}.csv",
    )


def api_recent():
    return jsonify({"success": True, "data": _recent_searches()})


def api_popular():
    return jsonify({"success": True, "data": POPULAR_GAMES})


# ---------- CLI entry ----------
if __name__ == "__main__":
    configure_logging()
    application = create_app()
    application.run(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        debug=os.getenv("FLASK_DEBUG") == "1",
    )
