"""Loading and validation of the mirror source list."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence
from urllib.parse import urlparse

from constants import APPID_PLACEHOLDER, SOURCES_FILE
from exceptions import ConfigError
from models import SourceDescriptor

__all__ = ["load_sources", "parse_sources", "enabled_sources"]

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {"name", "url"}


def _validate_code(entry: Dict[str, Any], key: str, default: int) -> int:
    value = entry.get(key, default)
    # bool is an int subclass; `true` is never a status code
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer HTTP status in {entry}")
    if not 100 <= value <= 599:
        raise ConfigError(f"'{key}' out of range (100-599): {value}")
    return value


def _validate_template(name: str, template: str) -> None:
    count = template.count(APPID_PLACEHOLDER)
    if count != 1:
        raise ConfigError(
            f"Source '{name}': url must contain '{APPID_PLACEHOLDER}' exactly once "
            f"(found {count})"
        )
    parsed = urlparse(template.replace(APPID_PLACEHOLDER, "0"))
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(
            f"Source '{name}': invalid url '{template}'. Must be absolute http(s) URL."
        )


def _coerce_source(entry: Any) -> SourceDescriptor:
    """Validate one ``api_list`` mapping and build its descriptor."""
    if not isinstance(entry, dict):
        raise ConfigError(f"Each source must be a mapping, got: {type(entry).__name__}")

    missing = REQUIRED_FIELDS - set(entry)
    if missing:
        raise ConfigError(f"Missing required fields: {sorted(missing)} in {entry}")

    name = str(entry["name"]).strip()
    if not name:
        raise ConfigError("Source 'name' must not be blank")

    template = str(entry["url"]).strip()
    _validate_template(name, template)

    success_code = _validate_code(entry, "success_code", 200)
    unavailable_code = _validate_code(entry, "unavailable_code", 404)
    if success_code == unavailable_code:
        raise ConfigError(
            f"Source '{name}': success_code and unavailable_code must differ"
        )

    enabled = entry.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"Source '{name}': 'enabled' must be true or false")

    return SourceDescriptor(
        name=name,
        url_template=template,
        success_code=success_code,
        unavailable_code=unavailable_code,
        enabled=enabled,
    )


def parse_sources(data: Any) -> List[SourceDescriptor]:
    """Build descriptors from an already decoded configuration document.

    Structure::

        {"api_list": [{"name": ..., "url": "https://host/<appid>",
                       "success_code": 200, "unavailable_code": 404,
                       "enabled": true}, ...]}

    Unknown keys are ignored. Order is preserved.
    """
    if not isinstance(data, dict):
        raise ConfigError("Sources configuration must be a JSON object")

    raw = data.get("api_list") or []
    if not isinstance(raw, list):
        raise ConfigError("'api_list' must be a list in the sources configuration")

    sources: List[SourceDescriptor] = []
    seen: set[str] = set()
    for entry in raw:
        source = _coerce_source(entry)
        if source.name in seen:
            raise ConfigError(f"Duplicate source name: '{source.name}'")
        seen.add(source.name)
        sources.append(source)
    return sources


def load_sources(path: Path | str = SOURCES_FILE) -> List[SourceDescriptor]:
    """Read the JSON sources file and return validated descriptors."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Sources file not found: {config_path}")

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read sources file {config_path}: {exc}") from exc

    sources = parse_sources(data)
    logger.info(
        "Loaded %d source(s) from %s (%d enabled)",
        len(sources),
        config_path,
        len(enabled_sources(sources)),
    )
    return sources


def enabled_sources(sources: Sequence[SourceDescriptor]) -> List[SourceDescriptor]:
    return [src for src in sources if src.enabled]
