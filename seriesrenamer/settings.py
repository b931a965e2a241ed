"""Settings management for SeriesRenamer."""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from .formatter import DEFAULT_TEMPLATE, NamingTemplate
from .matcher import MatchPolicy

log = logging.getLogger(__name__)

APP_DIR_NAME = "SeriesRenamer"


# ---------------------------------------------------------------------------
# Platform-appropriate settings directory
# ---------------------------------------------------------------------------

def config_dir() -> Path:
    """Return the platform settings directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    d = base / APP_DIR_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


# ---------------------------------------------------------------------------
# Default values for every known key
# ---------------------------------------------------------------------------

_DEFAULT_POLICY = MatchPolicy()

DEFAULT_SETTINGS: dict[str, Any] = {
    # Naming
    "naming_template": DEFAULT_TEMPLATE,

    # TMDB
    "tmdb_api_key": "",
    "tmdb_language": "en-US",

    # Fuzzy title matching
    "accept_threshold": _DEFAULT_POLICY.accept_threshold,
    "ambiguity_margin": _DEFAULT_POLICY.margin,
    "candidate_floor": _DEFAULT_POLICY.floor,
    "max_candidates": _DEFAULT_POLICY.max_candidates,

    # State (remembered between runs)
    "last_folder": "",
    "imdb_link": "",
}


# ---------------------------------------------------------------------------
# SettingsManager -- single authority for reading / writing settings
# ---------------------------------------------------------------------------

class SettingsManager:
    """Settings store backed by a JSON file.

    Usage:
        mgr = SettingsManager()
        key = mgr.get("tmdb_api_key")
        mgr.set("tmdb_api_key", "abc123")
        mgr.save()
    """

    def __init__(self, path: Path | None = None):
        self.path = path or config_dir() / "settings.json"
        self._data = self._load()

    # -- public API -------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        fallback = DEFAULT_SETTINGS.get(key, default)
        return self._data.get(key, fallback)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def save(self) -> bool:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            return True
        except IOError as e:
            log.warning("Could not save settings to %s: %s", self.path, e)
            return False

    def all(self) -> dict[str, Any]:
        """Return a merged view: defaults + saved values."""
        merged = DEFAULT_SETTINGS.copy()
        merged.update(self._data)
        return merged

    def reload(self) -> None:
        self._data = self._load()

    def naming_template(self) -> NamingTemplate:
        """The configured template, validated.

        Raises:
            TemplateError: If the saved template is invalid
        """
        return NamingTemplate.parse(self.get("naming_template"))

    def match_policy(self) -> MatchPolicy:
        """Fuzzy matching thresholds built from the saved values."""
        return MatchPolicy(
            accept_threshold=float(self.get("accept_threshold")),
            margin=float(self.get("ambiguity_margin")),
            floor=float(self.get("candidate_floor")),
            max_candidates=int(self.get("max_candidates")),
        )

    # -- private ----------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                log.warning("Ignoring unreadable settings %s: %s", self.path, e)
        return {}


__all__ = [
    "DEFAULT_SETTINGS",
    "SettingsManager",
    "config_dir",
]
