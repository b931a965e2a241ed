"""Cache module for storing TMDB lookups locally."""
import json
import logging
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

CACHE_FILE = ".seriesrenamer_cache.json"


class Cache:
    """Local JSON cache for TMDB lookups."""

    def __init__(self, cache_dir: Path | None = None):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory to store cache file. Defaults to current directory.
        """
        if cache_dir is None:
            cache_dir = Path.cwd()
        self.cache_path = cache_dir / CACHE_FILE
        self._cache: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        """Load cache from disk."""
        if self.cache_path.exists():
            try:
                with open(self.cache_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                empty = self._empty_cache()
                empty.update(data)
                return empty
            except (json.JSONDecodeError, IOError) as e:
                log.warning("Ignoring unreadable cache %s: %s", self.cache_path, e)
        return self._empty_cache()

    def _empty_cache(self) -> dict[str, Any]:
        """Return empty cache structure."""
        return {
            "series_searches": {},
            "imdb_lookups": {},
            "seasons": {},
        }

    def _save(self) -> None:
        """Save cache to disk."""
        try:
            with open(self.cache_path, 'w', encoding='utf-8') as f:
                json.dump(self._cache, f, indent=2, ensure_ascii=False)
        except IOError as e:
            # A cache that cannot be written only costs extra requests
            log.warning("Could not write cache %s: %s", self.cache_path, e)

    def _normalize_key(self, key: str) -> str:
        """Normalize a string for use as cache key."""
        return key.lower().strip()

    def get_series_search(self, title: str) -> dict | None:
        """
        Get cached series search result.

        Args:
            title: The search title

        Returns:
            Cached series data if found, None otherwise
        """
        return self._cache["series_searches"].get(self._normalize_key(title))

    def set_series_search(self, title: str, result: dict) -> None:
        """
        Cache a series search result.

        Args:
            title: The search title
            result: The series data to cache
        """
        self._cache["series_searches"][self._normalize_key(title)] = result
        self._save()

    def get_imdb_lookup(self, imdb_id: str) -> dict | None:
        """Get the cached series for an IMDb id."""
        return self._cache["imdb_lookups"].get(imdb_id)

    def set_imdb_lookup(self, imdb_id: str, result: dict) -> None:
        """Cache the series an IMDb id resolves to."""
        self._cache["imdb_lookups"][imdb_id] = result
        self._save()

    def get_season(self, series_id: int, season: int) -> list[dict] | None:
        """
        Get the cached episode list of a season.

        Args:
            series_id: TMDB series ID
            season: Season number

        Returns:
            List of episode dicts if cached, None otherwise
        """
        return self._cache["seasons"].get(f"{series_id}:s{season}")

    def set_season(self, series_id: int, season: int, episodes: list[dict]) -> None:
        """
        Cache the episode list of a season.

        Args:
            series_id: TMDB series ID
            season: Season number
            episodes: Episode dicts to cache
        """
        self._cache["seasons"][f"{series_id}:s{season}"] = episodes
        self._save()

    def clear(self) -> None:
        """Clear all cached data."""
        self._cache = self._empty_cache()
        self._save()
