"""TMDB API client: the metadata provider that supplies episode catalogs."""
import logging
import os
import re
import time
from dataclasses import dataclass
from datetime import date
from difflib import SequenceMatcher
from pathlib import Path
from typing import Any

import requests
from dotenv import load_dotenv

from .cache import Cache
from .models import CatalogEntry

log = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10
RATE_LIMIT_DELAY = 0.25  # 250ms between requests to avoid rate limiting
DEFAULT_LANGUAGE = "en-US"

_IMDB_ID = re.compile(r'\btt\d{7,}\b')


def load_api_key() -> str | None:
    """
    Load TMDB API key from environment or .env file.

    Priority:
    1. TMDB_API_KEY environment variable
    2. .env file in current directory
    3. .env file in user home directory

    Returns:
        API key string or None if not found
    """
    api_key = os.environ.get("TMDB_API_KEY")
    if api_key:
        return api_key

    for env_path in (Path.cwd() / ".env", Path.home() / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            api_key = os.environ.get("TMDB_API_KEY")
            if api_key:
                return api_key

    return None


def parse_imdb_id(link: str) -> str | None:
    """Extract ``tt1234567`` from an IMDb link or bare id."""
    match = _IMDB_ID.search(link)
    return match.group(0) if match else None


def normalize_for_comparison(text: str) -> str:
    """Normalize a string for comparison."""
    text = text.lower()
    text = re.sub(r'[^\w\s]', '', text)
    text = re.sub(r'\s+', ' ', text).strip()
    return text


def similarity_score(s1: str, s2: str) -> float:
    """Calculate similarity between two strings."""
    return SequenceMatcher(
        None, normalize_for_comparison(s1), normalize_for_comparison(s2)
    ).ratio()


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _year(value: str | None) -> int | None:
    if value and len(value) >= 4 and value[:4].isdigit():
        return int(value[:4])
    return None


@dataclass
class TMDBSeries:
    """Represents a TV series from TMDB."""
    id: int
    name: str
    original_name: str
    first_air_year: int | None
    overview: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.original_name

    @classmethod
    def from_result(cls, data: dict[str, Any]) -> "TMDBSeries":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            original_name=data.get("original_name", ""),
            first_air_year=_year(data.get("first_air_date")),
            overview=data.get("overview", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "original_name": self.original_name,
            "first_air_year": self.first_air_year,
            "overview": self.overview,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TMDBSeries":
        return cls(
            id=data["id"],
            name=data["name"],
            original_name=data["original_name"],
            first_air_year=data.get("first_air_year"),
            overview=data.get("overview", ""),
        )


class TMDBError(Exception):
    """Exception raised for TMDB API errors."""
    pass


class TMDBClient:
    """Client for TMDB API."""

    def __init__(
        self,
        api_key: str | None = None,
        cache: Cache | None = None,
        language: str | None = None,
    ):
        """
        Initialize TMDB client.

        Args:
            api_key: TMDB API key. If not provided, attempts to load from env/.env.
            cache: Cache instance for storing lookups.
            language: TMDB API language tag (e.g. "en-US"). Falls back to
                      DEFAULT_LANGUAGE when *None*.

        Raises:
            TMDBError: If API key is not found
        """
        self.api_key = api_key or load_api_key()
        if not self.api_key:
            raise TMDBError(
                "TMDB API key not found.\n"
                "Set it using one of these methods:\n"
                "  1. Environment variable: export TMDB_API_KEY=your_key\n"
                "  2. Create a .env file with: TMDB_API_KEY=your_key\n"
                "  3. Save it in settings as tmdb_api_key\n"
                "Get your free API key at: https://www.themoviedb.org/settings/api"
            )
        self.cache = cache or Cache()
        self.language = language or DEFAULT_LANGUAGE
        self._last_request_time = 0.0
        log.debug("Using TMDB language: %s", self.language)

    def _rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < RATE_LIMIT_DELAY:
            time.sleep(RATE_LIMIT_DELAY - elapsed)
        self._last_request_time = time.time()

    def _request(
        self,
        endpoint: str,
        params: dict | None = None,
        retries: int = 3
    ) -> dict | None:
        """
        Make a request to the TMDB API.

        Args:
            endpoint: API endpoint (e.g., '/search/tv')
            params: Query parameters
            retries: Number of retries on failure

        Returns:
            JSON response or None on error
        """
        self._rate_limit()

        url = f"{TMDB_BASE_URL}{endpoint}"
        all_params = {
            "api_key": self.api_key,
            "language": self.language,
            **(params or {})
        }

        # Never log the API key
        log_params = {k: v for k, v in all_params.items() if k != "api_key"}
        log.debug("GET %s params=%s", endpoint, log_params)

        for attempt in range(retries):
            try:
                response = requests.get(url, params=all_params, timeout=DEFAULT_TIMEOUT)

                if response.status_code == 429:  # Rate limited
                    retry_after = int(response.headers.get("Retry-After", 1))
                    log.debug("Rate limited, waiting %ss", retry_after)
                    time.sleep(retry_after)
                    continue

                if response.status_code == 404:
                    log.debug("Not found: %s", endpoint)
                    return None

                response.raise_for_status()
                return response.json()

            except requests.exceptions.Timeout:
                log.warning("TMDB timeout on %s (attempt %d/%d)", endpoint, attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                return None
            except requests.exceptions.RequestException as e:
                log.warning("TMDB request error on %s: %s (attempt %d/%d)",
                            endpoint, e, attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                return None

        return None

    def _choose_best_series(self, results: list[dict], title: str) -> dict | None:
        """Pick the result whose name is closest to *title*.

        Exact name matches win; popularity only breaks near-ties.
        """
        if not results:
            return None

        title_norm = normalize_for_comparison(title)
        scored = []
        for result in results:
            name = result.get("name", "")
            original = result.get("original_name", "")
            title_sim = max(similarity_score(title, name), similarity_score(title, original))
            exact_match = title_norm in (
                normalize_for_comparison(name), normalize_for_comparison(original)
            )
            exact_bonus = 0.3 if exact_match else 0.0
            pop_bonus = min(result.get("popularity", 0) / 1000, 1.0) * 0.05
            scored.append((title_sim + exact_bonus + pop_bonus, result))

        scored.sort(key=lambda x: x[0], reverse=True)
        return scored[0][1]

    def search_series(self, title: str) -> TMDBSeries | None:
        """
        Search for a TV series on TMDB.

        Args:
            title: Series title to search for

        Returns:
            TMDBSeries if found, None otherwise
        """
        cached = self.cache.get_series_search(title)
        if cached:
            return TMDBSeries.from_dict(cached)

        data = self._request("/search/tv", {"query": title})
        if not data or not data.get("results"):
            return None

        best = self._choose_best_series(data["results"], title)
        if not best:
            return None

        series = TMDBSeries.from_result(best)
        log.info("TMDB series for '%s': %s (id=%d)", title, series.display_name, series.id)
        self.cache.set_series_search(title, series.to_dict())
        return series

    def find_by_imdb(self, link: str) -> TMDBSeries | None:
        """
        Resolve an IMDb link (or ``tt`` id) to a TMDB series.

        Args:
            link: e.g. ``https://www.imdb.com/title/tt0903747/``

        Returns:
            TMDBSeries if found, None otherwise

        Raises:
            TMDBError: If *link* does not contain an IMDb id
        """
        imdb_id = parse_imdb_id(link)
        if not imdb_id:
            raise TMDBError(f"Not an IMDb link or id: {link}")

        cached = self.cache.get_imdb_lookup(imdb_id)
        if cached:
            return TMDBSeries.from_dict(cached)

        data = self._request(f"/find/{imdb_id}", {"external_source": "imdb_id"})
        if not data or not data.get("tv_results"):
            return None

        series = TMDBSeries.from_result(data["tv_results"][0])
        self.cache.set_imdb_lookup(imdb_id, series.to_dict())
        return series

    def get_series(self, series_id: int) -> tuple[TMDBSeries, list[int]] | None:
        """
        Fetch a series and the season numbers it has.

        Returns:
            (series, season_numbers) or None if not found
        """
        data = self._request(f"/tv/{series_id}")
        if not data:
            return None
        seasons = sorted(
            season["season_number"]
            for season in data.get("seasons", [])
            if season.get("season_number") is not None
        )
        return TMDBSeries.from_result(data), seasons

    def get_season(self, series_id: int, season: int) -> list[CatalogEntry]:
        """
        Fetch the episodes of one season.

        Args:
            series_id: TMDB series ID
            season: Season number (0 for specials)

        Returns:
            Catalog entries for the season; empty if TMDB has none
        """
        cached = self.cache.get_season(series_id, season)
        if cached is None:
            data = self._request(f"/tv/{series_id}/season/{season}")
            if not data:
                return []
            cached = [
                {
                    "season": ep.get("season_number", season),
                    "episode": ep["episode_number"],
                    "title": ep.get("name", ""),
                    "air_date": ep.get("air_date"),
                }
                for ep in data.get("episodes", [])
                if ep.get("episode_number") is not None
            ]
            self.cache.set_season(series_id, season, cached)

        return [
            CatalogEntry(
                season=ep["season"],
                episode=ep["episode"],
                title=ep["title"],
                air_date=_parse_date(ep.get("air_date")),
            )
            for ep in cached
        ]

    def get_catalog(
        self,
        series_id: int,
        seasons: list[int] | None = None,
    ) -> list[CatalogEntry]:
        """
        Fetch the episode catalog of a series.

        Args:
            series_id: TMDB series ID
            seasons: Seasons to fetch; all of them (specials included) when None

        Returns:
            Catalog entries ordered by season then episode

        Raises:
            TMDBError: If the series does not exist
        """
        if seasons is None:
            found = self.get_series(series_id)
            if found is None:
                raise TMDBError(f"TMDB series {series_id} not found")
            _, seasons = found

        entries: list[CatalogEntry] = []
        for season in seasons:
            entries.extend(self.get_season(series_id, season))
        log.info("Fetched %d episodes for TMDB series %d", len(entries), series_id)
        return entries
