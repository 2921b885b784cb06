"""TMDB API client module."""
import logging
import time
from typing import Any

import requests

from .models import TMDBMovie, TMDBSeries, TMDBEpisode

log = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10
RATE_LIMIT_DELAY = 0.25  # 250ms between requests to avoid rate limiting
DEFAULT_LANGUAGE = "en-US"


def _year_from_date(value: str | None) -> int | None:
    """Extract the year from a TMDB ``YYYY-MM-DD`` date."""
    if value and len(value) >= 4 and value[:4].isdigit():
        return int(value[:4])
    return None


class TMDBError(Exception):
    """Exception raised for TMDB API errors."""
    pass


class TMDBClient:
    """Client for TMDB API.

    Lookups never raise for network or HTTP failures: they log the
    problem and return None so the caller can fall back.
    """

    def __init__(
        self,
        api_key: str | None,
        language: str | None = None,
        session: requests.Session | None = None,
    ):
        """
        Initialize TMDB client.

        Args:
            api_key: TMDB v3 API key or v4 read access token.
            language: TMDB API language tag (e.g. "en-US"). Falls back to
                      DEFAULT_LANGUAGE when *None*.
            session: Optional requests session (module-level requests is
                     used otherwise).

        Raises:
            TMDBError: If API key is missing
        """
        if not api_key:
            raise TMDBError(
                "TMDB API key not found.\n"
                "Set it using one of these methods:\n"
                "  1. Environment variable: export TMDB_API_KEY=your_key\n"
                "  2. Create a .env file with: TMDB_API_KEY=your_key\n"
                "Get your free API key at: https://www.themoviedb.org/settings/api"
            )
        self.api_key = api_key
        self.language = language or DEFAULT_LANGUAGE
        self.session = session
        self._last_request_time = 0.0

    @property
    def uses_bearer_token(self) -> bool:
        """v4 read access tokens are JWTs, v3 keys are 32 hex chars."""
        return self.api_key.startswith("eyJ") or len(self.api_key) > 40

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
            endpoint: API endpoint (e.g., '/search/movie')
            params: Query parameters
            retries: Number of attempts on timeouts and connection errors

        Returns:
            JSON response or None on error
        """
        self._rate_limit()

        url = f"{TMDB_BASE_URL}{endpoint}"
        all_params: dict[str, Any] = {"language": self.language, **(params or {})}
        headers = {"Accept": "application/json"}
        if self.uses_bearer_token:
            headers["Authorization"] = f"Bearer {self.api_key}"
        else:
            all_params["api_key"] = self.api_key

        # Log the request (hide API key)
        log_params = {k: v for k, v in all_params.items() if k != "api_key"}
        log.debug("GET %s params=%s", endpoint, log_params)

        getter = self.session.get if self.session else requests.get
        for attempt in range(retries):
            try:
                response = getter(url, params=all_params, headers=headers, timeout=DEFAULT_TIMEOUT)

                if response.status_code == 429:  # Rate limited
                    retry_after = int(response.headers.get("Retry-After", 1))
                    log.debug("Rate limited, waiting %ss", retry_after)
                    time.sleep(retry_after)
                    continue

                if response.status_code == 404:
                    log.debug("Not found: %s", endpoint)
                    return None

                response.raise_for_status()
                data = response.json()
                if "results" in data:
                    log.debug("Found %d results", len(data["results"]))
                return data

            except requests.exceptions.Timeout:
                log.debug("Timeout (attempt %d/%d)", attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                log.warning("TMDB request timed out: %s", endpoint)
                return None
            except requests.exceptions.RequestException as e:
                log.debug("Request error: %s (attempt %d/%d)", e, attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                log.warning("TMDB request failed: %s (%s)", endpoint, e)
                return None
            except ValueError as e:
                log.warning("TMDB returned invalid JSON for %s: %s", endpoint, e)
                return None

        return None

    def search_movie(self, title: str, year: int | None = None) -> TMDBMovie | None:
        """
        Search for a movie on TMDB.

        The first result is taken as-is; TMDB already ranks by relevance.

        Args:
            title: Movie title to search for
            year: Optional release year

        Returns:
            TMDBMovie if found, None otherwise
        """
        params: dict[str, Any] = {"query": title}
        if year:
            params["year"] = year

        data = self._request("/search/movie", params)
        if not data or not data.get("results"):
            return None

        first = data["results"][0]
        movie_title = first.get("title") or first.get("original_title") or ""
        if not movie_title.strip():
            return None

        return TMDBMovie(
            id=first["id"],
            title=movie_title,
            original_title=first.get("original_title", ""),
            year=_year_from_date(first.get("release_date")),
            overview=first.get("overview", ""),
        )

    def search_series(self, title: str, year: int | None = None) -> TMDBSeries | None:
        """
        Search for a TV series on TMDB.

        Args:
            title: Series title to search for
            year: Optional first-air year; a result airing that year is
                  preferred over the first result

        Returns:
            TMDBSeries if found, None otherwise
        """
        data = self._request("/search/tv", {"query": title})
        if not data or not data.get("results"):
            return None

        results = data["results"]
        best = results[0]
        if year:
            for result in results:
                if _year_from_date(result.get("first_air_date")) == year:
                    best = result
                    break

        name = best.get("name") or best.get("original_name") or ""
        if not name.strip():
            return None

        return TMDBSeries(
            id=best["id"],
            name=name,
            original_name=best.get("original_name", ""),
            first_air_year=_year_from_date(best.get("first_air_date")),
            overview=best.get("overview", ""),
        )

    def get_season_episodes(self, series_id: int, season: int) -> list[TMDBEpisode] | None:
        """
        Get the episode list of one season.

        Args:
            series_id: TMDB series ID
            season: Season number

        Returns:
            Episodes in TMDB order, or None if the season could not be fetched
        """
        data = self._request(f"/tv/{series_id}/season/{season}")
        if not data:
            return None

        episodes = []
        for entry in data.get("episodes", []):
            if entry.get("episode_number") is None:
                continue
            episodes.append(TMDBEpisode(
                series_id=series_id,
                season_number=entry.get("season_number", season),
                episode_number=entry["episode_number"],
                name=entry.get("name", ""),
                overview=entry.get("overview", ""),
            ))
        return episodes
