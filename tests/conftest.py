"""Shared fixtures and in-memory fakes for provider collaborators."""
from pathlib import Path

import pytest

from organizer.llm import LLMError
from organizer.models import MBRelease, MBReleaseDetail
from organizer.segmenter import WordSegmenter


SMALL_DICTIONARY = {
    "the", "dark", "knight", "movie", "title", "my", "matrix", "breaking", "bad",
    "show", "name", "office", "doctor", "who", "some", "film", "remastered",
    "star", "stars", "wars", "game", "of", "thrones",
}


@pytest.fixture
def segmenter():
    return WordSegmenter(words=SMALL_DICTIONARY)


@pytest.fixture
def no_metadata():
    return lambda path: None


def touch(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content or path.name)
    return path


class FakeTMDB:
    """Answers lookups from dicts keyed by lowercase title.

    A (title, year) key takes precedence over the bare title.
    """

    def __init__(self, movies=None, series=None, seasons=None):
        self.movies = movies or {}
        self.series = series or {}
        self.seasons = seasons or {}
        self.calls = []

    def search_movie(self, title, year=None):
        self.calls.append(("movie", title, year))
        return self.movies.get(title.lower())

    def search_series(self, title, year=None):
        self.calls.append(("series", title, year))
        return self.series.get((title.lower(), year)) or self.series.get(title.lower())

    def get_season_episodes(self, series_id, season):
        self.calls.append(("season", series_id, season))
        return self.seasons.get((series_id, season))


class FakeLLM:
    """Returns canned suggestions, or raises LLMError when *error* is set."""

    def __init__(self, movie=None, show=None, music=None, error=None):
        self.movie = movie
        self.show = show
        self.music = music
        self.error = error
        self.calls = []

    def _answer(self, kind, value, *args):
        self.calls.append((kind, *args))
        if self.error:
            raise LLMError(self.error)
        return value

    def correct_movie(self, filename, title=None, year=None):
        return self._answer("movie", self.movie, filename, title, year)

    def correct_show(self, filename, series_title=None, season=None, episode=None):
        return self._answer("show", self.show, filename, series_title, season, episode)

    def correct_music(self, filename, tags):
        return self._answer("music", self.music, filename, tags)


class FakeMusicBrainz:
    """Release and recording searches answered per query string."""

    def __init__(self, releases=None, recordings=None, details=None):
        self.releases = releases or {}
        self.recordings = recordings or {}
        self.details = details or {}
        self.queries = []

    def search_releases(self, query, limit=5):
        self.queries.append(("release", query))
        return list(self.releases.get(query, []))

    def search_recordings(self, query, limit=5):
        self.queries.append(("recording", query))
        return list(self.recordings.get(query, []))

    def get_release_tracks(self, release_id):
        self.queries.append(("lookup", release_id))
        return self.details.get(release_id)


def release_pair(detail: MBReleaseDetail, score: int) -> tuple[MBRelease, MBReleaseDetail]:
    """Search hit plus lookup result for the same release."""
    hit = MBRelease(
        id=detail.id,
        title=detail.title,
        artist_credit=list(detail.artist_credit),
        date=detail.date,
        release_group_type=detail.release_group_type,
        score=score,
    )
    return hit, detail
