"""Identity resolution state machines for movies and TV episodes.

Every file starts in ``LOCAL_ONLY`` with a seed identity taken from
embedded metadata or the filename.  From there exactly one transition
is allowed: to ``AUTHORITATIVE_CONFIRMED`` (TMDB matched), to
``LLM_FALLBACK`` (TMDB never matched but the LLM named the title) or to
``SKIPPED``.  Staying in ``LOCAL_ONLY`` is terminal too; it means no
provider was configured and the seed is used as-is.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .formatter import movie_target, show_target
from .llm import LLMCorrector, LLMError
from .metadata_extractor import extract_video_metadata, is_plausible_title
from .models import (
    ParsedShowInfo,
    PipelineState,
    Provenance,
    TMDBMovie,
    TMDBSeries,
    VideoMetadata,
)
from .parser import parse_movie_filename, parse_show_filename, split_trailing_year
from .segmenter import WordSegmenter
from .tmdb import TMDBClient

log = logging.getLogger(__name__)

VideoExtractor = Callable[[Path], VideoMetadata | None]

VALID_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.LOCAL_ONLY: frozenset({
        PipelineState.AUTHORITATIVE_CONFIRMED,
        PipelineState.LLM_FALLBACK,
        PipelineState.SKIPPED,
    }),
    PipelineState.AUTHORITATIVE_CONFIRMED: frozenset(),
    PipelineState.LLM_FALLBACK: frozenset(),
    PipelineState.SKIPPED: frozenset(),
}


class InvalidTransition(Exception):
    """Raised when a pipeline attempts a transition the table forbids."""
    pass


@dataclass
class PipelineRun:
    """State shared by every pipeline: current state plus skip bookkeeping."""
    source: Path
    state: PipelineState = PipelineState.LOCAL_ONLY
    provenance: Provenance = Provenance.FILENAME
    skip_reason: str | None = None

    def transition(self, new_state: PipelineState) -> None:
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {new_state.value}")
        log.debug("%s: %s -> %s", self.source.name, self.state.value, new_state.value)
        self.state = new_state

    def skip(self, reason: str) -> None:
        self.skip_reason = reason
        self.transition(PipelineState.SKIPPED)

    @property
    def skipped(self) -> bool:
        return self.state is PipelineState.SKIPPED


@dataclass
class ResolvedIdentity(PipelineRun):
    """Working record for a movie or an episode.

    For episodes ``title``/``year`` describe the series.
    """
    kind: str = "movie"
    title: str | None = None
    year: int | None = None
    season_number: int | None = None
    episode_number: int | None = None
    episode_title: str | None = None
    additional_episodes: tuple[int, ...] = ()
    tmdb_id: int | None = None

    @property
    def episodes(self) -> list[int]:
        if self.episode_number is None:
            return []
        return [self.episode_number, *self.additional_episodes]

    def describe(self) -> str:
        name = f"{self.title} ({self.year})" if self.year else str(self.title)
        if self.kind == "show" and self.season_number is not None and self.episode_number is not None:
            name += f" S{self.season_number:02d}E{self.episode_number:02d}"
            if self.episode_title:
                name += f" - {self.episode_title}"
        return name

    def target(self, root: Path) -> Path:
        """Canonical path under *root* (raises PathError)."""
        extension = self.source.suffix
        if self.kind == "show":
            return show_target(
                root,
                self.title or "",
                self.year,
                self.season_number or 0,
                self.episodes,
                self.episode_title,
                extension,
            )
        return movie_target(root, self.title or "", self.year, extension)


def _llm_failed(identity: ResolvedIdentity, exc: LLMError) -> None:
    """Apply the skip policy for a failed correction."""
    log.warning("LLM correction failed for %s: %s", identity.source.name, exc)
    log.debug("LLM failure detail", exc_info=exc)
    identity.skip(f"LLM correction failed: {exc}")


class MovieResolver:
    """Resolve a movie file to a canonical title and year.

    Args:
        tmdb: TMDB client, or None when no key is configured
        llm: LLM corrector, or None when no key is configured
        segmenter: Segmenter for filename parsing
        extract: Embedded-metadata extractor
    """

    kind = "movie"

    def __init__(
        self,
        tmdb: TMDBClient | None,
        llm: LLMCorrector | None,
        segmenter: WordSegmenter | None = None,
        extract: VideoExtractor = extract_video_metadata,
    ):
        self.tmdb = tmdb
        self.llm = llm
        self.segmenter = segmenter
        self.extract = extract

    def resolve(self, path: Path) -> ResolvedIdentity:
        identity = ResolvedIdentity(source=path, kind=self.kind)
        self._seed(identity)
        log.debug(
            "Seed: title='%s', year=%s (%s)",
            identity.title, identity.year, identity.provenance.value,
        )

        if not identity.title:
            identity.skip("no usable title in filename or embedded metadata")
            return identity

        if self.tmdb is None:
            return identity

        movie = self.tmdb.search_movie(identity.title, identity.year)
        if movie:
            self._confirm(identity, movie)
            return identity

        if self.llm is None:
            identity.skip(f"no TMDB match for '{identity.title}' and no LLM configured")
            return identity

        try:
            suggestion = self.llm.correct_movie(path.name, identity.title, identity.year)
        except LLMError as exc:
            _llm_failed(identity, exc)
            return identity

        movie = self.tmdb.search_movie(suggestion.title, suggestion.year)
        if movie:
            self._confirm(identity, movie)
        elif suggestion.title.strip():
            identity.title = suggestion.title.strip()
            identity.year = suggestion.year
            identity.provenance = Provenance.LLM_FALLBACK
            identity.transition(PipelineState.LLM_FALLBACK)
        else:
            identity.skip("LLM returned an empty title")
        return identity

    def _seed(self, identity: ResolvedIdentity) -> None:
        embedded = self.extract(identity.source)
        if embedded and is_plausible_title(embedded.title):
            identity.title = embedded.title.strip()
            identity.year = embedded.year
            identity.provenance = Provenance.EMBEDDED
            return

        # Searches tolerate glued words better than the segmenter splits them.
        gentle = self.tmdb is not None
        parsed = parse_movie_filename(
            identity.source.name,
            enable_wordlist_splitting=not gentle,
            segmenter=self.segmenter,
        )
        identity.title = parsed.title.strip() or None
        identity.year = parsed.year
        identity.provenance = Provenance.FILENAME

    @staticmethod
    def _confirm(identity: ResolvedIdentity, movie: TMDBMovie) -> None:
        log.info("TMDB match: id=%s, title='%s', year=%s", movie.id, movie.title, movie.year)
        identity.title = movie.title
        identity.year = movie.year
        identity.tmdb_id = movie.id
        identity.provenance = Provenance.AUTHORITATIVE
        identity.transition(PipelineState.AUTHORITATIVE_CONFIRMED)


def merge_show_seed(
    identity: ResolvedIdentity,
    parsed: ParsedShowInfo,
    embedded: VideoMetadata | None,
) -> None:
    """Fill *identity* from embedded tags, then the filename, field by field."""
    embedded = embedded or VideoMetadata()

    identity.title = embedded.series_title or parsed.series_title
    identity.season_number = (
        embedded.season_number if embedded.season_number is not None else parsed.season_number
    )
    identity.episode_number = (
        embedded.episode_number if embedded.episode_number is not None else parsed.episode_number
    )
    identity.episode_title = embedded.episode_title or parsed.episode_title
    if identity.episode_number == parsed.episode_number:
        identity.additional_episodes = parsed.additional_episodes

    filename_title_in_use = bool(parsed.series_title) and (
        not embedded.series_title
        or embedded.series_title.strip().lower() == parsed.series_title.strip().lower()
    )
    if embedded.year and embedded.series_title:
        identity.year = embedded.year
    elif filename_title_in_use:
        identity.year = parsed.year

    if any((
        embedded.series_title,
        embedded.season_number is not None,
        embedded.episode_number is not None,
        embedded.episode_title,
    )):
        identity.provenance = Provenance.EMBEDDED

    if identity.episode_number is not None and identity.season_number is None and identity.title:
        identity.season_number = 1


def folder_series_year(path: Path, title: str) -> int | None:
    """Year of an enclosing ``<series> (<year>)`` folder named after *title*.

    Organized episodes carry the series year only in the folder name.
    """
    wanted = title.strip().lower()
    for folder in (path.parent.parent, path.parent):
        name, year = split_trailing_year(folder.name)
        if year and name.strip().lower() == wanted:
            return year
    return None


class ShowResolver:
    """Resolve an episode file to series, season, episode and episode title."""

    kind = "show"

    def __init__(
        self,
        tmdb: TMDBClient | None,
        llm: LLMCorrector | None,
        segmenter: WordSegmenter | None = None,
        extract: VideoExtractor = extract_video_metadata,
    ):
        self.tmdb = tmdb
        self.llm = llm
        self.segmenter = segmenter
        self.extract = extract

    def resolve(self, path: Path) -> ResolvedIdentity:
        identity = ResolvedIdentity(source=path, kind=self.kind)
        parsed = parse_show_filename(path.name, segmenter=self.segmenter)
        merge_show_seed(identity, parsed, self.extract(path))
        if identity.title and identity.year is None:
            identity.year = folder_series_year(path, identity.title)
        log.debug(
            "Seed: series='%s', season=%s, episode=%s, episode_title='%s' (%s)",
            identity.title, identity.season_number, identity.episode_number,
            identity.episode_title, identity.provenance.value,
        )

        if not identity.title and identity.season_number is None and identity.episode_number is None:
            identity.skip("no series title, season or episode found")
            return identity
        if identity.season_number is None or identity.episode_number is None:
            identity.skip("no season/episode number found")
            return identity
        if not identity.title:
            identity.skip("no series title found")
            return identity

        if self.tmdb is None:
            return identity

        self._resolve_series(identity)
        if identity.state is PipelineState.AUTHORITATIVE_CONFIRMED:
            self._resolve_episode_title(identity)
        return identity

    def _resolve_series(self, identity: ResolvedIdentity) -> None:
        series = self.tmdb.search_series(identity.title, identity.year)
        if series:
            self._confirm(identity, series)
            return

        if self.llm is None:
            identity.skip(f"no TMDB match for series '{identity.title}' and no LLM configured")
            return

        try:
            suggestion = self.llm.correct_show(
                identity.source.name,
                identity.title,
                identity.season_number,
                identity.episode_number,
            )
        except LLMError as exc:
            _llm_failed(identity, exc)
            return

        series = self.tmdb.search_series(suggestion.series_title, suggestion.series_year)
        if series:
            self._confirm(identity, series)
        elif suggestion.series_title.strip():
            identity.title = suggestion.series_title.strip()
            identity.year = suggestion.series_year
            identity.provenance = Provenance.LLM_FALLBACK
            identity.transition(PipelineState.LLM_FALLBACK)
        else:
            identity.skip("LLM returned an empty series title")

    def _resolve_episode_title(self, identity: ResolvedIdentity) -> None:
        episodes = self.tmdb.get_season_episodes(identity.tmdb_id, identity.season_number)
        match = next(
            (ep for ep in episodes or [] if ep.episode_number == identity.episode_number),
            None,
        )
        if match and match.name:
            identity.episode_title = match.name
            return
        log.warning(
            "Episode S%02dE%02d of '%s' not found on TMDB; keeping episode title %r",
            identity.season_number, identity.episode_number, identity.title, identity.episode_title,
        )

    @staticmethod
    def _confirm(identity: ResolvedIdentity, series: TMDBSeries) -> None:
        log.info(
            "TMDB match: id=%s, name='%s', first aired %s",
            series.id, series.name, series.first_air_year,
        )
        identity.title = series.name
        identity.year = series.first_air_year
        identity.tmdb_id = series.id
        identity.provenance = Provenance.AUTHORITATIVE
        identity.transition(PipelineState.AUTHORITATIVE_CONFIRMED)
