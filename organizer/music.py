"""Track identification against MusicBrainz.

Local tags are tried first (strict score threshold).  When that finds
nothing the LLM proposes a corrected artist/album/title and a second,
looser search runs.  A file with tags always gets a path: without a
catalog match it is named from its tags alone.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .detection import PipelineRun
from .formatter import (
    music_components_from_release,
    music_components_from_tags,
    sanitize_name,
)
from .llm import GENERIC_ALBUM_PATTERN, LLMCorrector, LLMError, MusicSuggestion
from .metadata_extractor import extract_audio_metadata
from .models import (
    AudioMetadata,
    MBRelease,
    MBReleaseDetail,
    MBTrack,
    MusicPathComponents,
    PipelineState,
    Provenance,
)
from .musicbrainz import MusicBrainzClient, quote

log = logging.getLogger(__name__)

MIN_SCORE_FROM_TAGS = 70
MIN_SCORE_AFTER_LLM = 65

AudioExtractor = Callable[[Path], AudioMetadata | None]


def normalize_title(title: str | None) -> str:
    """Lowercase, path-safe form used for title comparison."""
    return sanitize_name(title or "").lower()


def is_generic_album(album: str | None) -> bool:
    return bool(album and GENERIC_ALBUM_PATTERN.match(album.strip()))


def find_matching_track(
    tracks: list[MBTrack],
    title: str | None,
    track_number: int | None,
) -> MBTrack | None:
    """
    Two-pass track match.

    Pass 1 (needs a track number): same number and, when both sides have
    a title, the same or a containing title.  Without a search title a
    number-only match is accepted.
    Pass 2 (title only): exact title wins, otherwise the shortest track
    title containing the search title.
    """
    wanted = normalize_title(title)

    if track_number is not None:
        candidate = None
        for track in tracks:
            if track.number != track_number:
                continue
            track_title = normalize_title(track.title)
            if wanted and track_title:
                if track_title == wanted:
                    return track
                if wanted in track_title and candidate is None:
                    candidate = track
            elif candidate is None:
                candidate = track
        if candidate:
            return candidate

    if not wanted:
        return None

    best = None
    for track in tracks:
        track_title = normalize_title(track.title)
        if track_title == wanted:
            return track
        if track_title and wanted in track_title:
            if best is None or len(track_title) < len(normalize_title(best.title)):
                best = track
    return best


def release_query(album: str, artist: str | None = None, year: int | None = None) -> str:
    """Lucene query for a release search."""
    parts = [f'release:"{quote(album)}"']
    if artist:
        parts.append(f'artist:"{quote(artist)}"')
    if year:
        parts.append(f"date:{year}")
    return " AND ".join(parts)


def recording_query(title: str, artist: str | None = None) -> str:
    """Lucene query for a recording search."""
    parts = [f'recording:"{quote(title)}"']
    if artist:
        parts.append(f'artist:"{quote(artist)}"')
    return " AND ".join(parts)


@dataclass
class MusicIdentity(PipelineRun):
    """Working record for one audio file."""
    tags: AudioMetadata | None = None
    release: MBReleaseDetail | None = None
    track: MBTrack | None = None
    components: MusicPathComponents | None = None

    def describe(self) -> str:
        if self.release and self.track:
            return f"{', '.join(self.release.artist_credit) or '?'} - {self.release.title} - {self.track.title}"
        tags = self.tags or AudioMetadata()
        return f"{tags.artist or '?'} - {tags.album or '?'} - {tags.title or '?'}"

    def target(self, root: Path) -> Path:
        """Canonical path under *root* (raises PathError)."""
        extension = self.source.suffix
        tags = self.tags or AudioMetadata()
        if self.release and self.track:
            self.components = music_components_from_release(root, self.release, self.track, tags, extension)
        else:
            self.components = music_components_from_tags(root, tags, extension)
        return self.components.full_path


class MusicResolver:
    """Resolve an audio file to a catalog release and track.

    Args:
        musicbrainz: Catalog client, or None to name from tags only
        llm: LLM corrector, or None when no key is configured
        extract: Audio tag extractor
    """

    kind = "music"

    def __init__(
        self,
        musicbrainz: MusicBrainzClient | None,
        llm: LLMCorrector | None,
        extract: AudioExtractor = extract_audio_metadata,
    ):
        self.musicbrainz = musicbrainz
        self.llm = llm
        self.extract = extract

    def resolve(self, path: Path) -> MusicIdentity:
        identity = MusicIdentity(source=path, provenance=Provenance.EMBEDDED)
        tags = self.extract(path)
        if tags is None or tags.is_empty:
            identity.skip("no usable audio tags")
            return identity
        identity.tags = tags

        if self.musicbrainz is None:
            return identity

        if tags.album:
            releases = self.musicbrainz.search_releases(
                release_query(tags.album, tags.album_artist or tags.artist, tags.year)
            )
            match = self._match_releases(releases, MIN_SCORE_FROM_TAGS, [tags.title], tags.track_number)
            if match:
                self._confirm(identity, *match)
                return identity

        if self.llm is not None:
            self._resolve_with_llm(identity, tags)
        if identity.state is PipelineState.LOCAL_ONLY:
            log.info("No catalog match for %s; naming from local tags", path.name)
        return identity

    def _resolve_with_llm(self, identity: MusicIdentity, tags: AudioMetadata) -> None:
        try:
            suggestion = self.llm.correct_music(identity.source.name, {
                "artist": tags.artist,
                "album_artist": tags.album_artist,
                "album": tags.album,
                "title": tags.title,
                "year": tags.year,
                "track_number": tags.track_number,
            })
        except LLMError as exc:
            # Music never skips: the local tags still name the file.
            log.warning("LLM correction failed for %s: %s", identity.source.name, exc)
            log.debug("LLM failure detail", exc_info=exc)
            return

        releases = self._llm_candidates(suggestion, tags)
        titles = [suggestion.title, tags.title]
        track_number = suggestion.track_number if suggestion.track_number is not None else tags.track_number
        match = self._match_releases(releases, MIN_SCORE_AFTER_LLM, titles, track_number)
        if match:
            self._confirm(identity, *match)

    def _llm_candidates(self, suggestion: MusicSuggestion, tags: AudioMetadata) -> list[MBRelease]:
        """Catalog candidates for an LLM suggestion.

        An explicit, non-generic album is searched as a release.  With only
        a title, the local album is used if it is not generic; otherwise
        the title is searched as a recording.
        """
        album = None if suggestion.has_generic_album else suggestion.album
        if album:
            return self.musicbrainz.search_releases(
                release_query(album, suggestion.artist, suggestion.year)
            )
        if suggestion.title and tags.album and not is_generic_album(tags.album):
            return self.musicbrainz.search_releases(
                release_query(tags.album, suggestion.artist)
            )
        title = suggestion.title or tags.title
        if title:
            return self.musicbrainz.search_recordings(recording_query(title, suggestion.artist))
        return []

    def _match_releases(
        self,
        releases: list[MBRelease],
        min_score: int,
        titles: list[str | None],
        track_number: int | None,
    ) -> tuple[MBReleaseDetail, MBTrack] | None:
        """First release (in score order) containing the track."""
        titles = [t for i, t in enumerate(titles) if t and t not in titles[:i]] or [None]
        for release in releases:
            if release.score < min_score:
                continue
            detail = self.musicbrainz.get_release_tracks(release.id)
            if detail is None:
                continue
            for title in titles:
                track = find_matching_track(detail.tracks, title, track_number)
                if track:
                    log.debug(
                        "Matched '%s' on release %s (score %d)", track.title, release.id, release.score
                    )
                    return detail, track
        return None

    @staticmethod
    def _confirm(identity: MusicIdentity, release: MBReleaseDetail, track: MBTrack) -> None:
        log.info("MusicBrainz match: release='%s' (%s), track='%s'", release.title, release.id, track.title)
        identity.release = release
        identity.track = track
        identity.provenance = Provenance.AUTHORITATIVE
        identity.transition(PipelineState.AUTHORITATIVE_CONFIRMED)
