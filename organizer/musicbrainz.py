"""MusicBrainz catalog client built on musicbrainzngs."""
import logging

import musicbrainzngs

from . import __version__
from .models import MBRelease, MBReleaseDetail, MBTrack

log = logging.getLogger(__name__)

APP_NAME = "jforg"
DEFAULT_SEARCH_LIMIT = 5
RELEASE_INCLUDES = ["recordings", "artist-credits", "release-groups"]


class MusicBrainzError(Exception):
    """Exception raised for MusicBrainz client errors."""
    pass


def _credit_names(credit: list | None) -> list[str]:
    """Artist names from an ``artist-credit`` list (join phrases skipped)."""
    names = []
    for entry in credit or []:
        if isinstance(entry, dict):
            name = entry.get("name") or entry.get("artist", {}).get("name")
            if name:
                names.append(name)
    return names


def _credit_phrase(credit: list | None) -> str | None:
    """Full credit as printed, e.g. "Artist A feat. Artist B"."""
    parts = []
    for entry in credit or []:
        if isinstance(entry, dict):
            parts.append(entry.get("name") or entry.get("artist", {}).get("name", ""))
        else:
            parts.append(entry)
    phrase = "".join(parts).strip()
    return phrase or None


def _score(entry: dict) -> int:
    try:
        return int(entry.get("ext:score", 0))
    except (TypeError, ValueError):
        return 0


def _track_number(track: dict) -> int | None:
    for key in ("number", "position"):
        value = str(track.get(key, "")).strip()
        if value.isdigit():
            return int(value)
    return None


def quote(value: str) -> str:
    """Make *value* safe inside a quoted Lucene term."""
    return value.replace("\\", " ").replace('"', " ").strip()


class MusicBrainzClient:
    """Thin wrapper around the musicbrainzngs web-service functions."""

    def __init__(self, contact: str, app_name: str = APP_NAME, app_version: str = __version__):
        if not contact:
            raise MusicBrainzError("MusicBrainz requires a contact URL or e-mail in the user agent")
        musicbrainzngs.set_useragent(app_name, app_version, contact)

    def _release_from_search(self, entry: dict, score: int | None = None) -> MBRelease:
        group = entry.get("release-group", {})
        return MBRelease(
            id=entry["id"],
            title=entry.get("title", ""),
            artist_credit=_credit_names(entry.get("artist-credit")),
            date=entry.get("date"),
            release_group_type=group.get("primary-type") or group.get("type"),
            score=_score(entry) if score is None else score,
        )

    def search_releases(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[MBRelease]:
        """
        Search releases with a Lucene query.

        Returns:
            Releases ranked by MusicBrainz score (highest first); empty on error
        """
        log.debug("MusicBrainz release search: %s", query)
        try:
            result = musicbrainzngs.search_releases(query=query, limit=limit)
        except musicbrainzngs.MusicBrainzError as e:
            log.warning("MusicBrainz release search failed: %s", e)
            return []

        releases = [self._release_from_search(r) for r in result.get("release-list", [])]
        releases.sort(key=lambda r: r.score, reverse=True)
        return releases

    def search_recordings(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[MBRelease]:
        """
        Search recordings and return the releases they appear on.

        Each release carries the score of the recording that led to it.
        A release reachable from several recordings is listed once.
        """
        log.debug("MusicBrainz recording search: %s", query)
        try:
            result = musicbrainzngs.search_recordings(query=query, limit=limit)
        except musicbrainzngs.MusicBrainzError as e:
            log.warning("MusicBrainz recording search failed: %s", e)
            return []

        releases: list[MBRelease] = []
        seen: set[str] = set()
        for recording in result.get("recording-list", []):
            score = _score(recording)
            for entry in recording.get("release-list", []):
                if entry.get("id") in seen:
                    continue
                seen.add(entry["id"])
                release = self._release_from_search(entry, score=score)
                if not release.artist_credit:
                    release.artist_credit = _credit_names(recording.get("artist-credit"))
                releases.append(release)
        releases.sort(key=lambda r: r.score, reverse=True)
        return releases

    def get_release_tracks(self, release_id: str) -> MBReleaseDetail | None:
        """
        Fetch a release with its full track list.

        Returns:
            MBReleaseDetail, or None when the lookup fails
        """
        try:
            result = musicbrainzngs.get_release_by_id(release_id, includes=RELEASE_INCLUDES)
        except musicbrainzngs.MusicBrainzError as e:
            log.warning("MusicBrainz release lookup failed for %s: %s", release_id, e)
            return None

        release = result.get("release")
        if not release:
            return None

        tracks = []
        for medium in release.get("medium-list", []):
            for track in medium.get("track-list", []):
                recording = track.get("recording", {})
                credit = track.get("artist-credit") or recording.get("artist-credit")
                tracks.append(MBTrack(
                    title=track.get("title") or recording.get("title", ""),
                    number=_track_number(track),
                    artist_credit=track.get("artist-credit-phrase")
                    or recording.get("artist-credit-phrase")
                    or _credit_phrase(credit),
                ))

        group = release.get("release-group", {})
        return MBReleaseDetail(
            id=release["id"],
            title=release.get("title", ""),
            artist_credit=_credit_names(release.get("artist-credit")),
            date=release.get("date"),
            release_group_type=group.get("primary-type") or group.get("type"),
            tracks=tracks,
        )
