"""Formatter module for building canonical library paths.

Layouts:
  movies  ``Title (Year)/Title (Year).ext``
  shows   ``Series (Year)/Season 01/Series - S01E02 - Episode.ext``
  music   ``Artist/Album (Year)/NN - Title.ext``
"""
import re
from pathlib import Path

from .models import MBReleaseDetail, MBTrack, AudioMetadata, MusicPathComponents


VARIOUS_ARTISTS = "Various Artists"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
UNKNOWN_TRACK = "Unknown Track"

# Characters stripped from every path segment
INVALID_CHARS = re.compile(r'[/\\?%*:|"<>.]')


class PathError(Exception):
    """Exception raised when no valid target path can be built."""
    pass


def sanitize_name(name: str) -> str:
    """
    Strip characters that are unsafe in a path segment.

    Args:
        name: The segment to sanitize

    Returns:
        Sanitized segment (may be empty)
    """
    sanitized = INVALID_CHARS.sub('', name)
    return re.sub(r'\s+', ' ', sanitized).strip()


def require_name(name: str | None, what: str) -> str:
    """Sanitize *name*, raising PathError when nothing is left."""
    sanitized = sanitize_name(name or "")
    if not sanitized:
        raise PathError(f"{what} is empty after sanitization: {name!r}")
    return sanitized


def with_year(title: str, year: int | None) -> str:
    return f"{title} ({year})" if year else title


def format_episode_code(season: int, episodes: list[int]) -> str:
    """S01E02, or S01E02E03 for multi-episode files."""
    return f"S{season:02d}" + "".join(f"E{ep:02d}" for ep in episodes)


def movie_target(root: Path, title: str, year: int | None, extension: str) -> Path:
    """``root/Title (Year)/Title (Year).ext``."""
    name = with_year(require_name(title, "Movie title"), year)
    return root / name / f"{name}{extension}"


def show_target(
    root: Path,
    series_title: str,
    series_year: int | None,
    season: int,
    episodes: list[int],
    episode_title: str | None,
    extension: str,
) -> Path:
    """
    ``root/Series (Year)/Season NN/Series - SxxEyy - Episode.ext``.

    The episode title is dropped for multi-episode files and when it
    sanitizes to nothing.
    """
    series = require_name(series_title, "Series title")
    folder = with_year(series, series_year)
    parts = [series, format_episode_code(season, episodes)]
    if episode_title and len(episodes) == 1:
        clean_episode = sanitize_name(episode_title)
        if clean_episode:
            parts.append(clean_episode)
    return root / folder / f"Season {season:02d}" / (" - ".join(parts) + extension)


def is_compilation(release: MBReleaseDetail) -> bool:
    """Release-group type "compilation" or a "Various Artists" credit."""
    if (release.release_group_type or "").lower() == "compilation":
        return True
    return any(name.strip().lower() == VARIOUS_ARTISTS.lower() for name in release.artist_credit)


def _track_prefix(number: int | None) -> str:
    return f"{number:02d}" if number is not None else "00"


def music_components_from_release(
    root: Path,
    release: MBReleaseDetail,
    track: MBTrack,
    tags: AudioMetadata,
    extension: str,
) -> MusicPathComponents:
    """Path components for a track matched against a catalog release.

    Catalog values win; local tags fill whatever the catalog lacks.
    """
    release_artist = " & ".join(release.artist_credit) or tags.album_artist or tags.artist or UNKNOWN_ARTIST
    number = track.number if track.number is not None else tags.track_number
    file_stem = f"{_track_prefix(number)} - "

    if is_compilation(release):
        artist_folder = VARIOUS_ARTISTS
        track_artist = sanitize_name(track.artist_credit or tags.artist or "")
        if track_artist and track_artist.lower() != VARIOUS_ARTISTS.lower():
            file_stem += f"{track_artist} - "
    else:
        artist_folder = require_name(release_artist, "Artist")

    album_folder = with_year(require_name(release.title or UNKNOWN_ALBUM, "Album"), release.year or tags.year)
    file_name = file_stem + require_name(track.title or tags.title or UNKNOWN_TRACK, "Track title") + extension
    return MusicPathComponents(
        artist_folder=artist_folder,
        album_folder=album_folder,
        file_name=file_name,
        full_path=root / artist_folder / album_folder / file_name,
    )


def music_components_from_tags(root: Path, tags: AudioMetadata, extension: str) -> MusicPathComponents:
    """Path components built from local tags alone."""
    artist_folder = require_name(tags.album_artist or tags.artist or UNKNOWN_ARTIST, "Artist")
    album_folder = with_year(require_name(tags.album or UNKNOWN_ALBUM, "Album"), tags.year)

    file_stem = f"{_track_prefix(tags.track_number)} - "
    track_artist = sanitize_name(tags.artist or "")
    if VARIOUS_ARTISTS.lower() in artist_folder.lower() and track_artist \
            and track_artist.lower() not in (VARIOUS_ARTISTS.lower(), artist_folder.lower()):
        file_stem += f"{track_artist} - "
    file_name = file_stem + require_name(tags.title or UNKNOWN_TRACK, "Track title") + extension
    return MusicPathComponents(
        artist_folder=artist_folder,
        album_folder=album_folder,
        file_name=file_name,
        full_path=root / artist_folder / album_folder / file_name,
    )
