"""Data models for the organizer package."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Provenance(Enum):
    """Where the winning identity values came from."""
    FILENAME = "filename"
    EMBEDDED = "embedded-metadata"
    AUTHORITATIVE = "authoritative"
    LLM_FALLBACK = "llm-fallback"


class PipelineState(Enum):
    LOCAL_ONLY = "local_only"
    AUTHORITATIVE_CONFIRMED = "authoritative_confirmed"
    LLM_FALLBACK = "llm_fallback"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ParsedMovieInfo:
    """Title and year guessed from a movie filename."""
    title: str
    year: int | None
    original_filename: str


@dataclass(frozen=True)
class ParsedShowInfo:
    """Series, season and episode guessed from an episode filename.

    ``additional_episodes`` holds the trailing numbers of a multi-episode
    marker such as ``S01E01E02``; ``episode_number`` is always the first.
    """
    original_filename: str
    series_title: str | None = None
    season_number: int | None = None
    episode_number: int | None = None
    episode_title: str | None = None
    year: int | None = None
    additional_episodes: tuple[int, ...] = ()


@dataclass
class VideoMetadata:
    """Container tags read from a video file."""
    title: str | None = None
    year: int | None = None
    series_title: str | None = None
    episode_title: str | None = None
    season_number: int | None = None
    episode_number: int | None = None


@dataclass
class AudioMetadata:
    """Tags read from an audio file."""
    title: str | None = None
    artist: str | None = None
    album_artist: str | None = None
    album: str | None = None
    year: int | None = None
    track_number: int | None = None
    total_tracks: int | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.title, self.artist, self.album_artist, self.album))


@dataclass
class TMDBMovie:
    """Represents a movie from TMDB."""
    id: int
    title: str
    original_title: str
    year: int | None
    overview: str = ""


@dataclass
class TMDBSeries:
    """Represents a TV series from TMDB."""
    id: int
    name: str
    original_name: str
    first_air_year: int | None
    overview: str = ""


@dataclass
class TMDBEpisode:
    """Represents an episode from TMDB."""
    series_id: int
    season_number: int
    episode_number: int
    name: str
    overview: str = ""


@dataclass
class MBRelease:
    """A release returned by a MusicBrainz search, with its search score."""
    id: str
    title: str
    artist_credit: list[str] = field(default_factory=list)
    date: str | None = None
    release_group_type: str | None = None
    score: int = 0

    @property
    def year(self) -> int | None:
        if self.date and len(self.date) >= 4 and self.date[:4].isdigit():
            return int(self.date[:4])
        return None


@dataclass
class MBTrack:
    title: str
    number: int | None
    artist_credit: str | None = None


@dataclass
class MBReleaseDetail:
    """A release with its flattened track list."""
    id: str
    title: str
    artist_credit: list[str] = field(default_factory=list)
    date: str | None = None
    release_group_type: str | None = None
    tracks: list[MBTrack] = field(default_factory=list)

    @property
    def year(self) -> int | None:
        if self.date and len(self.date) >= 4 and self.date[:4].isdigit():
            return int(self.date[:4])
        return None


@dataclass
class MusicPathComponents:
    """Folder and file names for a music track, relative to the library root."""
    artist_folder: str
    album_folder: str
    file_name: str
    full_path: Path


@dataclass
class MoveResult:
    """Represents the outcome of organizing one file."""
    original_path: Path
    new_path: Path | None = None
    moved: bool = False
    already_organized: bool = False
    skipped: bool = False
    skip_reason: str | None = None
    error: str | None = None
    provenance: Provenance | None = None
