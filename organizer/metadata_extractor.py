"""Embedded tags from video and audio files.

Video containers (Matroska tags, MP4 atoms) are read through ffprobe,
at most twice per file with a short timeout.  Audio files go through
mutagen's easy tag interface.  Every reader returns ``None`` rather than
raising when a file has nothing usable.
"""

import json
import logging
import re
import subprocess
import sys
from pathlib import Path

from mutagen import File as MutagenFile
from mutagen import MutagenError

from .models import AudioMetadata, VideoMetadata
from .runtime import get_ffprobe_path, is_ffprobe_available

log = logging.getLogger(__name__)

_PROBE_FLAGS: dict = {}
if sys.platform == "win32":
    _PROBE_FLAGS["creationflags"] = subprocess.CREATE_NO_WINDOW

_PROBE_TIMEOUT = 5
_PROBE_ATTEMPTS = 2

# Tag keys, in priority order.
_SERIES_KEYS = ("show", "album_artist", "artist")
_SEASON_KEYS = ("season_number",)
_EPISODE_KEYS = ("episode_sort", "track")
_EPISODE_TITLE_KEYS = ("episode_id", "title")
_YEAR_KEYS = ("date", "year", "creation_time")

_MIN_YEAR = 1800
_MAX_YEAR = 2100

# Container titles that name a tool, a default or a camera, not a work.
_REJECT_EXACT = frozenset({
    "audio", "clip", "default", "media", "new project", "output",
    "recording", "sample", "test", "track", "untitled", "video",
})
_REJECT_PREFIXES = ("cap_", "dsc_", "img_", "mov_", "rec_", "vid_")

_REJECT_TOOL_RE = re.compile(
    r'\b(?:ffmpeg|handbrake|mkvmerge|mkvtoolnix|libx264|libx265'
    r'|lavf|lavc|lame|x264|x265|xvid|divx|hevc|avc'
    r'|matroska|webm|mp4box|gpac)\b',
    re.IGNORECASE,
)

_CAMERA_STEM_RE = re.compile(r'^[A-Z]{2,5}[\d_]+$')
_LEADING_INT_RE = re.compile(r'^\s*(\d+)')


def extract_video_metadata(filepath: str | Path) -> VideoMetadata | None:
    """Run ffprobe on *filepath* and map its tags to a VideoMetadata.

    Returns ``None`` when ffprobe is unavailable, the file does not
    exist, any error occurs, or the tags carry no title, series or year.
    """
    if not is_ffprobe_available():
        return None

    filepath = Path(filepath)
    if not filepath.is_file():
        return None

    data = _run_ffprobe(filepath)
    if data is None:
        return None

    return video_metadata_from_tags(_collect_tags(data))


def video_metadata_from_tags(tags: dict[str, str]) -> VideoMetadata | None:
    """Map lowercase ffprobe tag names to a VideoMetadata (or None)."""
    series = _first(tags, _SERIES_KEYS)
    title = tags.get("title")
    meta = VideoMetadata(
        title=title,
        year=_parse_year(_first(tags, _YEAR_KEYS)),
        series_title=series,
        season_number=_parse_int(_first(tags, _SEASON_KEYS)),
        episode_number=_parse_int(_first(tags, _EPISODE_KEYS)),
        episode_title=_first(tags, _EPISODE_TITLE_KEYS) if series else None,
    )
    if not (meta.title or meta.series_title or meta.year):
        return None
    return meta


def extract_audio_metadata(filepath: str | Path) -> AudioMetadata | None:
    """Read easy tags with mutagen.

    Returns ``None`` for unreadable files and files without any of
    title, artist, album artist or album.
    """
    try:
        audio = MutagenFile(filepath, easy=True)
    except (MutagenError, OSError) as exc:
        log.warning("Could not read tags from %s: %s", Path(filepath).name, exc)
        return None
    if audio is None or not audio.tags:
        return None

    def tag(key: str) -> str | None:
        try:
            values = audio.get(key)
        except (KeyError, ValueError):
            return None
        if values and str(values[0]).strip():
            return str(values[0]).strip()
        return None

    track_number, total_tracks = _parse_track(tag("tracknumber"))
    meta = AudioMetadata(
        title=tag("title"),
        artist=tag("artist"),
        album_artist=tag("albumartist"),
        album=tag("album"),
        year=_parse_year(tag("date") or tag("year") or tag("originaldate")),
        track_number=track_number,
        total_tracks=total_tracks,
    )
    if meta.is_empty:
        return None
    return meta


def is_plausible_title(text: str | None) -> bool:
    """True when a container title could name an actual movie.

    Tool banners ("Encoded with HandBrake"), placeholders ("untitled") and
    camera file stems ("VID_20260101_123456", "DSC00123") are rejected.
    """
    text = (text or "").strip()
    if not text:
        return False
    lowered = text.lower()
    if lowered in _REJECT_EXACT or lowered.startswith(_REJECT_PREFIXES):
        return False
    if _REJECT_TOOL_RE.search(text) or _CAMERA_STEM_RE.match(text):
        return False
    return True


def _collect_tags(data: dict) -> dict[str, str]:
    """Flatten format tags, then video stream tags, keyed by lowercase name."""
    tags: dict[str, str] = {}
    for key, val in data.get("format", {}).get("tags", {}).items():
        if isinstance(val, str) and val.strip():
            tags.setdefault(key.lower(), val.strip())

    for stream in data.get("streams", []):
        if stream.get("codec_type") != "video":
            continue
        for key, val in stream.get("tags", {}).items():
            if isinstance(val, str) and val.strip():
                tags.setdefault(key.lower(), val.strip())
        break
    return tags


def _first(tags: dict[str, str], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        if tags.get(key):
            return tags[key]
    return None


def _parse_int(value: str | None) -> int | None:
    if not value:
        return None
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


def _parse_year(value: str | None) -> int | None:
    """First four digits of a date-like string, if they form a sane year."""
    if not value:
        return None
    match = re.match(r'\s*(\d{4})', value)
    if not match:
        return None
    year = int(match.group(1))
    if _MIN_YEAR <= year <= _MAX_YEAR:
        return year
    return None


def _parse_track(value: str | None) -> tuple[int | None, int | None]:
    """Handle "3", "03" and "3/12" track tags."""
    if not value:
        return None, None
    number, _, total = value.partition("/")
    return _parse_int(number), _parse_int(total)


def _run_ffprobe(filepath: Path) -> dict | None:
    """ffprobe's JSON report for *filepath*, or None.

    A timeout is retried once; any other failure gives up immediately.
    """
    command = [
        get_ffprobe_path(), "-v", "quiet", "-print_format", "json",
        "-show_format", "-show_streams", str(filepath),
    ]
    for attempt in range(1, _PROBE_ATTEMPTS + 1):
        try:
            completed = subprocess.run(
                command, capture_output=True, text=True, timeout=_PROBE_TIMEOUT, **_PROBE_FLAGS
            )
        except subprocess.TimeoutExpired:
            log.debug("ffprobe timed out on %s (%d/%d)", filepath.name, attempt, _PROBE_ATTEMPTS)
            continue
        except OSError as exc:
            log.debug("Could not run ffprobe on %s: %s", filepath.name, exc)
            return None

        if completed.returncode != 0:
            log.debug("ffprobe exited %d on %s", completed.returncode, filepath.name)
            return None
        try:
            report = json.loads(completed.stdout)
        except ValueError:
            return None
        return report if isinstance(report, dict) else None
    return None
