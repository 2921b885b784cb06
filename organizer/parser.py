"""Parser module for extracting media information from file names."""
import os
import re
from pathlib import Path
from typing import Callable

from .models import ParsedMovieInfo, ParsedShowInfo
from .segmenter import WordSegmenter, default_segmenter, normalize_separators, collapse_whitespace


# Media extensions per category
VIDEO_EXTENSIONS = {
    '.mkv', '.m4v', '.mp4', '.avi', '.mov', '.wmv', '.flv', '.webm', '.mpg', '.mpeg'
}
MOVIE_EXTENSIONS = VIDEO_EXTENSIONS
SHOW_EXTENSIONS = VIDEO_EXTENSIONS
MUSIC_EXTENSIONS = {
    '.mp3', '.flac', '.m4a', '.aac', '.ogg', '.wav', '.opus', '.aiff', '.dsf', '.wma'
}

CATEGORY_EXTENSIONS = {
    "movies": MOVIE_EXTENSIONS,
    "shows": SHOW_EXTENSIONS,
    "music": MUSIC_EXTENSIONS,
}

# "Title (2023)"
PARENTHESIZED_YEAR_PATTERN = re.compile(r'(.+?)\s*\((\d{4})\)')

# Standalone 4-digit number, bounded by separators or string ends
YEAR_CANDIDATE_PATTERN = re.compile(r'(?<![A-Za-z0-9])(\d{4})(?![A-Za-z0-9])')

# "1080 p" left behind after segmentation is a resolution, not a year
RESOLUTION_SUFFIX_PATTERN = re.compile(r'\s?[pP](?![A-Za-z])')

# Year at the very end of a series title: "Doctor Who (2005)", "Doctor Who 2005"
TRAILING_YEAR_PATTERN = re.compile(r'^(?P<title>.*?)[\s\-]*\(?(?P<year>(?:19|20)\d{2})\)?$')

# Release tags that end an episode title (earliest position wins)
QUALITY_TAGS = (
    '1080p', '720p', '480p', 'hdtv', 'web-dl', 'webrip', 'bluray', 'x264', 'x265', 'aac', 'dts'
)

TITLE_SEPARATORS = ' -._'

# (season, episode, additional episodes)
EpisodeMarker = tuple[int | None, int, tuple[int, ...]]


def _season_episode(match: re.Match) -> EpisodeMarker:
    extra = match.groupdict().get('episode2')
    return (
        int(match.group('season')),
        int(match.group('episode')),
        (int(extra),) if extra else (),
    )


def _episode_only(match: re.Match) -> EpisodeMarker:
    return None, int(match.group('episode')), ()


# Episode patterns (order matters - first match wins)
SHOW_PATTERNS: list[tuple[re.Pattern, Callable[[re.Match], EpisodeMarker]]] = [
    # S01E04, S1E4, S01E04E05, S01E04-E05
    (
        re.compile(
            r'\bS(?P<season>\d{1,2})\s?E(?P<episode>\d{1,3})'
            r'(?:\s?-?\s?E(?P<episode2>\d{1,3}))?(?!\d)',
            re.IGNORECASE,
        ),
        _season_episode,
    ),
    # Season 1 Episode 4
    (
        re.compile(
            r'\bSeason[\s\-]*(?P<season>\d{1,2})[\s\-,]*Episode[\s\-]*(?P<episode>\d{1,3})\b',
            re.IGNORECASE,
        ),
        _season_episode,
    ),
    # 1x04, 01x04-05
    (
        re.compile(
            r'\b(?P<season>\d{1,2})x(?P<episode>\d{1,3})(?:-(?P<episode2>\d{1,3}))?\b',
            re.IGNORECASE,
        ),
        _season_episode,
    ),
    # Episode 4, Ep 4, Part 2, Pt.2
    (
        re.compile(r'\b(?:Episode|Part|Ep|Pt)\.?\s*(?P<episode>\d{1,3})\b', re.IGNORECASE),
        _episode_only,
    ),
]


def strip_extension(filename: str) -> str:
    """Return *filename* without directory and extension."""
    return os.path.splitext(os.path.basename(filename))[0]


def is_media_file(path: Path, category: str) -> bool:
    """Check if a file belongs to *category* by extension."""
    return path.suffix.lower() in CATEGORY_EXTENSIONS[category]


def _year_candidates(text: str) -> list[re.Match]:
    """Standalone 4-digit numbers that are not video resolutions."""
    candidates = []
    for match in YEAR_CANDIDATE_PATTERN.finditer(text):
        if RESOLUTION_SUFFIX_PATTERN.match(text, match.end()):
            continue
        candidates.append(match)
    return candidates


def parse_movie_filename(
    filename: str,
    enable_wordlist_splitting: bool = True,
    segmenter: WordSegmenter | None = None,
) -> ParsedMovieInfo:
    """
    Extract title and year from a movie filename.

    Args:
        filename: File name (a full path is accepted)
        enable_wordlist_splitting: Apply dictionary segmentation
        segmenter: Segmenter to use (defaults to the shared one)

    Returns:
        ParsedMovieInfo with the title guess and optional year
    """
    segmenter = segmenter or default_segmenter()
    cleaned = segmenter.segment(strip_extension(filename), enable_wordlist_splitting)
    original = os.path.basename(filename)

    match = PARENTHESIZED_YEAR_PATTERN.search(cleaned)
    if match:
        title = match.group(1).strip(TITLE_SEPARATORS)
        if title:
            return ParsedMovieInfo(title=title, year=int(match.group(2)), original_filename=original)

    candidates = _year_candidates(cleaned)
    if candidates:
        # Take the last year found (usually the release year, not part of title).
        # The title ends at the first year when words follow it before the
        # last one ("Title 2001 Remastered 2020"), unless that leaves nothing
        # ("2001 A Space Odyssey 1968").  A number right before the year
        # stays in the title ("Blade Runner 2049 2017").
        first, last = candidates[0], candidates[-1]
        year = int(last.group(1))
        boundaries = [last]
        if first is not last and cleaned[first.end():last.start()].strip(TITLE_SEPARATORS):
            boundaries.insert(0, first)
        for boundary in boundaries:
            title = cleaned[:boundary.start()].rstrip(TITLE_SEPARATORS)
            if title:
                return ParsedMovieInfo(title=title, year=year, original_filename=original)

    return ParsedMovieInfo(title=cleaned, year=None, original_filename=original)


def split_trailing_year(title: str) -> tuple[str, int | None]:
    """Split a trailing "(2005)" or "2005" off a series title."""
    match = TRAILING_YEAR_PATTERN.match(title)
    if match and match.group('title').strip(TITLE_SEPARATORS):
        return match.group('title').strip(TITLE_SEPARATORS), int(match.group('year'))
    return title, None


def extract_episode_title(text: str) -> str | None:
    """Text after the episode marker, cut at the first quality tag."""
    lowered = text.lower()
    cut = len(text)
    for tag in QUALITY_TAGS:
        index = lowered.find(tag)
        if index != -1 and index < cut:
            cut = index
    title = collapse_whitespace(text[:cut]).strip(TITLE_SEPARATORS)
    return title or None


def parse_show_filename(
    filename: str,
    enable_wordlist_splitting: bool = True,
    segmenter: WordSegmenter | None = None,
) -> ParsedShowInfo:
    """
    Extract series, season, episode and episode title from a filename.

    Only separators are normalised before pattern matching; the series
    title is segmented afterwards on its own.

    Args:
        filename: File name (a full path is accepted)
        enable_wordlist_splitting: Apply dictionary segmentation to the title
        segmenter: Segmenter to use (defaults to the shared one)

    Returns:
        ParsedShowInfo; fields the filename does not reveal are None
    """
    segmenter = segmenter or default_segmenter()
    original = os.path.basename(filename)
    name = collapse_whitespace(normalize_separators(strip_extension(filename)))

    series_title: str | None = None
    season: int | None = None
    episode: int | None = None
    episode_title: str | None = None
    year: int | None = None
    additional: tuple[int, ...] = ()

    for pattern, extract in SHOW_PATTERNS:
        match = pattern.search(name)
        if not match:
            continue
        season, episode, additional = extract(match)
        candidate = name[:match.start()].strip(TITLE_SEPARATORS)
        if candidate:
            series_title, year = split_trailing_year(candidate)
        episode_title = extract_episode_title(name[match.end():])
        break
    else:
        series_title = name or None

    if series_title:
        series_title = segmenter.segment(series_title, enable_wordlist_splitting) or None

    if episode is not None and season is None and series_title:
        season = 1

    return ParsedShowInfo(
        original_filename=original,
        series_title=series_title,
        season_number=season,
        episode_number=episode,
        episode_title=episode_title,
        year=year,
        additional_episodes=additional,
    )
