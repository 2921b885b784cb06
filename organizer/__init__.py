"""
jforg - Media Library Organizer

Resolves movies, TV episodes and music tracks to canonical identities
and moves them into a media-server library layout.
"""
__version__ = "0.4.0"

from .models import (
    ParsedMovieInfo,
    ParsedShowInfo,
    PipelineState,
    Provenance,
    MusicPathComponents,
    MoveResult,
)
from .segmenter import WordSegmenter
from .parser import (
    parse_movie_filename,
    parse_show_filename,
    is_media_file,
)
from .tmdb import TMDBClient, TMDBError
from .musicbrainz import MusicBrainzClient, MusicBrainzError
from .llm import LLMCorrector, LLMError
from .formatter import PathError
from .placement import CollisionError, PlacementResolver
from .detection import MovieResolver, ShowResolver, ResolvedIdentity, InvalidTransition
from .music import MusicResolver, find_matching_track
from .organize import Organizer, RunSummary

__all__ = [
    "ParsedMovieInfo",
    "ParsedShowInfo",
    "PipelineState",
    "Provenance",
    "MusicPathComponents",
    "MoveResult",
    "WordSegmenter",
    "parse_movie_filename",
    "parse_show_filename",
    "is_media_file",
    "TMDBClient",
    "TMDBError",
    "MusicBrainzClient",
    "MusicBrainzError",
    "LLMCorrector",
    "LLMError",
    "PathError",
    "CollisionError",
    "PlacementResolver",
    "MovieResolver",
    "ShowResolver",
    "ResolvedIdentity",
    "InvalidTransition",
    "MusicResolver",
    "find_matching_track",
    "Organizer",
    "RunSummary",
]
