"""Word segmentation for release-style filenames.

Release names glue words together in several ways ("The.Dark.Knight",
"TheDarkKnight", "thedarkknight").  ``WordSegmenter`` normalises
separators, splits case boundaries and finally walks each block with a
greedy longest-match against a lowercase wordlist.

The wordlist is loaded lazily by ``ensure_loaded()``.  A list that
cannot be read logs one warning and leaves splitting disabled for the
lifetime of the segmenter.
"""
import logging
import re
from pathlib import Path
from typing import Iterable

from .runtime import resource_path

log = logging.getLogger(__name__)

DEFAULT_WORDLIST = "words.txt"

_SEPARATOR_RE = re.compile(r'[._]')
_CAMEL_RE = re.compile(r'([a-z])([A-Z])')
_ACRONYM_RE = re.compile(r'([A-Z]+)([A-Z][a-z])')
_WHITESPACE_RE = re.compile(r'\s+')


def normalize_separators(text: str) -> str:
    """Replace dots and underscores with spaces."""
    return _SEPARATOR_RE.sub(' ', text)


def split_case_boundaries(text: str) -> str:
    """Split camelCase and ACRONYMWord boundaries with a space."""
    text = _CAMEL_RE.sub(r'\1 \2', text)
    return _ACRONYM_RE.sub(r'\1 \2', text)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(' ', text).strip()


class WordSegmenter:
    """Dictionary-guided segmenter.

    Args:
        words: Fixed word set to use instead of a wordlist file.
        path: Wordlist file (one word per line, ``#`` comments).  Defaults
              to the bundled list.
    """

    def __init__(
        self,
        words: Iterable[str] | None = None,
        path: str | Path | None = None,
    ):
        self._path = Path(path) if path else None
        self._words: frozenset[str] | None = None
        self._max_len = 0
        if words is not None:
            self._set_words(words)

    @property
    def path(self) -> Path:
        return self._path or resource_path(DEFAULT_WORDLIST)

    @property
    def words(self) -> frozenset[str]:
        self.ensure_loaded()
        return self._words or frozenset()

    def _set_words(self, words: Iterable[str]) -> None:
        self._words = frozenset(
            w.strip().lower() for w in words if w and w.strip()
        )
        self._max_len = max((len(w) for w in self._words), default=0)

    def ensure_loaded(self) -> bool:
        """Load the wordlist if that has not happened yet.

        Safe to call any number of times; the file is read at most once.
        Returns True when a non-empty dictionary is available.
        """
        if self._words is None:
            self._set_words(self._read_wordlist())
        return bool(self._words)

    def _read_wordlist(self) -> list[str]:
        path = self.path
        try:
            with open(path, encoding="utf-8") as fh:
                words = [
                    line for line in fh
                    if line.strip() and not line.lstrip().startswith("#")
                ]
        except OSError as exc:
            log.warning(
                "Could not load wordlist %s (%s) -- word splitting disabled",
                path, exc,
            )
            return []
        log.debug("Loaded %d words from %s", len(words), path)
        return words

    def segment(self, raw_name: str, enable_wordlist_splitting: bool = True) -> str:
        """Return *raw_name* with word boundaries inserted.

        Steps: separators to spaces, case-boundary splits, dictionary
        splitting of each whitespace block (when enabled and a dictionary
        is available), whitespace collapse.
        """
        text = split_case_boundaries(normalize_separators(raw_name))
        if enable_wordlist_splitting and self.ensure_loaded():
            text = ' '.join(self.split_block(block) for block in text.split())
        return collapse_whitespace(text)

    def split_block(self, block: str) -> str:
        """Greedy longest-match segmentation of a single block.

        Text with no dictionary word at the current position is gathered
        into a chunk until a word becomes matchable, then emitted as-is.
        """
        lower = block.lower()
        pieces: list[str] = []
        i = 0
        while i < len(block):
            end = self._longest_match(lower, i)
            if end:
                pieces.append(block[i:end])
                i = end
                continue

            chunk_end = i + 1
            while chunk_end < len(block) and not self._longest_match(lower, chunk_end):
                chunk_end += 1
            pieces.append(block[i:chunk_end])
            i = chunk_end
        return ' '.join(pieces)

    def _longest_match(self, lower: str, start: int) -> int:
        """End index of the longest dictionary word at *start*, or 0."""
        words = self._words or frozenset()
        limit = min(len(lower), start + self._max_len)
        for end in range(limit, start, -1):
            if lower[start:end] in words:
                return end
        return 0


_default_segmenter: WordSegmenter | None = None


def default_segmenter() -> WordSegmenter:
    """Shared segmenter backed by the bundled wordlist."""
    global _default_segmenter
    if _default_segmenter is None:
        _default_segmenter = WordSegmenter()
    return _default_segmenter
