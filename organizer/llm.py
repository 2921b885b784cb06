"""Language-model correction of misidentified media.

Talks to any OpenAI-compatible ``/chat/completions`` endpoint (OpenRouter
by default) in JSON mode and validates every answer against a pydantic
model.  Callers either get a schema-valid suggestion or an ``LLMError``.
"""
import json
import logging
import re
import time
from typing import TypeVar

import requests
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 2
RETRY_DELAY = 1.0
TEMPERATURE = 0.1
MAX_TOKENS = 300

_FENCE_RE = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)

GENERIC_ALBUM_PATTERN = re.compile(
    r'^(misc|various artists|unknown|greatest hits|compilation)$', re.IGNORECASE
)


class LLMError(Exception):
    """Exception raised when the LLM gives no usable answer."""
    pass


def _coerce_year(value):
    """Accept 1999 or "1999"; blank means absent."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if not re.fullmatch(r'\d{4}', value):
            raise ValueError(f"year must be a 4-digit year, got {value!r}")
        return int(value)
    return value


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class MovieSuggestion(BaseModel):
    """Corrected movie identity."""
    title: str = Field(..., min_length=1, description="Canonical movie title")
    year: int | None = Field(None, ge=1800, le=2100, description="Release year")

    @field_validator("year", mode="before")
    @classmethod
    def check_year(cls, value):
        return _coerce_year(value)


class ShowSuggestion(BaseModel):
    """Corrected series identity."""
    series_title: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("series_title", "seriesTitle"),
        description="Canonical series title",
    )
    series_year: int | None = Field(
        None,
        ge=1800,
        le=2100,
        validation_alias=AliasChoices("series_year", "seriesYear"),
        description="First-air year",
    )

    @field_validator("series_year", mode="before")
    @classmethod
    def check_year(cls, value):
        return _coerce_year(value)


class MusicSuggestion(BaseModel):
    """Corrected track identity."""
    artist: str = Field(..., min_length=1)
    album: str | None = None
    title: str | None = None
    year: int | None = Field(None, ge=1800, le=2100)
    track_number: int | None = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("track_number", "trackNumber"),
    )

    @field_validator("year", mode="before")
    @classmethod
    def check_year(cls, value):
        return _coerce_year(value)

    @field_validator("album", "title", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)

    @field_validator("track_number", mode="before")
    @classmethod
    def parse_track(cls, value):
        if isinstance(value, str):
            value = value.split("/")[0].strip()
            return int(value) if value.isdigit() else None
        return value

    @property
    def has_generic_album(self) -> bool:
        return bool(self.album and GENERIC_ALBUM_PATTERN.match(self.album.strip()))


Suggestion = TypeVar("Suggestion", bound=BaseModel)


def movie_prompt(filename: str, title: str | None, year: int | None) -> str:
    lines = [
        "Identify the movie in this filename and return its canonical title and 4-digit release year.",
        "Ignore edition labels (Director's Cut, Extended, IMAX), disc numbers and release tags "
        "(resolution, codec, source, group) unless they are part of the official title.",
        f'Filename: "{filename}"',
    ]
    if title:
        hint = f'A local parser guessed: title="{title}"'
        if year:
            hint += f', year="{year}"'
        lines.append(hint + ". It may be wrong.")
    lines += [
        'Respond with a JSON object only: {"title": "...", "year": "YYYY"}.',
        'Omit "year" when it cannot be determined; never put anything but four digits in it.',
        'Example: "The.Matrix.1999.UNCUT.1080p.BluRay.x265-RARBG.mkv" -> {"title": "The Matrix", "year": "1999"}',
        'Example: "AVATAR.The.Way.of.Water.2022.IMAX.2160p.mkv" -> '
        '{"title": "Avatar: The Way of Water", "year": "2022"}',
    ]
    return "\n".join(lines)


def show_prompt(filename: str, series_title: str | None, season: int | None, episode: int | None) -> str:
    lines = [
        "Identify the TV series this episode file belongs to and return the series' canonical "
        "title and the year it first aired.",
        f'Filename: "{filename}"',
    ]
    if series_title:
        lines.append(f'A local parser guessed the series title "{series_title}". It may be wrong.')
    if season is not None and episode is not None:
        lines.append(f"The file is season {season}, episode {episode}.")
    lines += [
        'Respond with a JSON object only: {"series_title": "...", "series_year": "YYYY"}.',
        'Omit "series_year" when it cannot be determined.',
        'Example: "Breaking.Bad.S01E01.Pilot.720p.mkv" -> {"series_title": "Breaking Bad", "series_year": "2008"}',
    ]
    return "\n".join(lines)


def music_prompt(filename: str, tags: dict[str, str | int | None]) -> str:
    known = {k: v for k, v in tags.items() if v not in (None, "")}
    lines = [
        "Identify the music track in this file and return its artist, the studio album it "
        "originally appeared on, the track title, the album's release year and the track number.",
        f'Filename: "{filename}"',
    ]
    if known:
        lines.append("Embedded tags (may be incomplete or wrong): " + json.dumps(known, ensure_ascii=False))
    lines += [
        'If the album is a generic label such as "Misc", "Various Artists", "Unknown", '
        '"Greatest Hits" or "Compilation" and you recognise the artist and title, replace it '
        "with the canonical studio album.",
        'Respond with a JSON object only: {"artist": "...", "album": "...", "title": "...", '
        '"year": "YYYY", "track_number": 1}.',
        'Omit "year" or "track_number" when unknown.',
    ]
    return "\n".join(lines)


class LLMCorrector:
    """OpenAI-compatible chat client returning validated suggestions."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
        retry_delay: float = RETRY_DELAY,
    ):
        if not api_key:
            raise LLMError("LLM API key not configured (set OPENROUTER_API_KEY)")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_delay = retry_delay

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _post(self, prompt: str) -> str:
        """Send one chat request and return the message content."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": "You identify media files. Reply with JSON only."},
                {"role": "user", "content": prompt},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }
        response = requests.post(self.endpoint, headers=headers, json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"unexpected completion payload: {e}") from e

    @staticmethod
    def _decode(content: str) -> dict:
        text = _FENCE_RE.sub("", content.strip())
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("completion is not a JSON object")
        return data

    def complete(self, prompt: str, schema: type[Suggestion]) -> Suggestion:
        """
        Ask the model and validate the answer against *schema*.

        Retries up to ``max_retries`` times on transport errors, HTTP
        errors, undecodable JSON and schema violations.

        Raises:
            LLMError: If every attempt failed
        """
        attempts = self.max_retries + 1
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                return schema.model_validate(self._decode(self._post(prompt)))
            except (requests.exceptions.RequestException, ValueError, ValidationError) as e:
                last_error = e
                log.debug("LLM attempt %d/%d failed: %s", attempt + 1, attempts, e)
                if attempt < attempts - 1:
                    time.sleep(self.retry_delay)
        raise LLMError(f"{schema.__name__} request failed after {attempts} attempts: {last_error}") from last_error

    def correct_movie(self, filename: str, title: str | None = None, year: int | None = None) -> MovieSuggestion:
        log.info("Asking LLM to identify movie: %s", filename)
        suggestion = self.complete(movie_prompt(filename, title, year), MovieSuggestion)
        log.info("LLM suggested: title='%s', year=%s", suggestion.title, suggestion.year)
        return suggestion

    def correct_show(
        self,
        filename: str,
        series_title: str | None = None,
        season: int | None = None,
        episode: int | None = None,
    ) -> ShowSuggestion:
        log.info("Asking LLM to identify series: %s", filename)
        suggestion = self.complete(show_prompt(filename, series_title, season, episode), ShowSuggestion)
        log.info("LLM suggested: series='%s', year=%s", suggestion.series_title, suggestion.series_year)
        return suggestion

    def correct_music(self, filename: str, tags: dict[str, str | int | None]) -> MusicSuggestion:
        log.info("Asking LLM to identify track: %s", filename)
        suggestion = self.complete(music_prompt(filename, tags), MusicSuggestion)
        log.info(
            "LLM suggested: artist='%s', album='%s', title='%s'",
            suggestion.artist, suggestion.album, suggestion.title,
        )
        return suggestion
