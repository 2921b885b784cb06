"""Environment-backed settings.

Values come from the process environment, with ``.env`` files in the
current directory and then the user's home directory filling in
anything not already set.
"""
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_TMDB_LANGUAGE = "en-US"
DEFAULT_LLM_MODEL = "meta-llama/llama-4-maverick:free"
DEFAULT_LLM_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MUSICBRAINZ_CONTACT = "https://github.com/jforg/jforg"


def load_env() -> None:
    """
    Load .env files without overriding the real environment.

    Priority:
    1. Existing environment variables
    2. .env file in current directory
    3. .env file in user home directory
    """
    for env_path in (Path.cwd() / ".env", Path.home() / ".env"):
        if env_path.is_file():
            load_dotenv(env_path, override=False)


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass
class Settings:
    """Runtime configuration for one organizer run."""
    tmdb_api_key: str | None = None
    tmdb_language: str = DEFAULT_TMDB_LANGUAGE
    llm_api_key: str | None = None
    llm_model: str = DEFAULT_LLM_MODEL
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    wordlist_path: Path | None = None
    musicbrainz_contact: str = DEFAULT_MUSICBRAINZ_CONTACT

    @classmethod
    def from_env(cls, load_files: bool = True) -> "Settings":
        """Build settings from the environment (and .env files)."""
        if load_files:
            load_env()
        wordlist = _env("ORGANIZER_WORDLIST")
        return cls(
            tmdb_api_key=_env("TMDB_API_KEY"),
            tmdb_language=_env("TMDB_LANGUAGE") or DEFAULT_TMDB_LANGUAGE,
            llm_api_key=_env("OPENROUTER_API_KEY"),
            llm_model=_env("OPENROUTER_MODEL_NAME") or DEFAULT_LLM_MODEL,
            llm_base_url=_env("OPENROUTER_BASE_URL") or DEFAULT_LLM_BASE_URL,
            wordlist_path=Path(wordlist) if wordlist else None,
            musicbrainz_contact=_env("MUSICBRAINZ_CONTACT") or DEFAULT_MUSICBRAINZ_CONTACT,
        )

    @property
    def has_tmdb(self) -> bool:
        return bool(self.tmdb_api_key)

    @property
    def has_llm(self) -> bool:
        return bool(self.llm_api_key)
