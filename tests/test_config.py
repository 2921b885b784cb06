"""Tests for environment-backed settings."""
from pathlib import Path

import pytest

from organizer.config import DEFAULT_LLM_BASE_URL, DEFAULT_LLM_MODEL, Settings

ENV_VARS = (
    "TMDB_API_KEY", "TMDB_LANGUAGE", "OPENROUTER_API_KEY", "OPENROUTER_MODEL_NAME",
    "OPENROUTER_BASE_URL", "ORGANIZER_WORDLIST", "MUSICBRAINZ_CONTACT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # setenv first so values loaded from .env files are undone on teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return monkeypatch


class TestSettings:
    def test_defaults(self, clean_env):
        settings = Settings.from_env(load_files=False)
        assert not settings.has_tmdb
        assert not settings.has_llm
        assert settings.llm_model == DEFAULT_LLM_MODEL
        assert settings.llm_base_url == DEFAULT_LLM_BASE_URL
        assert settings.wordlist_path is None

    def test_environment_values(self, clean_env):
        clean_env.setenv("TMDB_API_KEY", "abc")
        clean_env.setenv("OPENROUTER_API_KEY", "sk-1")
        clean_env.setenv("OPENROUTER_MODEL_NAME", "some/model")
        clean_env.setenv("ORGANIZER_WORDLIST", "/tmp/words.txt")

        settings = Settings.from_env(load_files=False)

        assert settings.has_tmdb and settings.has_llm
        assert settings.llm_model == "some/model"
        assert settings.wordlist_path == Path("/tmp/words.txt")

    def test_blank_values_are_unset(self, clean_env):
        clean_env.setenv("TMDB_API_KEY", "  ")
        clean_env.setenv("OPENROUTER_MODEL_NAME", "")
        settings = Settings.from_env(load_files=False)
        assert not settings.has_tmdb
        assert settings.llm_model == DEFAULT_LLM_MODEL

    def test_dotenv_does_not_override_environment(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("TMDB_API_KEY=from-file\nOPENROUTER_API_KEY=sk-file\n")
        clean_env.setenv("TMDB_API_KEY", "from-env")

        settings = Settings.from_env()

        assert settings.tmdb_api_key == "from-env"
        assert settings.llm_api_key == "sk-file"
