"""Tests for the command-line entry point."""
from unittest.mock import patch

import pytest

from organizer.cli import build_resolver, main
from organizer.config import Settings
from organizer.detection import MovieResolver, ShowResolver
from organizer.music import MusicResolver

from conftest import touch


@pytest.fixture
def offline(monkeypatch, tmp_path):
    for name in ("TMDB_API_KEY", "OPENROUTER_API_KEY", "ORGANIZER_WORDLIST"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    with patch("organizer.metadata_extractor.is_ffprobe_available", return_value=False):
        yield tmp_path


@pytest.fixture
def wordlist(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("the\nmatrix\n")
    return path


class TestMain:
    def test_dry_run(self, offline, wordlist, capsys):
        library = offline / "library"
        source = touch(library / "The.Matrix.1999.mkv")

        code = main([str(library), "movies", "--dry-run", "--wordlist", str(wordlist)])

        out = capsys.readouterr().out
        assert code == 0
        assert "TMDB_API_KEY not set" in out
        assert "Would move: 1 | Already organized: 0 | Skipped: 0 | Errors: 0" in out
        assert "The Matrix (1999)" in out
        assert source.exists()

    def test_moves_files(self, offline, wordlist, capsys):
        library = offline / "library"
        touch(library / "The.Matrix.1999.mkv")

        assert main([str(library), "movies", "--wordlist", str(wordlist)]) == 0
        assert (library / "The Matrix (1999)" / "The Matrix (1999).mkv").exists()
        assert "Moved: 1" in capsys.readouterr().out

    def test_limit(self, offline, wordlist, capsys):
        library = offline / "library"
        touch(library / "a" / "The.Matrix.1999.mkv")
        touch(library / "b" / "The.Matrix.1999.mkv")

        main([str(library), "movies", "--dry-run", "--limit", "1", "--wordlist", str(wordlist)])

        assert "Would move: 1 |" in capsys.readouterr().out

    def test_not_a_directory(self, offline, capsys):
        assert main([str(offline / "missing"), "movies"]) == 1

    def test_dry_run_and_interactive_exclusive(self, offline):
        with pytest.raises(SystemExit) as exc:
            main([str(offline), "movies", "--dry-run", "--interactive"])
        assert exc.value.code == 2

    def test_unknown_category(self, offline):
        with pytest.raises(SystemExit):
            main([str(offline), "books"])

    def test_interactive_quit(self, offline, wordlist, capsys):
        library = offline / "library"
        source = touch(library / "The.Matrix.1999.mkv")

        with patch("builtins.input", side_effect=["maybe", "q"]):
            code = main([str(library), "movies", "-i", "--wordlist", str(wordlist)])

        out = capsys.readouterr().out
        assert code == 0
        assert "Please enter y, n, a, s or q." in out
        assert "Stopped early" in out
        assert source.exists()


class TestBuildResolver:
    def test_categories(self):
        settings = Settings(tmdb_api_key="abc", llm_api_key="sk")
        assert isinstance(build_resolver("movies", settings, use_llm=True), MovieResolver)
        assert isinstance(build_resolver("shows", settings, use_llm=True), ShowResolver)
        with patch("organizer.musicbrainz.musicbrainzngs.set_useragent"):
            assert isinstance(build_resolver("music", settings, use_llm=True), MusicResolver)

    def test_no_llm_flag(self):
        resolver = build_resolver("movies", Settings(tmdb_api_key="abc", llm_api_key="sk"), use_llm=False)
        assert resolver.llm is None
        assert resolver.tmdb is not None

    def test_no_tmdb_key(self):
        assert build_resolver("shows", Settings(), use_llm=True).tmdb is None
