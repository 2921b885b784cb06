"""Tests for the scan-resolve-place run loop."""
from pathlib import Path
from unittest.mock import Mock, patch

from organizer.detection import MovieResolver, ShowResolver
from organizer.formatter import PathError
from organizer.models import AudioMetadata, MBReleaseDetail, MBTrack, TMDBSeries
from organizer.music import MusicResolver, release_query
from organizer.organize import Choice, Organizer, RunSummary, find_media_files, scan_directory

from conftest import FakeMusicBrainz, FakeTMDB, release_pair, touch


def movie_organizer(root, segmenter, **kwargs):
    resolver = MovieResolver(None, None, segmenter, extract=lambda p: None)
    return Organizer(root, resolver, **kwargs)


class TestScan:
    def test_hidden_entries_skipped_and_sorted(self, tmp_path):
        touch(tmp_path / "b.mkv")
        touch(tmp_path / "a.mkv")
        touch(tmp_path / ".hidden.mkv")
        touch(tmp_path / ".trash" / "c.mkv")
        touch(tmp_path / "sub" / "d.mkv")

        names = [p.relative_to(tmp_path).as_posix() for p in scan_directory(tmp_path)]

        assert names == ["a.mkv", "b.mkv", "sub/d.mkv"]

    def test_category_filter(self, tmp_path):
        touch(tmp_path / "movie.mkv")
        touch(tmp_path / "song.flac")
        touch(tmp_path / "notes.txt")
        assert [p.name for p in find_media_files(tmp_path, "movies")] == ["movie.mkv"]
        assert [p.name for p in find_media_files(tmp_path, "music")] == ["song.flac"]


class TestMovieRuns:
    def test_moves_into_canonical_layout(self, tmp_path, segmenter):
        touch(tmp_path / "incoming" / "The.Matrix.1999.mkv", "matrix")

        summary = movie_organizer(tmp_path, segmenter).run(find_media_files(tmp_path, "movies"))

        target = tmp_path / "The Matrix (1999)" / "The Matrix (1999).mkv"
        assert summary.moved == 1
        assert target.read_text() == "matrix"
        assert not (tmp_path / "incoming" / "The.Matrix.1999.mkv").exists()

    def test_second_run_moves_nothing(self, tmp_path, segmenter):
        touch(tmp_path / "The.Matrix.1999.mkv")
        touch(tmp_path / "dl" / "The.Matrix.1999.mkv")
        first = movie_organizer(tmp_path, segmenter).run(find_media_files(tmp_path, "movies"))
        assert first.moved == 2
        assert (tmp_path / "The Matrix (1999)" / "The Matrix (1999)_dup_1.mkv").exists()

        summary = movie_organizer(tmp_path, segmenter).run(find_media_files(tmp_path, "movies"))

        assert summary.moved == 0
        assert summary.already_organized == 2

    def test_dry_run_touches_nothing(self, tmp_path, segmenter):
        first = touch(tmp_path / "a" / "The.Matrix.1999.mkv")
        second = touch(tmp_path / "b" / "The.Matrix.1999.mkv")
        reported = []

        summary = movie_organizer(tmp_path, segmenter, dry_run=True, report=reported.append).run([first, second])

        assert summary.moved == 2
        assert first.exists() and second.exists()
        assert [r.new_path.name for r in reported] == ["The Matrix (1999).mkv", "The Matrix (1999)_dup_1.mkv"]
        assert not (tmp_path / "The Matrix (1999)").exists()

    def test_unexpected_error_is_contained(self, tmp_path, segmenter):
        files = [touch(tmp_path / "x" / "Bad.2000.mkv"), touch(tmp_path / "x" / "The.Matrix.1999.mkv")]
        resolver = MovieResolver(None, None, segmenter, extract=lambda p: None)
        real_resolve = resolver.resolve

        def flaky(path):
            if path.name.startswith("Bad"):
                raise RuntimeError("boom")
            return real_resolve(path)

        resolver.resolve = flaky
        summary = Organizer(tmp_path, resolver).run(files)

        assert summary.moved == 1
        assert summary.problematic == [(files[0], "unexpected error: boom")]
        assert not summary.ok

    def test_move_failure_recorded(self, tmp_path, segmenter):
        source = touch(tmp_path / "x" / "The.Matrix.1999.mkv")
        with patch("organizer.organize.move_file", side_effect=PermissionError("read-only")):
            summary = movie_organizer(tmp_path, segmenter).run([source])
        assert summary.moved == 0
        assert summary.problematic[0][1].startswith("move failed")

    def test_failed_move_frees_its_target(self, tmp_path, segmenter):
        files = [touch(tmp_path / d / "The.Matrix.1999.mkv") for d in ("a", "b")]
        with patch("organizer.organize.move_file", side_effect=[PermissionError("read-only"), None]) as move:
            movie_organizer(tmp_path, segmenter).run(files)
        target = tmp_path / "The Matrix (1999)" / "The Matrix (1999).mkv"
        assert [c.args for c in move.call_args_list] == [(files[0], target), (files[1], target)]

    def test_unplaceable_name_skipped(self, tmp_path):
        source = touch(tmp_path / "x" / "a.mkv")
        identity = Mock(skipped=False, provenance=None)
        identity.target.side_effect = PathError("empty")
        resolver = Mock()
        resolver.resolve.return_value = identity

        summary = Organizer(tmp_path, resolver).run([source])

        assert summary.skipped == [(source, "empty")]


class TestInteractive:
    def setup_files(self, root):
        return [touch(root / "in" / f"Film{i}.200{i}.mkv") for i in range(1, 4)]

    def test_no_skips_single_file(self, tmp_path, segmenter):
        files = self.setup_files(tmp_path)
        confirm = Mock(side_effect=[Choice.NO, Choice.YES, Choice.YES])

        summary = movie_organizer(tmp_path, segmenter, confirm=confirm).run(files)

        assert summary.moved == 2
        assert summary.skipped == [(files[0], "skipped by user")]
        assert files[0].exists()

    def test_declined_target_stays_available(self, tmp_path, segmenter):
        files = [touch(tmp_path / d / "The.Matrix.1999.mkv") for d in ("a", "b")]
        confirm = Mock(side_effect=[Choice.NO, Choice.YES])

        movie_organizer(tmp_path, segmenter, confirm=confirm).run(files)

        folder = tmp_path / "The Matrix (1999)"
        assert [p.name for p in folder.iterdir()] == ["The Matrix (1999).mkv"]
        assert files[0].exists()

    def test_all_stops_asking(self, tmp_path, segmenter):
        files = self.setup_files(tmp_path)
        confirm = Mock(return_value=Choice.ALL)

        summary = movie_organizer(tmp_path, segmenter, confirm=confirm).run(files)

        assert summary.moved == 3
        assert confirm.call_count == 1

    def test_skip_all_skips_the_rest(self, tmp_path, segmenter):
        files = self.setup_files(tmp_path)
        confirm = Mock(side_effect=[Choice.YES, Choice.SKIP_ALL])

        summary = movie_organizer(tmp_path, segmenter, confirm=confirm).run(files)

        assert summary.moved == 1
        assert len(summary.skipped) == 2
        assert confirm.call_count == 2

    def test_quit_stops_the_run(self, tmp_path, segmenter):
        files = self.setup_files(tmp_path)
        confirm = Mock(return_value=Choice.QUIT)

        summary = movie_organizer(tmp_path, segmenter, confirm=confirm).run(files)

        assert summary.quit_early
        assert summary.moved == 0
        assert len(summary.skipped) == 1

    def test_dry_run_never_asks(self, tmp_path, segmenter):
        confirm = Mock()
        movie_organizer(tmp_path, segmenter, dry_run=True, confirm=confirm).run(self.setup_files(tmp_path))
        confirm.assert_not_called()


class TestOtherCategories:
    def test_show_run_is_idempotent(self, tmp_path, segmenter):
        series = TMDBSeries(id=1396, name="Breaking Bad", original_name="Breaking Bad", first_air_year=2008)
        tmdb = FakeTMDB(series={"breaking bad": series})
        touch(tmp_path / "dl" / "Breaking.Bad.S01E01.Pilot.mkv")

        def run():
            resolver = ShowResolver(tmdb, None, segmenter, extract=lambda p: None)
            return Organizer(tmp_path, resolver).run(find_media_files(tmp_path, "shows"))

        assert run().moved == 1
        assert (tmp_path / "Breaking Bad (2008)" / "Season 01" / "Breaking Bad - S01E01 - Pilot.mkv").exists()
        second = run()
        assert (second.moved, second.already_organized) == (0, 1)

    def test_show_year_survives_second_run(self, tmp_path, segmenter):
        touch(tmp_path / "dl" / "Doctor.Who.2005.S01E01.Rose.mkv")

        def run():
            resolver = ShowResolver(None, None, segmenter, extract=lambda p: None)
            return Organizer(tmp_path, resolver).run(find_media_files(tmp_path, "shows"))

        assert run().moved == 1
        second = run()
        assert (second.moved, second.already_organized) == (0, 1)
        assert (tmp_path / "Doctor Who (2005)" / "Season 01" / "Doctor Who - S01E01 - Rose.mkv").exists()

    def test_year_dependent_series_match_survives_second_run(self, tmp_path, segmenter):
        older = TMDBSeries(id=121, name="Doctor Who", original_name="Doctor Who", first_air_year=1963)
        newer = TMDBSeries(id=57243, name="Doctor Who", original_name="Doctor Who", first_air_year=2005)
        tmdb = FakeTMDB(series={("doctor who", 2005): newer, "doctor who": older})
        touch(tmp_path / "dl" / "Doctor.Who.2005.S01E01.Rose.mkv")

        def run():
            resolver = ShowResolver(tmdb, None, segmenter, extract=lambda p: None)
            return Organizer(tmp_path, resolver).run(find_media_files(tmp_path, "shows"))

        assert run().moved == 1
        second = run()
        assert (second.moved, second.already_organized) == (0, 1)
        assert not (tmp_path / "Doctor Who (1963)").exists()

    def test_music_run_is_idempotent(self, tmp_path):
        detail = MBReleaseDetail(id="okc", title="OK Computer", artist_credit=["Radiohead"], date="1997",
                                 tracks=[MBTrack(title="Airbag", number=1)])
        hit, _ = release_pair(detail, 100)
        mb = FakeMusicBrainz(
            releases={release_query("OK Computer", "Radiohead", None): [hit]},
            details={"okc": detail},
        )
        tags = AudioMetadata(artist="Radiohead", album="OK Computer", title="Airbag", track_number=1)
        touch(tmp_path / "rip" / "track01.flac")

        def run():
            resolver = MusicResolver(mb, None, extract=lambda p: tags)
            return Organizer(tmp_path, resolver).run(find_media_files(tmp_path, "music"))

        assert run().moved == 1
        assert (tmp_path / "Radiohead" / "OK Computer (1997)" / "01 - Airbag.flac").exists()
        second = run()
        assert (second.moved, second.already_organized) == (0, 1)


def test_summary_counts():
    summary = RunSummary()
    summary.record(Mock(error=None, skipped=False, already_organized=False, moved=True))
    summary.record(Mock(error=None, skipped=True, skip_reason="why", original_path=Path("a")))
    summary.record(Mock(error="bad", original_path=Path("b")))
    assert summary.moved == 1
    assert summary.skipped == [(Path("a"), "why")]
    assert summary.problematic == [(Path("b"), "bad")]
