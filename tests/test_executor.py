"""Unit tests for plan execution, preflight and rollback."""

from pathlib import Path

import pytest

from seriesrenamer import executor
from seriesrenamer.errors import FilesystemOperationError, PreflightValidationError
from seriesrenamer.executor import CANCELLED, dry_run, execute, preflight
from seriesrenamer.models import (
    ItemResult,
    MatchResult,
    ParsedName,
    RenameItem,
    RenamePlan,
)


def _plan(*moves: tuple[Path, Path]) -> RenamePlan:
    items = [
        RenameItem(source, destination, MatchResult.unmatched(ParsedName(str(source))))
        for source, destination in moves
    ]
    return RenamePlan(items=items)


def _results(report) -> list[ItemResult]:
    return [outcome.result for outcome in report.outcomes]


class TestExecute:
    """Tests for a successful execute()."""

    def test_renames_every_item(self, make_files, tmp_path):
        """Should apply every move and record it in the undo log."""
        a, b = make_files("a.mkv", "b.mkv")
        plan = _plan((a, tmp_path / "A1.mkv"), (b, tmp_path / "B1.mkv"))

        report = execute(plan)

        assert report.ok
        assert _results(report) == [ItemResult.SUCCESS, ItemResult.SUCCESS]
        assert not a.exists() and not b.exists()
        assert (tmp_path / "A1.mkv").read_text(encoding="utf-8") == "a.mkv"
        assert [move.source for move in report.undo_log] == [a, b]
        assert report.applied_moves() == report.undo_log

    def test_skipped_items_are_left_alone(self, make_files, tmp_path):
        """Should not touch skipped items."""
        a, b = make_files("a.mkv", "b.mkv")
        plan = _plan((a, tmp_path / "A1.mkv"), (b, tmp_path / "B1.mkv"))
        plan.skip(1)

        report = execute(plan)

        assert _results(report) == [ItemResult.SUCCESS, ItemResult.SKIPPED]
        assert b.exists()

    def test_case_only_rename(self, make_files, tmp_path):
        """Should allow renaming a file to a different letter case."""
        (source,) = make_files("show.mkv")
        plan = _plan((source, tmp_path / "Show.mkv"))

        report = execute(plan)

        assert report.ok
        assert "Show.mkv" in [p.name for p in tmp_path.iterdir()]

    def test_dry_run_matches_execute(self, make_files, tmp_path):
        """Should predict the same outcomes without moving anything."""
        a, b = make_files("a.mkv", "b.mkv")
        plan = _plan((a, tmp_path / "A1.mkv"), (b, tmp_path / "B1.mkv"))

        predicted = dry_run(plan)

        assert predicted.dry_run
        assert predicted.applied_moves() == []
        assert a.exists() and b.exists()

        report = execute(plan)

        assert _results(report) == _results(predicted)
        assert (tmp_path / "A1.mkv").exists() and (tmp_path / "B1.mkv").exists()


class TestRollback:
    """Tests for failures part-way through a batch."""

    @pytest.fixture
    def three_files(self, make_files, tmp_path):
        sources = make_files("one.mkv", "two.mkv", "three.mkv")
        destinations = [tmp_path / "Episode 1.mkv", tmp_path / "Episode 2.mkv",
                        tmp_path / "Episode 3.mkv"]
        return sources, destinations

    def test_failure_rolls_back_earlier_moves(self, three_files, tmp_path, monkeypatch):
        """Should restore every moved file when a later move fails."""
        sources, destinations = three_files
        real_move = executor._move

        def failing_move(source, destination):
            if source == sources[1]:
                raise PermissionError("permission denied")
            real_move(source, destination)

        monkeypatch.setattr(executor, "_move", failing_move)

        report = execute(_plan(*zip(sources, destinations)))

        assert _results(report) == [
            ItemResult.ROLLED_BACK, ItemResult.FAILED, ItemResult.NOT_ATTEMPTED,
        ]
        assert "permission denied" in report.failed_outcome.error
        assert report.rolled_back and not report.ok
        assert report.rollback_errors == []
        assert report.applied_moves() == []
        assert sorted(p.name for p in tmp_path.iterdir()) == ["one.mkv", "three.mkv", "two.mkv"]

        with pytest.raises(FilesystemOperationError) as exc_info:
            report.raise_for_status()
        assert exc_info.value.source == str(sources[1])

    def test_rollback_failures_are_reported(self, three_files, monkeypatch):
        """Should list moves that could not be undone."""
        sources, destinations = three_files
        real_move = executor._move

        def failing_move(source, destination):
            if source in (sources[1], destinations[0]):
                raise PermissionError("permission denied")
            real_move(source, destination)

        monkeypatch.setattr(executor, "_move", failing_move)

        report = execute(_plan(*zip(sources, destinations)))

        assert len(report.rollback_errors) == 1
        assert destinations[0].exists()

    def test_cancel_rolls_back(self, three_files):
        """Should stop and roll back when cancelled between moves."""
        sources, destinations = three_files
        answers = iter([False, True])

        report = execute(_plan(*zip(sources, destinations)), should_cancel=lambda: next(answers))

        assert _results(report) == [
            ItemResult.ROLLED_BACK, ItemResult.FAILED, ItemResult.NOT_ATTEMPTED,
        ]
        assert report.failed_outcome.error == CANCELLED
        assert all(source.exists() for source in sources)
        assert not any(destination.exists() for destination in destinations)


class TestPreflight:
    """Tests for validation before anything moves."""

    def test_existing_destination_aborts(self, make_files, tmp_path):
        """Should refuse to overwrite and move nothing."""
        a, b, taken = make_files("a.mkv", "b.mkv", "Taken.mkv")
        plan = _plan((a, tmp_path / "Free.mkv"), (b, taken))

        report = execute(plan)

        assert report.aborted
        assert _results(report) == [ItemResult.NOT_ATTEMPTED, ItemResult.NOT_ATTEMPTED]
        assert a.exists() and b.exists()
        assert not (tmp_path / "Free.mkv").exists()
        assert taken.read_text(encoding="utf-8") == "Taken.mkv"
        with pytest.raises(PreflightValidationError) as exc_info:
            report.raise_for_status()
        assert exc_info.value.problems == report.preflight_errors

    def test_dry_run_reports_the_same_problems(self, make_files):
        """Should fail a dry run for the same reasons."""
        a, taken = make_files("a.mkv", "Taken.mkv")
        plan = _plan((a, taken))

        assert dry_run(plan).preflight_errors == execute(plan).preflight_errors != []

    def test_missing_source(self, tmp_path):
        """Should report a source that disappeared."""
        plan = _plan((tmp_path / "gone.mkv", tmp_path / "new.mkv"))

        problems = preflight(plan)

        assert len(problems) == 1
        assert "missing" in problems[0]

    def test_missing_destination_folder(self, make_files, tmp_path):
        """Should report a destination folder that does not exist."""
        (a,) = make_files("a.mkv")

        problems = preflight(_plan((a, tmp_path / "nope" / "a.mkv")))

        assert "does not exist" in problems[0]

    def test_duplicate_destinations(self, make_files, tmp_path):
        """Should catch duplicates introduced by unchecked edits."""
        a, b = make_files("a.mkv", "b.mkv")

        problems = preflight(_plan((a, tmp_path / "same.mkv"), (b, tmp_path / "same.mkv")))

        assert any("2 files" in problem for problem in problems)

    def test_destinations_differing_in_case(self, make_files, tmp_path):
        """Should reject destinations that only differ in letter case."""
        a, b = make_files("a.mkv", "b.mkv")

        problems = preflight(_plan((a, tmp_path / "Name.mkv"), (b, tmp_path / "NAME.mkv")))

        assert problems

    def test_case_variant_of_existing_file(self, make_files, tmp_path):
        """Should reject a destination whose case variant already exists."""
        a, _ = make_files("a.mkv", "SHOW NAME.mkv")

        problems = preflight(_plan((a, tmp_path / "Show Name.mkv")))

        assert len(problems) == 1

    def test_existing_file_differing_only_in_case(self, tmp_path):
        """Should not replace a separate file whose name differs only in case."""
        source = tmp_path / "show name - s02e05.mkv"
        existing = tmp_path / "Show Name - S02E05.mkv"
        source.write_text("lower", encoding="utf-8")
        existing.write_text("EXISTING", encoding="utf-8")
        if len(list(tmp_path.iterdir())) < 2:
            pytest.skip("case-insensitive filesystem")

        report = execute(_plan((source, existing)))

        assert report.aborted
        assert existing.read_text(encoding="utf-8") == "EXISTING"
        assert source.read_text(encoding="utf-8") == "lower"

    def test_clean_plan(self, make_files, tmp_path):
        """Should report nothing for a safe plan."""
        (a,) = make_files("a.mkv")

        assert preflight(_plan((a, tmp_path / "b.mkv"))) == []
