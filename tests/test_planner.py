"""Unit tests for rename plan building."""

from pathlib import Path

import pytest

from seriesrenamer.errors import TemplateError
from seriesrenamer.matcher import match_all
from seriesrenamer.models import (
    ALREADY_NAMED,
    DUPLICATE_DESTINATION,
    NOT_ENOUGH_INFO,
    SKIPPED_BY_USER,
    ItemStatus,
)
from seriesrenamer.parser import parse_all
from seriesrenamer.planner import build_plan, find_collisions, revalidate


def _plan(paths, index, template="{show} - S{season:NN}E{episode:NN} - {title}{ext}"):
    return build_plan(match_all(parse_all(paths), index), template)


class TestBuildPlan:
    """Tests for build_plan()."""

    def test_matched_file(self, index, tmp_path):
        """Should name a matched file from the catalog, in its own folder."""
        source = tmp_path / "Show.Name.S02E05.1080p.mkv"

        plan = _plan([source], index)

        item = plan.items[0]
        assert item.status is ItemStatus.PLANNED
        assert item.destination_path == tmp_path / "Show Name - S02E05 - The Return.mkv"
        assert item.low_confidence is False
        assert plan.executable_items() == [item]

    def test_duplicate_destinations_conflict(self, index, tmp_path):
        """Should mark every file that would share a destination."""
        paths = [tmp_path / "Show.Name.S02E05.mkv", tmp_path / "Show Name - S02E05.mkv"]

        plan = _plan(paths, index)

        assert [item.status for item in plan] == [ItemStatus.CONFLICT, ItemStatus.CONFLICT]
        assert all(item.reason == DUPLICATE_DESTINATION for item in plan)
        assert plan.executable_items() == []

    def test_destinations_differing_only_in_case_conflict(self, tmp_path):
        """Should flag destinations that differ only in letter case."""
        paths = [tmp_path / "show.name.S01E02.mkv", tmp_path / "Show.Name.1x02.mkv"]

        plan = _plan(paths, None)

        assert [item.destination_path.name for item in plan] == [
            "show name - S01E02.mkv", "Show Name - S01E02.mkv",
        ]
        assert [item.status for item in plan] == [ItemStatus.CONFLICT, ItemStatus.CONFLICT]
        assert all(item.reason == DUPLICATE_DESTINATION for item in plan)
        assert plan.executable_items() == []

    def test_same_episode_different_extension(self, index, tmp_path):
        """Should keep both files when the extensions differ."""
        paths = [tmp_path / "Show.Name.S02E05.mkv", tmp_path / "Show.Name.S02E05.srt"]

        plan = _plan(paths, index)

        assert [item.status for item in plan] == [ItemStatus.PLANNED, ItemStatus.PLANNED]

    def test_already_named(self, index, tmp_path):
        """Should skip files whose name is already correct."""
        plan = _plan([tmp_path / "Show Name - S02E05 - The Return.mkv"], index)

        item = plan.items[0]
        assert item.status is ItemStatus.SKIPPED
        assert item.reason == ALREADY_NAMED
        assert not item.is_executable

    def test_unmatched_file_uses_parsed_fields(self, tmp_path):
        """Should name an unmatched file from its own name and flag it."""
        plan = _plan([tmp_path / "Show.Name.S01E02.Some.Title.720p.mkv"], None)

        item = plan.items[0]
        assert item.status is ItemStatus.PLANNED
        assert item.destination_path.name == "Show Name - S01E02 - Some Title.mkv"
        assert item.low_confidence is True

    def test_not_enough_information(self, tmp_path):
        """Should skip files with no episode identity."""
        plan = _plan([tmp_path / "holiday.mp4", tmp_path / "S01E01.mkv"], None)

        assert [item.status for item in plan] == [ItemStatus.SKIPPED, ItemStatus.SKIPPED]
        assert all(item.reason == NOT_ENOUGH_INFO for item in plan)
        assert all(item.destination_path is None for item in plan)

    def test_multi_episode_keeps_range(self, index, tmp_path):
        """Should keep every episode of a multi-episode file in its name."""
        plan = _plan([tmp_path / "Show.Name.S01E01E02.mkv"], index)

        assert plan.items[0].destination_path.name == "Show Name - S01E01-E02 - Pilot.mkv"

    def test_is_idempotent(self, index, tmp_path):
        """Should build the same plan from the same input."""
        paths = [tmp_path / "Show.Name.S02E05.mkv", tmp_path / "Show Name - S02E05.mkv",
                 tmp_path / "Show.Name.S01E01.mkv", tmp_path / "random.mkv"]
        results = match_all(parse_all(paths), index)

        assert build_plan(results, "{show} - {season}x{episode:NN}{ext}") == \
            build_plan(results, "{show} - {season}x{episode:NN}{ext}")

    def test_executable_destinations_are_unique(self, index, tmp_path):
        """Should never leave two executable items on one destination."""
        paths = [tmp_path / name for name in (
            "Show.Name.S02E05.mkv", "Show Name - S02E05.mkv", "Show.Name.2x05.mkv",
            "Show.Name.S01E01.mkv", "Show.Name.S02E06.mkv",
        )]

        plan = _plan(paths, index)

        destinations = [item.destination_path for item in plan.executable_items()]
        assert len(destinations) == len(set(destinations)) == 2

    def test_invalid_template_text(self, index, tmp_path):
        """Should reject an invalid template given as text."""
        results = match_all(parse_all([tmp_path / "Show.S01E01.mkv"]), index)

        with pytest.raises(TemplateError):
            build_plan(results, "{show} {bogus}")


class TestPlanEdits:
    """Tests for reviewer edits and revalidate()."""

    @pytest.fixture
    def conflicted(self, index, tmp_path):
        paths = [tmp_path / "Show.Name.S02E05.mkv", tmp_path / "Show Name - S02E05.mkv"]
        return _plan(paths, index)

    def test_resolving_a_conflict(self, conflicted, tmp_path):
        """Should clear conflicts once the destinations differ."""
        conflicted.set_destination(1, tmp_path / "Show Name - S02E05 - The Return (2).mkv")

        revalidate(conflicted)

        assert [item.status for item in conflicted] == [ItemStatus.PLANNED, ItemStatus.PLANNED]

    def test_edit_can_create_a_conflict(self, index, tmp_path):
        """Should flag a collision introduced by an edit."""
        plan = _plan([tmp_path / "Show.Name.S02E05.mkv", tmp_path / "Show.Name.S02E06.mkv"], index)

        plan.set_destination(1, plan.items[0].destination_path)
        revalidate(plan)

        assert [item.status for item in plan] == [ItemStatus.CONFLICT, ItemStatus.CONFLICT]

    def test_user_skip_is_kept(self, conflicted):
        """Should keep reviewer skips and release the other file."""
        conflicted.skip(0)

        revalidate(conflicted)

        assert conflicted.items[0].status is ItemStatus.SKIPPED
        assert conflicted.items[0].reason == SKIPPED_BY_USER
        assert conflicted.items[1].status is ItemStatus.PLANNED

    def test_edit_back_to_source_is_already_named(self, index, tmp_path):
        """Should skip an item edited to keep its current name."""
        plan = _plan([tmp_path / "Show.Name.S02E05.mkv"], index)

        plan.set_destination(0, plan.items[0].source_path)
        revalidate(plan)

        assert plan.items[0].reason == ALREADY_NAMED

    def test_summary(self, conflicted):
        """Should count items per status."""
        assert conflicted.summary() == {"planned": 0, "skipped": 0, "conflict": 2}


class TestFindCollisions:
    """Tests for find_collisions()."""

    def test_ignores_skipped(self, index, tmp_path):
        """Should not group skipped items."""
        plan = _plan([tmp_path / "Show.Name.S02E05.mkv", tmp_path / "Show Name - S02E05.mkv"], index)
        plan.skip(0)

        assert find_collisions(plan.items) == []

    def test_groups_in_plan_order(self, index, tmp_path):
        """Should return colliding items in plan order."""
        paths = [tmp_path / "Show.Name.S02E05.mkv", tmp_path / "Show Name - S02E05.mkv"]
        plan = _plan(paths, index)

        groups = find_collisions(plan.items)

        assert len(groups) == 1
        assert [item.source_path for item in groups[0]] == [Path(p) for p in paths]
