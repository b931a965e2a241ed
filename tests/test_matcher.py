"""Unit tests for matching parsed names against the catalog."""

import pytest

from seriesrenamer.catalog import CatalogIndex
from seriesrenamer.matcher import MatchPolicy, match_all, match_one
from seriesrenamer.models import CatalogEntry, MatchOutcome, ParsedName
from seriesrenamer.parser import parse_filename


class TestExactMatch:
    """Tests for (season, episode) lookups."""

    def test_exact_match(self, index):
        """Should match on season and episode."""
        result = match_one(parse_filename("Show.Name.S02E05.mkv"), index)

        assert result.outcome is MatchOutcome.MATCHED
        assert result.entry.title == "The Return"
        assert result.is_matched

    def test_multi_episode_matches_first_episode(self, index):
        """Should match a multi-episode file on its first episode."""
        result = match_one(parse_filename("Show.Name.S01E01E02.mkv"), index)

        assert result.outcome is MatchOutcome.MATCHED
        assert result.entry.title == "Pilot"

    def test_no_catalog(self):
        """Should report every file as unmatched without a catalog."""
        result = match_one(parse_filename("Show.Name.S02E05.mkv"), None)

        assert result.outcome is MatchOutcome.UNMATCHED
        assert result.entry is None

    def test_index_show_title_is_carried(self, show_index):
        """Should carry the catalog's series name on the result."""
        result = match_one(parse_filename("show.name.s02e05.mkv"), show_index)

        assert result.show_title == "Show Name"


class TestTitleMatch:
    """Tests for the fuzzy title fallback."""

    def test_clear_title_winner(self, index):
        """Should accept a title match when the episode number is unknown to the catalog."""
        result = match_one(parse_filename("Show.Name.S03E09.Homecoming.mkv"), index)

        assert result.outcome is MatchOutcome.MATCHED
        assert (result.entry.season, result.entry.episode) == (2, 6)

    def test_ambiguous_titles(self, index):
        """Should report candidates, best first, when no title clearly wins."""
        result = match_one(parse_filename("Show.Name.S09E09.Return.mkv"), index)

        assert result.outcome is MatchOutcome.AMBIGUOUS
        assert result.entry is None
        assert result.candidates[0].entry.title == "The Return"
        scores = [c.score for c in result.candidates]
        assert scores == sorted(scores, reverse=True)

    def test_weak_overlap_is_unmatched(self, index):
        """Should not propose a candidate sharing one word out of five."""
        result = match_one(
            parse_filename("Show.Name.S09E09.Pilot.Program.Extended.Cut.Edition.mkv"), index
        )

        assert result.outcome is MatchOutcome.UNMATCHED
        assert result.candidates == ()

    def test_show_title_is_ignored_when_scoring(self, show_index):
        """Should drop the series name from the title query."""
        result = match_one(parse_filename("Show.Name.Homecoming.mkv"), show_index)

        assert result.outcome is MatchOutcome.MATCHED
        assert result.entry.title == "Homecoming"

    def test_policy_thresholds_are_tunable(self, index):
        """Should accept a weaker title match under a looser policy."""
        parsed = parse_filename("Show.Name.S09E09.Return.mkv")

        result = match_one(parsed, index, MatchPolicy(accept_threshold=0.4))

        assert result.outcome is MatchOutcome.MATCHED
        assert result.entry.title == "The Return"

    def test_candidate_limit(self, index):
        """Should cap the candidate list."""
        parsed = parse_filename("Show.Name.S09E09.Return.mkv")

        result = match_one(parsed, index, MatchPolicy(max_candidates=1))

        assert len(result.candidates) == 1


class TestMatchAll:
    """Tests for match_all()."""

    def test_preserves_order(self, index):
        """Should return results in input order."""
        names = ["Show.S02E06.mkv", "Show.S01E01.mkv", "holiday.mkv", "Show.S02E05.mkv"]
        parsed = [parse_filename(name) for name in names]

        results = match_all(parsed, index, max_workers=3)

        assert [r.source.raw_filename for r in results] == names
        assert [r.outcome for r in results] == [
            MatchOutcome.MATCHED, MatchOutcome.MATCHED,
            MatchOutcome.UNMATCHED, MatchOutcome.MATCHED,
        ]

    @pytest.mark.parametrize("workers", [1, 8])
    def test_same_result_for_any_pool_size(self, index, workers):
        """Should not depend on the number of workers."""
        parsed = [parse_filename(f"Show.S0{s}E0{e}.mkv") for s in (1, 2) for e in range(1, 8)]

        serial = [match_one(p, index) for p in parsed]

        assert match_all(parsed, index, max_workers=workers) == serial


class TestPolicyBoundaries:
    """Tests for scores that land exactly on a policy limit."""

    def test_margin_exactly_at_limit(self):
        """Should report a winner that leads by exactly the margin as ambiguous."""
        index = CatalogIndex.build([
            CatalogEntry(1, 1, "Alpha Beta Gamma Omega"),
            CatalogEntry(1, 2, "Alpha Beta Gamma Xi Yi"),
        ])
        parsed = ParsedName("episode.mkv", extra_title="Alpha Beta Gamma Delta")

        result = match_one(parsed, index)

        assert [c.score for c in result.candidates] == pytest.approx([0.75, 0.6])
        assert result.outcome is MatchOutcome.AMBIGUOUS

    def test_top_score_exactly_at_threshold(self):
        """Should not accept a score equal to the acceptance threshold."""
        index = CatalogIndex.build([CatalogEntry(1, 2, "Alpha Beta Gamma Xi Yi")])
        parsed = ParsedName("episode.mkv", extra_title="Alpha Beta Gamma")

        result = match_one(parsed, index)

        assert result.outcome is MatchOutcome.AMBIGUOUS

    def test_top_score_exactly_at_floor(self):
        """Should not propose candidates scoring exactly the floor."""
        index = CatalogIndex.build([
            CatalogEntry(1, 1, "Alpha Beta Gamma One Two Three Four Five Six Seven"),
        ])
        parsed = ParsedName("episode.mkv", extra_title="Alpha Beta Gamma")

        result = match_one(parsed, index)

        assert result.outcome is MatchOutcome.UNMATCHED
