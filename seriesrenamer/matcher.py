"""Reconcile parsed filenames with the episode catalog."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from .catalog import CatalogIndex, title_tokens
from .models import MatchResult, ParsedName, ScoredEntry
from .parser import normalize_separators
from .tags import split_tags

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchPolicy:
    """Thresholds for fuzzy title matching.

    A title match is accepted when the best score is above
    ``accept_threshold`` and beats the runner-up by more than
    ``margin``.  Below that, anything above ``floor`` is reported as
    ambiguous with up to ``max_candidates`` candidates.
    """
    accept_threshold: float = 0.6
    margin: float = 0.15
    floor: float = 0.3
    max_candidates: int = 5


DEFAULT_POLICY = MatchPolicy()

# Scores are ratios of small integers; differences carry rounding error
_EPSILON = 1e-9


def _query_tokens(parsed: ParsedName, index: CatalogIndex) -> frozenset[str]:
    """Tokens to look up by title, minus the series name."""
    show_tokens = title_tokens(index.show_title) if index.show_title else frozenset()
    for text in (parsed.extra_title, parsed.show_title_guess):
        if not text:
            continue
        cleaned, _ = split_tags(normalize_separators(text))
        tokens = title_tokens(cleaned) - show_tokens
        if tokens:
            return tokens
    return frozenset()


def _fuzzy_match(
    parsed: ParsedName,
    index: CatalogIndex,
    policy: MatchPolicy,
) -> MatchResult:
    ranked = index.score_tokens(_query_tokens(parsed, index))
    if not ranked:
        return MatchResult.unmatched(parsed, index.show_title)

    top = ranked[0].score
    runner_up = ranked[1].score if len(ranked) > 1 else 0.0

    if top - policy.accept_threshold > _EPSILON and top - runner_up - policy.margin > _EPSILON:
        log.debug(
            "Title match for %r: %s (score %.2f, runner-up %.2f)",
            parsed.raw_filename, ranked[0].entry.title, top, runner_up,
        )
        return MatchResult.matched(parsed, ranked[0].entry, index.show_title)

    if top - policy.floor > _EPSILON:
        candidates: list[ScoredEntry] = ranked[:policy.max_candidates]
        log.debug(
            "Ambiguous title match for %r: %d candidates (top %.2f)",
            parsed.raw_filename, len(candidates), top,
        )
        return MatchResult.ambiguous(parsed, candidates, index.show_title)

    return MatchResult.unmatched(parsed, index.show_title)


def match_one(
    parsed: ParsedName,
    index: CatalogIndex | None,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> MatchResult:
    """
    Match one parsed filename against the catalog.

    Exact (season, episode) lookup first; multi-episode files match on
    their first episode.  When that is not possible, fall back to a
    fuzzy title lookup that only accepts a clear winner.

    Args:
        parsed: Parsed filename
        index: Catalog index, or None when no catalog is available
        policy: Fuzzy matching thresholds

    Returns:
        MatchResult
    """
    if index is None:
        return MatchResult.unmatched(parsed)

    if parsed.season is not None and parsed.episodes:
        entry = index.lookup_exact(parsed.season, parsed.episodes[0])
        if entry is not None:
            log.debug(
                "Exact match for %r: S%02dE%02d %s",
                parsed.raw_filename, entry.season, entry.episode, entry.title,
            )
            return MatchResult.matched(parsed, entry, index.show_title)

    return _fuzzy_match(parsed, index, policy)


def match_all(
    parsed_names: list[ParsedName],
    index: CatalogIndex | None,
    policy: MatchPolicy = DEFAULT_POLICY,
    max_workers: int | None = None,
) -> list[MatchResult]:
    """
    Match many parsed filenames concurrently.

    The index is read-only and shared by all workers.

    Returns:
        MatchResult list in the same order as *parsed_names*
    """
    results: list[MatchResult | None] = [None] * len(parsed_names)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(match_one, parsed, index, policy): position
            for position, parsed in enumerate(parsed_names)
        }
        for future in as_completed(future_to_index):
            results[future_to_index[future]] = future.result()
    return results
