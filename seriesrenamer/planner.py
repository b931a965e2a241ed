"""Build a reviewable rename plan from match results.

Pure functions: nothing here touches the filesystem.  Destination
collisions are surfaced as ``Conflict`` items rather than resolved, so
that a batch can never overwrite one file with another.
"""
from __future__ import annotations

import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Callable, Iterable

from .formatter import NamingTemplate
from .models import (
    ALREADY_NAMED,
    DUPLICATE_DESTINATION,
    NOT_ENOUGH_INFO,
    ItemStatus,
    MatchResult,
    RenameItem,
    RenamePlan,
)

log = logging.getLogger(__name__)


def path_key(path: Path) -> str:
    """Comparison key for destination paths."""
    return os.path.normpath(str(path))


def casefold_key(path: Path) -> str:
    """Destination key that ignores letter case."""
    return path_key(path).casefold()


def _naming_fields(result: MatchResult) -> tuple[str | None, int | None, tuple[int, ...], str | None]:
    """(show, season, episodes, title) to render *result* with."""
    parsed = result.source
    show = result.show_title or parsed.show_title_guess

    entry = result.entry
    if entry is not None:
        if (parsed.is_multi_episode and parsed.season == entry.season
                and parsed.episodes[0] == entry.episode):
            episodes = parsed.episodes
        else:
            episodes = (entry.episode,)
        return show, entry.season, episodes, entry.title

    # Ambiguous and unmatched files are named from what the filename says
    return show, parsed.season, parsed.episodes, parsed.extra_title


def _plan_item(result: MatchResult, template: NamingTemplate) -> RenameItem:
    source_path = Path(result.source.raw_filename)
    show, season, episodes, title = _naming_fields(result)

    if season is None or not episodes or (not show and "show" in template.placeholders):
        return RenameItem(source_path, None, result, ItemStatus.SKIPPED, NOT_ENOUGH_INFO)

    name = template.render(
        show=show or "",
        season=season,
        episodes=episodes,
        title=title,
        ext=source_path.suffix,
    )
    if not name or name == source_path.suffix:
        return RenameItem(source_path, None, result, ItemStatus.SKIPPED, NOT_ENOUGH_INFO)

    return RenameItem(source_path, source_path.parent / name, result)


def find_collisions(
    items: Iterable[RenameItem],
    key: Callable[[Path], str] = path_key,
) -> list[list[RenameItem]]:
    """
    Group items that resolve to the same destination.

    Skipped items and items without a destination are ignored.

    Args:
        items: Plan items
        key: Destination comparison key

    Returns:
        One list per colliding destination, in plan order
    """
    groups: dict[str, list[RenameItem]] = defaultdict(list)
    for item in items:
        if item.destination_path is None or item.status is ItemStatus.SKIPPED:
            continue
        groups[key(item.destination_path)].append(item)
    return [group for group in groups.values() if len(group) > 1]


def _mark_collisions(items: list[RenameItem]) -> int:
    count = 0
    # Names differing only in case collide on case-insensitive filesystems
    for group in find_collisions(items, key=casefold_key):
        for item in group:
            item.mark(ItemStatus.CONFLICT, DUPLICATE_DESTINATION)
            count += 1
        log.warning(
            "%d files would be renamed to %s",
            len(group), group[0].destination_path,
        )
    return count


def _mark_already_named(items: list[RenameItem]) -> None:
    for item in items:
        if item.status is ItemStatus.PLANNED and item.destination_path is not None:
            if path_key(item.destination_path) == path_key(item.source_path):
                item.mark(ItemStatus.SKIPPED, ALREADY_NAMED)


def build_plan(
    results: list[MatchResult],
    naming_template: NamingTemplate | str,
) -> RenamePlan:
    """
    Turn match results into a rename plan.

    Args:
        results: One MatchResult per input file
        naming_template: Template (or template text) for destination names

    Returns:
        RenamePlan in the same order as *results*

    Raises:
        TemplateError: If *naming_template* is given as invalid text
    """
    if not isinstance(naming_template, NamingTemplate):
        naming_template = NamingTemplate.parse(naming_template)

    items = [_plan_item(result, naming_template) for result in results]
    _mark_collisions(items)
    _mark_already_named(items)

    plan = RenamePlan(items=items, template=naming_template.text)
    log.info("Built plan: %s", plan.summary())
    return plan


def revalidate(plan: RenamePlan) -> RenamePlan:
    """
    Re-run the collision pass on a plan a reviewer has edited.

    Items the reviewer skipped stay skipped.  Conflicts that no longer
    hold are cleared, new ones are flagged, and items whose destination
    now equals their source are skipped as already named.

    Returns:
        The same plan, updated in place
    """
    for item in plan.items:
        stale_conflict = item.status is ItemStatus.CONFLICT and item.reason == DUPLICATE_DESTINATION
        stale_skip = item.status is ItemStatus.SKIPPED and item.reason == ALREADY_NAMED
        if stale_conflict or stale_skip:
            item.mark(ItemStatus.PLANNED)

    _mark_collisions(plan.items)
    _mark_already_named(plan.items)
    log.debug("Revalidated plan: %s", plan.summary())
    return plan
