"""One-call entry point: filenames (+ catalog) -> rename plan."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .catalog import CatalogIndex
from .formatter import DEFAULT_TEMPLATE, NamingTemplate
from .matcher import DEFAULT_POLICY, MatchPolicy, match_all
from .models import CatalogEntry, RenamePlan
from .parser import parse_all
from .planner import build_plan

log = logging.getLogger(__name__)


def plan_renames(
    paths: Iterable[str | Path],
    catalog: Iterable[CatalogEntry] | None = None,
    template: NamingTemplate | str = DEFAULT_TEMPLATE,
    policy: MatchPolicy = DEFAULT_POLICY,
    show_title: str | None = None,
    max_workers: int | None = None,
) -> RenamePlan:
    """
    Parse, match and plan a batch of files.

    The template is validated before anything is parsed, and the catalog
    is indexed before anything is matched, so configuration and catalog
    errors surface first.

    Args:
        paths: Files to rename
        catalog: Episode catalog for the series, or None to rename from
            filenames alone
        template: Naming template
        policy: Fuzzy matching thresholds
        show_title: Series name that goes with *catalog*
        max_workers: Thread pool size for parsing and matching

    Returns:
        RenamePlan ready for review

    Raises:
        TemplateError: If *template* is invalid
        DuplicateEpisodeError: If *catalog* lists an episode twice
    """
    if not isinstance(template, NamingTemplate):
        template = NamingTemplate.parse(template)

    index = CatalogIndex.build(catalog, show_title=show_title) if catalog is not None else None

    parsed = parse_all(list(paths), max_workers=max_workers)
    results = match_all(parsed, index, policy, max_workers=max_workers)
    log.debug(
        "Matched %d file(s) against %s",
        len(results), f"{len(index)} catalog entries" if index is not None else "no catalog",
    )
    return build_plan(results, template)
