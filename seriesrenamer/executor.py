"""Apply a rename plan to the filesystem with all-or-nothing semantics.

Every executable item is checked before anything moves.  Moves are then
applied strictly in plan order and recorded in an undo log; the first
failure stops the batch and the log is replayed in reverse so the
folder ends up exactly as it started.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable

from .models import (
    AppliedMove,
    ItemOutcome,
    ItemResult,
    RenameItem,
    RenamePlan,
    RenameReport,
)
from .planner import casefold_key, find_collisions, path_key

log = logging.getLogger(__name__)

CANCELLED = "cancelled before this file was renamed"


def _move(source: Path, destination: Path) -> None:
    source.rename(destination)


def _same_file(source: Path, destination: Path) -> bool:
    """True when *destination* is *source* under another spelling (case-only rename).

    A case-sensitive filesystem can hold both spellings as separate files,
    so only the filesystem can answer this.
    """
    try:
        return os.path.samefile(source, destination)
    except OSError:
        return False


def _case_variant_exists(
    destination: Path,
    source: Path,
    listings: dict[Path, list[str]],
) -> str | None:
    """Name of a sibling that differs from *destination* only in case."""
    parent = destination.parent
    if parent not in listings:
        try:
            listings[parent] = os.listdir(parent)
        except OSError:
            listings[parent] = []
    wanted = destination.name.casefold()
    for name in listings[parent]:
        if name.casefold() != wanted or name == destination.name:
            continue
        if parent == source.parent and name == source.name:
            continue
        return name
    return None


def preflight(plan: RenamePlan) -> list[str]:
    """
    Check that a plan is still safe to apply.

    Args:
        plan: Plan to check

    Returns:
        List of problems; empty when the plan may be executed
    """
    problems: list[str] = []
    items = plan.executable_items()

    for group in find_collisions(items):
        problems.append(
            f"{len(group)} files would be renamed to '{group[0].destination_path}'"
        )
    for group in find_collisions(items, key=casefold_key):
        exact = {path_key(item.destination_path) for item in group}
        if len(exact) > 1:
            problems.append(
                "Destinations differ only in letter case: "
                + ", ".join(f"'{item.destination_path}'" for item in group)
            )

    listings: dict[Path, list[str]] = {}
    for item in items:
        source, destination = item.source_path, item.destination_path
        if not source.exists():
            problems.append(f"Source file is missing: '{source}'")
            continue
        if not destination.parent.is_dir():
            problems.append(f"Destination folder does not exist: '{destination.parent}'")
            continue
        if destination.exists() and not _same_file(source, destination):
            problems.append(f"Destination already exists: '{destination}'")
            continue
        variant = _case_variant_exists(destination, source, listings)
        if variant:
            problems.append(
                f"Destination '{destination}' clashes with existing '{variant}' "
                "on case-insensitive filesystems"
            )

    return problems


def _initial_outcomes(plan: RenamePlan) -> list[ItemOutcome]:
    return [
        ItemOutcome(
            item,
            ItemResult.NOT_ATTEMPTED if item.is_executable else ItemResult.SKIPPED,
        )
        for item in plan.items
    ]


def _rollback(undo_log: list[AppliedMove]) -> list[str]:
    """Replay *undo_log* in reverse. Returns the moves that could not be undone."""
    errors = []
    for move in reversed(undo_log):
        try:
            _move(move.destination, move.source)
            log.info("Rolled back: %s -> %s", move.destination, move.source)
        except OSError as e:
            log.error("Could not restore %s to %s: %s", move.destination, move.source, e)
            errors.append(f"Could not restore '{move.destination}' to '{move.source}': {e}")
    return errors


def _apply(item: RenameItem) -> None:
    source, destination = item.source_path, item.destination_path
    # The folder may have changed since preflight
    if destination.exists() and not _same_file(source, destination):
        raise FileExistsError(f"Destination appeared during the run: '{destination}'")
    _move(source, destination)


def execute(
    plan: RenamePlan,
    should_cancel: Callable[[], bool] | None = None,
) -> RenameReport:
    """
    Apply *plan* to the filesystem.

    Args:
        plan: A plan built (or revalidated) by the planner
        should_cancel: Polled before each move; returning True stops the
            batch and rolls back like any other failure

    Returns:
        RenameReport with one outcome per plan item
    """
    report = RenameReport(outcomes=_initial_outcomes(plan))

    report.preflight_errors = preflight(plan)
    if report.preflight_errors:
        for problem in report.preflight_errors:
            log.warning("Preflight: %s", problem)
        log.error("Plan rejected; no files were renamed")
        return report

    for outcome in report.outcomes:
        if outcome.result is not ItemResult.NOT_ATTEMPTED:
            continue
        item = outcome.item

        error: str | None = None
        if should_cancel is not None and should_cancel():
            error = CANCELLED
        else:
            try:
                _apply(item)
            except OSError as e:
                error = str(e)

        if error is not None:
            log.error("Failed: %s -> %s: %s", item.source_path, item.destination_path, error)
            outcome.result = ItemResult.FAILED
            outcome.error = error
            report.rollback_errors = _rollback(report.undo_log)
            for earlier in report.outcomes:
                if earlier.result is ItemResult.SUCCESS:
                    earlier.result = ItemResult.ROLLED_BACK
            return report

        report.undo_log.append(AppliedMove(item.source_path, item.destination_path))
        outcome.result = ItemResult.SUCCESS
        log.info("Renamed: %s -> %s", item.source_path, item.destination_path)

    log.info("Renamed %d file(s)", len(report.undo_log))
    return report


def dry_run(plan: RenamePlan) -> RenameReport:
    """
    Validate *plan* exactly as :func:`execute` would, without moving anything.

    Returns:
        RenameReport where every executable item reports ``SUCCESS``
        (unless preflight fails)
    """
    report = RenameReport(outcomes=_initial_outcomes(plan), dry_run=True)
    report.preflight_errors = preflight(plan)
    if report.preflight_errors:
        return report

    for outcome in report.outcomes:
        if outcome.result is ItemResult.NOT_ATTEMPTED:
            outcome.result = ItemResult.SUCCESS
    return report
