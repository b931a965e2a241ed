#!/usr/bin/env python3
"""
SeriesRenamer - TV episode renamer

Command-line front end: scan a folder, preview the rename plan,
confirm, execute, and undo the last batch if needed.
"""
import argparse
import logging
import sys
from collections import Counter
from pathlib import Path

from .cache import Cache
from .errors import DuplicateEpisodeError, TemplateError
from .executor import dry_run, execute
from .formatter import NamingTemplate
from .history import RenameHistoryManager
from .models import (
    ALREADY_NAMED,
    CatalogEntry,
    ItemResult,
    ItemStatus,
    MatchOutcome,
    RenameItem,
    RenamePlan,
    RenameReport,
)
from .parser import find_media_files, parse_filename
from .pipeline import plan_renames
from .settings import SettingsManager
from .tmdb import TMDBClient, TMDBError, TMDBSeries


def print_item(item: RenameItem) -> None:
    """Print one plan item with its match basis."""
    old_name = item.source_path.name
    basis = item.basis.outcome.value
    if item.status is ItemStatus.PLANNED:
        flag = "" if item.basis.outcome is MatchOutcome.MATCHED else f" [{basis.upper()}]"
        print(f"Video:{flag}")
        print(f"  {old_name}")
        print(f"  -> {item.destination_path.name}")
        if item.basis.outcome is MatchOutcome.AMBIGUOUS:
            for candidate in item.basis.candidates:
                entry = candidate.entry
                print(f"       ? S{entry.season:02d}E{entry.episode:02d} "
                      f"{entry.title} ({candidate.score:.2f})")
    elif item.status is ItemStatus.CONFLICT:
        print("Video:")
        print(f"  [CONFLICT] {old_name}")
        print(f"             -> {item.destination_path.name}: {item.reason}")
    elif item.reason != ALREADY_NAMED:
        print("Video:")
        print(f"  [SKIP] {old_name}")
        print(f"         Reason: {item.reason}")


def print_plan(plan: RenamePlan) -> None:
    for item in plan.items:
        print_item(item)
    print()
    counts = plan.summary()
    print("-" * 50)
    print(f"Planned: {counts['planned']} | Conflicts: {counts['conflict']} | "
          f"Skipped: {counts['skipped']}")


def print_report(report: RenameReport) -> None:
    """Print the outcome of a run."""
    if report.aborted:
        print("\nNothing was renamed; the plan is no longer safe to apply:")
        for problem in report.preflight_errors:
            print(f"  [ERROR] {problem}")
        return

    failed = report.failed_outcome
    if failed is not None:
        print(f"\n[ERROR] {failed.item.source_path.name}")
        print(f"        {failed.error}")
        rolled_back = report.counts()[ItemResult.ROLLED_BACK.value]
        print(f"Rolled back {rolled_back} file(s); the folder is unchanged.")
        for problem in report.rollback_errors:
            print(f"  [ERROR] {problem}")
        return

    counts = report.counts()
    verb = "Would rename" if report.dry_run else "Renamed"
    print("-" * 50)
    print(f"{verb}: {counts['success']} | Skipped: {counts['skipped']}")


def confirm_proceed(count: int) -> bool:
    """
    Ask user to confirm proceeding with rename.

    Args:
        count: Number of files to rename

    Returns:
        True if user confirms, False otherwise
    """
    while True:
        response = input(f"\nProceed with renaming {count} files? (y/n): ").strip().lower()
        if response in ('y', 'yes'):
            return True
        if response in ('n', 'no'):
            return False
        print("Please enter 'y' or 'n'.")


def guess_show_title(files: list[Path]) -> str | None:
    """Most common show title guess among *files*."""
    guesses = Counter(
        parsed.show_title_guess
        for parsed in map(parse_filename, files)
        if parsed.show_title_guess
    )
    if not guesses:
        return None
    return guesses.most_common(1)[0][0]


def resolve_series(client: TMDBClient, args: argparse.Namespace, files: list[Path]) -> TMDBSeries | None:
    if args.imdb:
        return client.find_by_imdb(args.imdb)
    if args.tmdb_id:
        found = client.get_series(args.tmdb_id)
        return found[0] if found else None
    title = args.show or guess_show_title(files)
    if not title:
        return None
    return client.search_series(title)


def fetch_catalog(
    args: argparse.Namespace,
    settings: SettingsManager,
    files: list[Path],
) -> tuple[list[CatalogEntry] | None, str | None]:
    """Fetch the episode catalog when a TMDB lookup was requested.

    Returns:
        (catalog, show_title); (None, None) when no lookup was requested

    Raises:
        TMDBError: If the client cannot be set up or the series is unknown
    """
    if not (args.tmdb or args.show or args.tmdb_id or args.imdb):
        return None, None

    client = TMDBClient(
        api_key=settings.get("tmdb_api_key") or None,
        cache=Cache(args.cache_dir),
        language=args.language or settings.get("tmdb_language"),
    )
    series = resolve_series(client, args, files)
    if series is None:
        raise TMDBError("Series not found on TMDB")

    print(f"Series: {series.display_name}"
          + (f" ({series.first_air_year})" if series.first_air_year else ""))
    return client.get_catalog(series.id), series.display_name


def saved_imdb_link(
    args: argparse.Namespace,
    settings: SettingsManager,
    folder: Path,
) -> str | None:
    """IMDb link saved by the last run in *folder*, unless another lookup was requested."""
    if args.imdb or args.show or args.tmdb_id:
        return None
    link = settings.get("imdb_link")
    if link and str(folder.resolve()) == settings.get("last_folder"):
        return link
    return None


def undo_last(history: RenameHistoryManager, assume_yes: bool) -> int:
    """Undo the most recent batch that has not been undone yet."""
    transaction = history.get_last_undoable()
    if transaction is None:
        print("Nothing to undo.")
        return 0

    plan = history.undo_plan(transaction)
    print(f"Undo batch {transaction.batch_id} from {transaction.timestamp} "
          f"({len(plan)} files in {transaction.folder})\n")
    for item in plan.items:
        print(f"  {item.source_path.name}")
        print(f"  -> {item.destination_path.name}")

    if not assume_yes and not confirm_proceed(len(plan)):
        print("Cancelled.")
        return 0

    report = execute(plan)
    print_report(report)
    if report.ok:
        history.mark_reverted(transaction.batch_id)
        return 0
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seriesrenamer",
        description="Rename TV episode files using their filenames and TMDB episode data."
    )

    parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        help="File or directory to process (default: the last folder renamed)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be renamed without actually renaming"
    )
    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Process directories recursively"
    )
    parser.add_argument(
        "--tmdb",
        action="store_true",
        help="Look the series up on TMDB, guessing its name from the filenames"
    )
    parser.add_argument(
        "--show",
        type=str,
        default=None,
        help="Series name to look up on TMDB"
    )
    parser.add_argument(
        "--tmdb-id",
        type=int,
        default=None,
        help="TMDB series id"
    )
    parser.add_argument(
        "--imdb",
        type=str,
        default=None,
        metavar="LINK",
        help="IMDb link or id of the series"
    )
    parser.add_argument(
        "--template",
        type=str,
        default=None,
        help="Naming template (default: from settings)"
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Rename without asking for confirmation"
    )
    parser.add_argument(
        "--undo",
        action="store_true",
        help="Undo the last rename batch"
    )
    parser.add_argument(
        "--language",
        type=str,
        default=None,
        help="Language for TMDB results (default: from settings)"
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Directory for cache file (default: current directory)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed debug information"
    )
    return parser


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
        format="  [%(levelname)s] %(name)s: %(message)s",
    )

    settings = SettingsManager()
    history = RenameHistoryManager()

    if parsed_args.undo:
        return undo_last(history, parsed_args.yes)

    if parsed_args.path is None:
        last_folder = settings.get("last_folder")
        if not last_folder:
            parser.error("path is required unless --undo is given or a folder was renamed before")
        parsed_args.path = Path(last_folder)
        print(f"Using last folder: {parsed_args.path}")

    # Template problems are reported before any file is looked at
    try:
        template = NamingTemplate.parse(parsed_args.template or settings.get("naming_template"))
    except TemplateError as e:
        print(f"Error: invalid naming template: {e}")
        return 1

    if not parsed_args.path.exists():
        print(f"Error: Path does not exist: {parsed_args.path}")
        return 1

    files = find_media_files(parsed_args.path, parsed_args.recursive)
    if not files:
        print("No media files found.")
        return 0
    print(f"Found {len(files)} media file(s)")

    folder = parsed_args.path if parsed_args.path.is_dir() else parsed_args.path.parent
    link = saved_imdb_link(parsed_args, settings, folder)
    if link:
        print(f"Using saved IMDb link: {link}")
        parsed_args.imdb = link

    try:
        catalog, show_title = fetch_catalog(parsed_args, settings, files)
    except TMDBError as e:
        print(f"Error: {e}")
        return 1

    try:
        plan = plan_renames(
            files,
            catalog=catalog,
            template=template,
            policy=settings.match_policy(),
            show_title=show_title,
        )
    except DuplicateEpisodeError as e:
        print(f"Error: episode catalog is inconsistent: {e}")
        return 1

    if parsed_args.dry_run:
        print("[DRY RUN - no files will be renamed]\n")
    else:
        print()
    print_plan(plan)

    if parsed_args.dry_run:
        report = dry_run(plan)
        print_report(report)
        return 0 if report.ok else 1

    count = len(plan.executable_items())
    if count == 0:
        print("No files to rename.")
        return 0

    if not parsed_args.yes and not confirm_proceed(count):
        print("Cancelled.")
        return 0

    report = execute(plan)
    print_report(report)

    history.save_report(folder, report, "tmdb" if catalog is not None else "filename")
    settings.set("last_folder", str(folder.resolve()))
    if parsed_args.imdb:
        settings.set("imdb_link", parsed_args.imdb)
    settings.save()

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
