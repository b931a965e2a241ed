"""Data models for the renaming engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path, PurePath

from .errors import FilesystemOperationError, PreflightValidationError


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------

class Confidence(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ParsedName:
    """Structured interpretation of one raw filename."""
    raw_filename: str
    show_title_guess: str | None = None
    season: int | None = None
    episodes: tuple[int, ...] = ()
    extra_title: str | None = None
    tags: frozenset[str] = frozenset()
    confidence: Confidence = Confidence.LOW

    @property
    def stem(self) -> str:
        return PurePath(self.raw_filename).stem

    @property
    def extension(self) -> str:
        return PurePath(self.raw_filename).suffix

    @property
    def is_multi_episode(self) -> bool:
        return len(self.episodes) > 1


# ------------------------------------------------------------------
# Catalog and matching
# ------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogEntry:
    """One canonical episode record supplied by a metadata provider."""
    season: int
    episode: int
    title: str
    air_date: date | None = None


@dataclass(frozen=True)
class ScoredEntry:
    """A catalog entry with its fuzzy title score."""
    entry: CatalogEntry
    score: float


class MatchOutcome(Enum):
    MATCHED = "matched"
    AMBIGUOUS = "ambiguous"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of reconciling a ParsedName against the catalog.

    Use the ``matched``/``ambiguous``/``unmatched`` constructors rather
    than building one directly: they keep ``entry`` and ``candidates``
    consistent with ``outcome``.
    """
    source: ParsedName
    outcome: MatchOutcome
    entry: CatalogEntry | None = None
    candidates: tuple[ScoredEntry, ...] = ()
    show_title: str | None = None

    @classmethod
    def matched(
        cls,
        source: ParsedName,
        entry: CatalogEntry,
        show_title: str | None = None,
    ) -> MatchResult:
        return cls(source, MatchOutcome.MATCHED, entry=entry, show_title=show_title)

    @classmethod
    def ambiguous(
        cls,
        source: ParsedName,
        candidates: list[ScoredEntry] | tuple[ScoredEntry, ...],
        show_title: str | None = None,
    ) -> MatchResult:
        return cls(
            source,
            MatchOutcome.AMBIGUOUS,
            candidates=tuple(candidates),
            show_title=show_title,
        )

    @classmethod
    def unmatched(
        cls,
        source: ParsedName,
        show_title: str | None = None,
    ) -> MatchResult:
        return cls(source, MatchOutcome.UNMATCHED, show_title=show_title)

    @property
    def is_matched(self) -> bool:
        return self.outcome is MatchOutcome.MATCHED


# ------------------------------------------------------------------
# Planning
# ------------------------------------------------------------------

class ItemStatus(Enum):
    PLANNED = "planned"
    SKIPPED = "skipped"
    CONFLICT = "conflict"


DUPLICATE_DESTINATION = "duplicate destination"
ALREADY_NAMED = "already correctly named"
NOT_ENOUGH_INFO = "not enough information to name file"
SKIPPED_BY_USER = "skipped by user"


@dataclass
class RenameItem:
    """One proposed source -> destination move."""
    source_path: Path
    destination_path: Path | None
    basis: MatchResult
    status: ItemStatus = ItemStatus.PLANNED
    reason: str | None = None

    @property
    def low_confidence(self) -> bool:
        return not self.basis.is_matched

    @property
    def is_executable(self) -> bool:
        return (
            self.status is ItemStatus.PLANNED
            and self.destination_path is not None
            and self.destination_path != self.source_path
        )

    def mark(self, status: ItemStatus, reason: str | None = None) -> None:
        self.status = status
        self.reason = reason


@dataclass
class RenamePlan:
    """Ordered set of proposed moves for one batch."""
    items: list[RenameItem] = field(default_factory=list)
    template: str = ""

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def executable_items(self) -> list[RenameItem]:
        return [item for item in self.items if item.is_executable]

    def skip(self, index: int, reason: str = SKIPPED_BY_USER) -> None:
        """Exclude an item from execution (reviewer edit)."""
        self.items[index].mark(ItemStatus.SKIPPED, reason)

    def set_destination(self, index: int, destination: str | Path) -> None:
        """Replace an item's destination (reviewer edit).

        The plan must be revalidated before it is executed again.
        """
        item = self.items[index]
        item.destination_path = Path(destination)
        if item.status is ItemStatus.CONFLICT:
            item.mark(ItemStatus.PLANNED)

    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in ItemStatus}
        for item in self.items:
            counts[item.status.value] += 1
        return counts


# ------------------------------------------------------------------
# Execution
# ------------------------------------------------------------------

class ItemResult(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"
    NOT_ATTEMPTED = "not_attempted"
    SKIPPED = "skipped"


@dataclass
class ItemOutcome:
    """What happened to one plan item."""
    item: RenameItem
    result: ItemResult
    error: str | None = None


@dataclass(frozen=True)
class AppliedMove:
    """One completed move, as recorded in the undo log."""
    source: Path
    destination: Path


@dataclass
class RenameReport:
    """Terminal result of executing (or dry-running) a plan."""
    outcomes: list[ItemOutcome] = field(default_factory=list)
    undo_log: list[AppliedMove] = field(default_factory=list)
    preflight_errors: list[str] = field(default_factory=list)
    rollback_errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def aborted(self) -> bool:
        """True when preflight validation stopped the run."""
        return bool(self.preflight_errors)

    @property
    def failed_outcome(self) -> ItemOutcome | None:
        for outcome in self.outcomes:
            if outcome.result is ItemResult.FAILED:
                return outcome
        return None

    @property
    def rolled_back(self) -> bool:
        return self.failed_outcome is not None

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.rolled_back

    def counts(self) -> dict[str, int]:
        counts = {result.value: 0 for result in ItemResult}
        for outcome in self.outcomes:
            counts[outcome.result.value] += 1
        return counts

    def applied_moves(self) -> list[AppliedMove]:
        """Moves that are in effect after the run (empty after a rollback)."""
        if not self.ok or self.dry_run:
            return []
        return list(self.undo_log)

    def raise_for_status(self) -> None:
        """Raise the matching engine error if the run did not succeed."""
        if self.aborted:
            raise PreflightValidationError(self.preflight_errors)
        failed = self.failed_outcome
        if failed is not None:
            raise FilesystemOperationError(
                str(failed.item.source_path),
                str(failed.item.destination_path),
                failed.error or "unknown error",
            )
