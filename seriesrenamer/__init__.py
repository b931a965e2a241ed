"""
SeriesRenamer - TV episode renamer

Infers each file's season and episode from its name, reconciles it with
an episode catalog, and renames the batch as one reversible operation.
"""
from .catalog import CatalogIndex, normalize_title
from .errors import (
    DuplicateEpisodeError,
    FilesystemOperationError,
    PreflightValidationError,
    RenamerError,
    TemplateError,
)
from .executor import dry_run, execute
from .formatter import DEFAULT_TEMPLATE, NamingTemplate, sanitize_filename
from .matcher import DEFAULT_POLICY, MatchPolicy, match_all, match_one
from .models import (
    AppliedMove,
    CatalogEntry,
    Confidence,
    ItemOutcome,
    ItemResult,
    ItemStatus,
    MatchOutcome,
    MatchResult,
    ParsedName,
    RenameItem,
    RenamePlan,
    RenameReport,
    ScoredEntry,
)
from .parser import find_media_files, parse_all, parse_filename
from .pipeline import plan_renames
from .planner import build_plan, revalidate

__version__ = "0.1.0"
__all__ = [
    "AppliedMove",
    "CatalogEntry",
    "CatalogIndex",
    "Confidence",
    "DEFAULT_POLICY",
    "DEFAULT_TEMPLATE",
    "DuplicateEpisodeError",
    "FilesystemOperationError",
    "ItemOutcome",
    "ItemResult",
    "ItemStatus",
    "MatchOutcome",
    "MatchPolicy",
    "MatchResult",
    "NamingTemplate",
    "ParsedName",
    "PreflightValidationError",
    "RenameItem",
    "RenamePlan",
    "RenameReport",
    "RenamerError",
    "ScoredEntry",
    "TemplateError",
    "build_plan",
    "dry_run",
    "execute",
    "find_media_files",
    "match_all",
    "match_one",
    "normalize_title",
    "parse_all",
    "parse_filename",
    "plan_renames",
    "revalidate",
    "sanitize_filename",
]
