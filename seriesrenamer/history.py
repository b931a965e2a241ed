"""Persistent rename history backed by SQLite.

The database lives in the platform app-data directory alongside
settings.json.  It survives app restarts and is independent of the
folder being renamed.  Undoing a batch goes through the executor like
any other plan, so it gets the same preflight and rollback guarantees.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .models import MatchResult, ParsedName, RenameItem, RenamePlan, RenameReport
from .settings import config_dir

log = logging.getLogger(__name__)

UNDO_TEMPLATE = "(undo)"


def default_db_path() -> Path:
    return config_dir() / "rename_history.db"


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass
class RenameEntry:
    """One file in a rename transaction."""
    old_path: str
    new_path: str


@dataclass
class RenameTransaction:
    """A batch rename operation that can be undone."""
    batch_id: str
    timestamp: str
    folder: str
    metadata_source: str
    items: list[RenameEntry] = field(default_factory=list)
    reverted: bool = False
    reverted_at: str | None = None


# ---------------------------------------------------------------------------
# RenameHistoryManager
# ---------------------------------------------------------------------------

class RenameHistoryManager:
    """SQLite-backed persistent rename history.

    Usage::

        mgr = RenameHistoryManager()
        mgr.save_report(folder, report, "tmdb")
        tx = mgr.get_last_undoable()
        report = execute(mgr.undo_plan(tx))
        if report.ok:
            mgr.mark_reverted(tx.batch_id)
    """

    def __init__(self, db_path: Path | None = None):
        self._db_path = db_path or default_db_path()
        self._conn: sqlite3.Connection | None = None
        self._ensure_schema()

    # -- connection management -------------------------------------

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
        return self._conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS transactions (
                batch_id        TEXT PRIMARY KEY,
                timestamp       TEXT NOT NULL,
                folder          TEXT NOT NULL,
                metadata_source TEXT NOT NULL DEFAULT 'filename',
                reverted        INTEGER NOT NULL DEFAULT 0,
                reverted_at     TEXT
            );

            CREATE TABLE IF NOT EXISTS rename_items (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                batch_id    TEXT NOT NULL,
                old_path    TEXT NOT NULL,
                new_path    TEXT NOT NULL,
                FOREIGN KEY (batch_id) REFERENCES transactions(batch_id)
            );

            CREATE INDEX IF NOT EXISTS idx_items_batch
                ON rename_items(batch_id);
        """)
        conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _load_items(self, batch_id: str) -> list[RenameEntry]:
        rows = self._get_conn().execute(
            "SELECT old_path, new_path FROM rename_items "
            "WHERE batch_id = ? ORDER BY id",
            (batch_id,),
        ).fetchall()
        return [RenameEntry(old_path=r[0], new_path=r[1]) for r in rows]

    # -- public API ------------------------------------------------

    def save_report(
        self,
        folder: str | Path,
        report: RenameReport,
        metadata_source: str = "filename",
    ) -> str | None:
        """Persist the moves a successful run left in effect.

        Returns the generated ``batch_id``, or None when nothing was
        renamed (dry runs, aborted and rolled-back runs).
        """
        moves = report.applied_moves()
        if not moves:
            return None

        batch_id = uuid.uuid4().hex[:12]
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")

        conn = self._get_conn()
        conn.execute(
            "INSERT INTO transactions (batch_id, timestamp, folder, metadata_source) "
            "VALUES (?, ?, ?, ?)",
            (batch_id, timestamp, str(folder), metadata_source),
        )
        conn.executemany(
            "INSERT INTO rename_items (batch_id, old_path, new_path) "
            "VALUES (?, ?, ?)",
            [
                (batch_id, str(move.source), str(move.destination))
                for move in moves
            ],
        )
        conn.commit()
        log.info("Recorded batch %s (%d files)", batch_id, len(moves))
        return batch_id

    def has_undoable(self) -> bool:
        """Return True if at least one non-reverted transaction exists."""
        row = self._get_conn().execute(
            "SELECT 1 FROM transactions WHERE reverted = 0 LIMIT 1"
        ).fetchone()
        return row is not None

    def get_last_undoable(self) -> RenameTransaction | None:
        """Return the most recent non-reverted transaction, or None."""
        row = self._get_conn().execute(
            "SELECT batch_id, timestamp, folder, metadata_source "
            "FROM transactions "
            "WHERE reverted = 0 "
            "ORDER BY timestamp DESC, rowid DESC LIMIT 1"
        ).fetchone()
        if row is None:
            return None

        batch_id, timestamp, folder, metadata_source = row
        return RenameTransaction(
            batch_id=batch_id,
            timestamp=timestamp,
            folder=folder,
            metadata_source=metadata_source,
            items=self._load_items(batch_id),
        )

    def mark_reverted(self, batch_id: str) -> None:
        """Mark a transaction as reverted."""
        reverted_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        conn = self._get_conn()
        conn.execute(
            "UPDATE transactions SET reverted = 1, reverted_at = ? "
            "WHERE batch_id = ?",
            (reverted_at, batch_id),
        )
        conn.commit()

    def get_all_transactions(
        self, limit: int = 50
    ) -> list[RenameTransaction]:
        """Return recent transactions (newest first)."""
        rows = self._get_conn().execute(
            "SELECT batch_id, timestamp, folder, metadata_source, reverted, reverted_at "
            "FROM transactions ORDER BY timestamp DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()

        return [
            RenameTransaction(
                batch_id=batch_id,
                timestamp=timestamp,
                folder=folder,
                metadata_source=metadata_source,
                items=self._load_items(batch_id),
                reverted=bool(reverted),
                reverted_at=reverted_at,
            )
            for batch_id, timestamp, folder, metadata_source, reverted, reverted_at in rows
        ]

    @staticmethod
    def undo_plan(transaction: RenameTransaction) -> RenamePlan:
        """Build a plan that moves every file of *transaction* back.

        Moves are listed in reverse order of the original batch.
        """
        items = []
        for entry in reversed(transaction.items):
            source = Path(entry.new_path)
            basis = MatchResult.unmatched(ParsedName(raw_filename=entry.new_path))
            items.append(RenameItem(source, Path(entry.old_path), basis))
        return RenamePlan(items=items, template=UNDO_TEMPLATE)
