"""In-memory lookup structure over an episode catalog."""
from __future__ import annotations

import logging
import re
import unicodedata
from collections import defaultdict
from datetime import date
from typing import Iterable

from .errors import DuplicateEpisodeError
from .models import CatalogEntry, ScoredEntry

log = logging.getLogger(__name__)


def normalize_title(text: str) -> str:
    """Normalize a title for comparison.

    Lower-cases, strips accents, drops punctuation and collapses
    whitespace: ``"L'Été, Part 2!"`` -> ``"lete part 2"``.
    """
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.lower()
    text = re.sub(r"['’]", "", text)
    text = re.sub(r"[\W_]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def title_tokens(text: str) -> frozenset[str]:
    """Set of normalized words in *text*."""
    return frozenset(normalize_title(text).split())


def _sort_key(scored: ScoredEntry) -> tuple:
    entry = scored.entry
    # Undated entries sort after every dated one
    air_date = entry.air_date or date.max
    return (-scored.score, air_date, entry.episode, entry.season)


class CatalogIndex:
    """Read-only index over one series' catalog.

    Built once with :meth:`build`; never mutated afterwards, so a single
    instance can be shared by concurrent matcher calls.
    """

    def __init__(
        self,
        by_key: dict[tuple[int, int], CatalogEntry],
        by_token: dict[str, frozenset[CatalogEntry]],
        entry_tokens: dict[CatalogEntry, frozenset[str]],
        show_title: str | None = None,
    ):
        self._by_key = by_key
        self._by_token = by_token
        self._entry_tokens = entry_tokens
        self.show_title = show_title

    @classmethod
    def build(
        cls,
        entries: Iterable[CatalogEntry],
        show_title: str | None = None,
    ) -> CatalogIndex:
        """
        Index a catalog.

        Args:
            entries: Catalog entries for one series
            show_title: Series name the catalog belongs to, if known

        Returns:
            CatalogIndex

        Raises:
            DuplicateEpisodeError: If two entries share (season, episode)
        """
        by_key: dict[tuple[int, int], CatalogEntry] = {}
        by_token: dict[str, set[CatalogEntry]] = defaultdict(set)
        entry_tokens: dict[CatalogEntry, frozenset[str]] = {}

        for entry in entries:
            key = (entry.season, entry.episode)
            existing = by_key.get(key)
            if existing is not None:
                raise DuplicateEpisodeError(
                    entry.season, entry.episode, (existing.title, entry.title)
                )
            by_key[key] = entry
            tokens = title_tokens(entry.title)
            entry_tokens[entry] = tokens
            for token in tokens:
                by_token[token].add(entry)

        log.debug("Indexed %d catalog entries (%d tokens)", len(by_key), len(by_token))
        return cls(
            by_key,
            {token: frozenset(found) for token, found in by_token.items()},
            entry_tokens,
            show_title=show_title,
        )

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: tuple[int, int]) -> bool:
        return key in self._by_key

    def entries(self) -> list[CatalogEntry]:
        """All entries in (season, episode) order."""
        return [self._by_key[key] for key in sorted(self._by_key)]

    def lookup_exact(self, season: int, episode: int) -> CatalogEntry | None:
        return self._by_key.get((season, episode))

    def lookup_by_title(self, title: str) -> list[ScoredEntry]:
        """
        Rank catalog entries by token overlap with *title*.

        Score is ``shared tokens / max(query tokens, candidate tokens)``.
        Ties go to the earliest air date, then the lowest episode number.

        Args:
            title: Free-text title; normalized here

        Returns:
            Entries sharing at least one token with *title*, best first
        """
        return self.score_tokens(title_tokens(title))

    def score_tokens(self, query: frozenset[str]) -> list[ScoredEntry]:
        """Same as :meth:`lookup_by_title` for an already tokenized query."""
        if not query:
            return []

        candidates: set[CatalogEntry] = set()
        for token in query:
            candidates |= self._by_token.get(token, frozenset())

        scored = []
        for entry in candidates:
            tokens = self._entry_tokens[entry]
            shared = len(query & tokens)
            scored.append(ScoredEntry(entry, shared / max(len(query), len(tokens))))

        scored.sort(key=_sort_key)
        return scored
