"""
Shared fixtures for SeriesRenamer tests.

Provides a small episode catalog, its index, and a helper for laying
out media files in a temporary folder.
"""
from datetime import date
from pathlib import Path

import pytest

from seriesrenamer.catalog import CatalogIndex
from seriesrenamer.models import CatalogEntry


CATALOG = [
    CatalogEntry(1, 1, "Pilot", date(2019, 1, 6)),
    CatalogEntry(1, 2, "The Long Night", date(2019, 1, 13)),
    CatalogEntry(2, 5, "The Return", date(2020, 2, 2)),
    CatalogEntry(2, 6, "Homecoming", date(2020, 2, 9)),
    CatalogEntry(2, 7, "The Return of the King", date(2020, 2, 16)),
]


@pytest.fixture
def catalog() -> list[CatalogEntry]:
    return list(CATALOG)


@pytest.fixture
def index(catalog) -> CatalogIndex:
    return CatalogIndex.build(catalog)


@pytest.fixture
def show_index(catalog) -> CatalogIndex:
    """Index that knows the series name."""
    return CatalogIndex.build(catalog, show_title="Show Name")


@pytest.fixture
def make_files(tmp_path):
    """Create small files in tmp_path and return their paths."""
    def _make(*names: str) -> list[Path]:
        paths = []
        for name in names:
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(name, encoding="utf-8")
            paths.append(path)
        return paths
    return _make
