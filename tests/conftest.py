"""Pytest fixtures for bite tests."""

from __future__ import annotations

from datetime import date, time, timedelta
from typing import Optional

import pytest

from bite.db.connection import DatabaseConnection
from bite.tracking.catalog import FoodCatalog
from bite.tracking.models import DietPhase, Entry, EntryKind, PhaseName, UserConfig
from bite.tracking.store import CsvEntryStore, SqliteEntryStore, UserConfigStore

TODAY = date(2026, 10, 18)


@pytest.fixture
def today() -> date:
    """Fixed "today" so phase windows are deterministic."""
    return TODAY


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database connection."""
    return DatabaseConnection(tmp_path / "bite.db")


@pytest.fixture
def sqlite_store(temp_db):
    """Entry store backed by a temporary SQLite database."""
    store = SqliteEntryStore(temp_db)
    yield store
    store.close()


@pytest.fixture
def csv_store(tmp_path):
    """Entry store backed by a temporary CSV file."""
    return CsvEntryStore(tmp_path / "entries.csv")


@pytest.fixture(params=["sqlite", "csv"])
def entry_store(request, tmp_path):
    """Each entry store backend in turn."""
    if request.param == "sqlite":
        store = SqliteEntryStore(DatabaseConnection(tmp_path / "bite.db"))
    else:
        store = CsvEntryStore(tmp_path / "entries.csv")
    yield store
    store.close()


@pytest.fixture
def catalog(tmp_path):
    """Food catalog in a temporary SQLite database."""
    catalog = FoodCatalog(DatabaseConnection(tmp_path / "bite.db"))
    yield catalog
    catalog.close()


@pytest.fixture
def user_store(tmp_path):
    return UserConfigStore(tmp_path / "user.yaml")


@pytest.fixture
def sample_config() -> UserConfig:
    """Male, 180 cm, 30 years, moderately active, no phase."""
    return UserConfig(height=180, age=30, gender="male", activity_level="moderate")


@pytest.fixture
def make_config():
    """Factory for a user config holding a phase."""

    def _make(
        name: PhaseName = PhaseName.CUT,
        start: date = TODAY - timedelta(days=28),
        target_rate: float = -0.5,
        end: Optional[date] = None,
        planned_weeks: Optional[int] = None,
        start_weight: Optional[float] = None,
    ) -> UserConfig:
        return UserConfig(
            height=180,
            age=30,
            gender="male",
            activity_level="moderate",
            phase=DietPhase(
                name=name,
                start_date=start,
                target_rate=target_rate,
                end_date=end,
                planned_weeks=planned_weeks,
                start_weight=start_weight,
            ),
        )

    return _make


@pytest.fixture
def make_weigh_ins():
    """Factory for weigh-ins lying on a straight line of ``weekly_rate`` kg/week."""

    def _make(
        start: date, first: float, weekly_rate: float, days: int, every: int = 1
    ) -> list[Entry]:
        return [
            Entry(
                date=start + timedelta(days=d),
                kind=EntryKind.WEIGHT,
                entry_id=d + 1,
                time=time(7, 0),
                weight=first + weekly_rate * d / 7,
            )
            for d in range(0, days, every)
        ]

    return _make


@pytest.fixture
def make_food():
    """Factory for a food entry."""

    def _make(
        day: date,
        name: str = "Oatmeal",
        calories: float = 300,
        entry_id: Optional[int] = None,
        servings: float = 1.0,
    ) -> Entry:
        return Entry(
            date=day,
            kind=EntryKind.FOOD,
            entry_id=entry_id,
            time=time(12, 0),
            name=name,
            calories=calories,
            protein=10,
            carbs=50,
            fat=6,
            servings=servings,
        )

    return _make
