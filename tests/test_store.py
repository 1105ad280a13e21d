"""Tests for the user config and entry stores."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date, time, timedelta

import pytest

from bite.db.connection import DatabaseConnection
from bite.errors import StorageError
from bite.tracking.models import DietPhase, Entry, EntryKind, PhaseName
from bite.tracking.store import (
    CsvEntryStore,
    SqliteEntryStore,
    UserConfigStore,
    open_entry_store,
)


class TestEntryStore:
    """CRUD behaviour shared by the SQLite and CSV backends."""

    def test_empty(self, entry_store) -> None:
        assert entry_store.all_entries() == []
        assert entry_store.latest_weight() is None

    def test_append_assigns_ids(self, entry_store, make_food, today) -> None:
        first = entry_store.append(make_food(today))
        second = entry_store.append(make_food(today, name="Apple", calories=95))

        assert first.entry_id is not None
        assert second.entry_id != first.entry_id
        assert entry_store.get(second.entry_id).name == "Apple"

    def test_all_entries_sorted_by_date_and_time(self, entry_store, make_food, today) -> None:
        entry_store.append(make_food(today, name="Dinner"))
        entry_store.append(make_food(today - timedelta(days=2), name="Lunch"))
        entry_store.append(Entry(
            date=today, kind=EntryKind.WEIGHT, time=time(6, 30), weight=82.4
        ))

        entries = entry_store.all_entries()
        assert [e.date for e in entries] == [today - timedelta(days=2), today, today]
        assert entries[1].kind == EntryKind.WEIGHT

    def test_round_trip_preserves_payload(self, entry_store, make_food, today) -> None:
        stored = entry_store.append(make_food(today, servings=1.5))
        loaded = entry_store.get(stored.entry_id)

        assert loaded == stored
        assert loaded.total_calories == pytest.approx(450)

    def test_update(self, entry_store, make_food, today) -> None:
        stored = entry_store.append(make_food(today))
        entry_store.update(replace(stored, calories=410))
        assert entry_store.get(stored.entry_id).calories == 410

    def test_delete(self, entry_store, make_food, today) -> None:
        stored = entry_store.append(make_food(today))
        entry_store.delete(stored.entry_id)
        assert entry_store.all_entries() == []

    def test_unknown_id_raises(self, entry_store, make_food, today) -> None:
        with pytest.raises(StorageError):
            entry_store.get(999)
        with pytest.raises(StorageError):
            entry_store.delete(999)
        with pytest.raises(StorageError):
            entry_store.update(replace(make_food(today), entry_id=999))

    def test_latest_weight(self, entry_store, today) -> None:
        for offset, weight in ((2, 83.0), (0, 82.1), (1, 82.6)):
            entry_store.append(Entry(
                date=today - timedelta(days=offset),
                kind=EntryKind.WEIGHT,
                time=time(7, 0),
                weight=weight,
            ))
        assert entry_store.latest_weight().weight == 82.1

    def test_entries_on(self, entry_store, make_food, today) -> None:
        entry_store.append(make_food(today))
        entry_store.append(make_food(today - timedelta(days=1)))
        assert len(entry_store.entries_on(today)) == 1

    def test_source_id_round_trip(self, entry_store, make_food, today) -> None:
        from_catalog = entry_store.append(replace(make_food(today), source_id=7))
        ad_hoc = entry_store.append(make_food(today, name="Apple"))

        assert entry_store.get(from_catalog.entry_id).source_id == 7
        assert entry_store.get(ad_hoc.entry_id).source_id is None


class TestCsvEntryStore:
    """CSV-specific parsing."""

    def test_rows_without_ids_are_numbered(self, tmp_path) -> None:
        path = tmp_path / "entries.csv"
        path.write_text(
            "date,time,kind,weight,name,calories\n"
            "2026-10-01,07:00:00,weight,82.4,,\n"
            "2026-10-01,12:00:00,food,,Oatmeal,150\n"
        )
        entries = CsvEntryStore(path).all_entries()
        assert [e.entry_id for e in entries] == [1, 2]
        assert entries[1].name == "Oatmeal"

    @pytest.mark.parametrize(
        "row",
        [
            "2026-13-01,07:00:00,weight,82.4,,",   # bad date
            "2026-10-01,07:00:00,snack,,Apple,95",  # unknown kind
            "2026-10-01,07:00:00,weight,heavy,,",  # non-numeric weight
            "2026-10-01,07:00:00,weight,-3,,",     # negative weight
            "2026-10-01,07:00:00,food,,,95",       # food without name
        ],
    )
    def test_malformed_rows_raise(self, tmp_path, row: str) -> None:
        path = tmp_path / "entries.csv"
        path.write_text("date,time,kind,weight,name,calories\n" + row + "\n")
        with pytest.raises(StorageError):
            CsvEntryStore(path).all_entries()

    @pytest.mark.parametrize("name", ["NA", "None", "null", "nan", "N/A", "NaN"])
    def test_na_like_names_round_trip(self, csv_store, make_food, today, name: str) -> None:
        stored = csv_store.append(make_food(today, name=name))

        assert csv_store.get(stored.entry_id).name == name
        assert [e.name for e in csv_store.all_entries()] == [name]

    def test_empty_cells_are_missing(self, tmp_path) -> None:
        path = tmp_path / "entries.csv"
        path.write_text(
            "entry_id,date,time,kind,weight,name,calories,protein,carbs,fat,servings,source_id\n"
            "1,2026-10-01,12:00:00,food,,None,150,,,,,\n"
        )
        entry = CsvEntryStore(path).get(1)
        assert entry.name == "None"
        assert entry.protein is None
        assert entry.servings == 1.0
        assert entry.source_id is None

    def test_missing_columns_raise(self, tmp_path) -> None:
        path = tmp_path / "entries.csv"
        path.write_text("when,what\n2026-10-01,weight\n")
        with pytest.raises(StorageError):
            CsvEntryStore(path).all_entries()


class TestSqliteEntryStore:
    """SQLite-specific behaviour."""

    def test_malformed_row_raises(self, sqlite_store) -> None:
        sqlite_store.db.execute_query(
            "INSERT INTO entries (date, time, kind, weight) VALUES (?, ?, ?, ?)",
            ("not-a-date", "07:00:00", "weight", 80.0),
        )
        with pytest.raises(StorageError):
            sqlite_store.all_entries()

    def test_write_errors_raise_storage_error(self, sqlite_store, make_food, today) -> None:
        stored = sqlite_store.append(make_food(today))
        sqlite_store.db.execute_query("PRAGMA query_only = ON")

        with pytest.raises(StorageError):
            sqlite_store.append(make_food(today, name="Apple"))
        with pytest.raises(StorageError):
            sqlite_store.update(replace(stored, calories=410))
        with pytest.raises(StorageError):
            sqlite_store.delete(stored.entry_id)
        assert sqlite_store.get(stored.entry_id) == stored

    def test_read_errors_raise_storage_error(self, sqlite_store, make_food, today) -> None:
        stored = sqlite_store.append(make_food(today))
        sqlite_store.db.execute_query("DROP TABLE entries")

        with pytest.raises(StorageError):
            sqlite_store.get(stored.entry_id)
        with pytest.raises(StorageError):
            sqlite_store.all_entries()

    def test_old_database_gains_source_id(self, tmp_path) -> None:
        path = tmp_path / "old.db"
        conn = sqlite3.connect(path)
        conn.execute(
            "CREATE TABLE entries (entry_id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "date DATE NOT NULL, time TIME NOT NULL, kind TEXT NOT NULL, weight REAL, "
            "name TEXT, calories REAL, protein REAL, carbs REAL, fat REAL, "
            "servings REAL NOT NULL DEFAULT 1)"
        )
        conn.execute(
            "INSERT INTO entries (date, time, kind, weight) "
            "VALUES ('2026-10-01', '07:00:00', 'weight', 82.4)"
        )
        conn.commit()
        conn.close()

        with SqliteEntryStore(DatabaseConnection(path)) as store:
            entries = store.all_entries()
        assert entries[0].weight == 82.4
        assert entries[0].source_id is None

    def test_data_survives_reopen(self, temp_db, make_food, today) -> None:
        with SqliteEntryStore(temp_db) as store:
            store.append(make_food(today))
        with SqliteEntryStore(temp_db) as store:
            assert len(store.all_entries()) == 1


def test_open_entry_store_rejects_unknown_backend(tmp_path) -> None:
    with pytest.raises(StorageError):
        open_entry_store("json", tmp_path / "bite.db", tmp_path / "entries.csv")


class TestUserConfigStore:
    """Tests for the YAML user config."""

    def test_save_and_load(self, user_store, sample_config, today) -> None:
        sample_config.phase = DietPhase(
            name=PhaseName.CUT,
            start_date=today - timedelta(days=10),
            target_rate=-0.5,
            planned_weeks=8,
            start_weight=84.0,
            goal_calories=2150.0,
            goal_weight=80.0,
        )
        user_store.save(sample_config)
        loaded = user_store.load()

        assert loaded.height == 180
        assert loaded.activity_level == sample_config.activity_level
        assert loaded.phase == sample_config.phase

    def test_no_phase(self, user_store, sample_config) -> None:
        user_store.save(sample_config)
        assert user_store.load().phase is None

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(StorageError):
            UserConfigStore(tmp_path / "missing.yaml").load()

    @pytest.mark.parametrize(
        "content",
        [
            "height: 180\nage: 30\ngender: male\n",                                # no activity
            "height: tall\nage: 30\ngender: male\nactivity_level: moderate\n",     # bad number
            "height: 180\nage: 30\ngender: robot\nactivity_level: moderate\n",     # bad gender
            "height: 180\nage: 30\ngender: male\nactivity_level: couch\n",         # bad activity
            "height: 180\nage: 30\ngender: male\nactivity_level: moderate\n"
            "phase: cut\ntarget_rate: -0.5\n",                                      # no phase_start
            "height: 180\nage: 30\ngender: male\nactivity_level: moderate\n"
            "phase: sprint\nphase_start: 2026-10-01\ntarget_rate: -0.5\n",          # bad phase
            "- just\n- a list\n",
            "height: [180\n",
        ],
    )
    def test_malformed_raises(self, tmp_path, content: str) -> None:
        path = tmp_path / "user.yaml"
        path.write_text(content)
        with pytest.raises(StorageError):
            UserConfigStore(path).load()

    def test_unquoted_dates_accepted(self, tmp_path) -> None:
        path = tmp_path / "user.yaml"
        path.write_text(
            "height: 180\nage: 30\ngender: male\nactivity_level: very_active\n"
            "phase: bulk\nphase_start: 2026-09-01\nphase_end: 2026-10-01\ntarget_rate: 0.25\n"
        )
        config = UserConfigStore(path).load()
        assert config.phase.start_date == date(2026, 9, 1)
        assert config.phase.end_date == date(2026, 10, 1)
        assert not config.phase.is_active
