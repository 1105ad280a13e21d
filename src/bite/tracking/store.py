"""Persistence for the user config (YAML) and the entry log (SQLite or CSV).

Values are parsed into typed models here, at the storage boundary;
anything malformed raises StorageError instead of surfacing later.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Generator, Mapping, Optional

import pandas as pd
import yaml

from bite.db.connection import DatabaseConnection
from bite.db.schema import ENTRY_COLUMNS
from bite.errors import BiteError, StorageError
from bite.tracking.models import (
    DietPhase,
    Entry,
    EntryKind,
    UserConfig,
    parse_phase_name,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Typed parsing helpers
# ============================================================================


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _parse_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise StorageError(f"{field_name}: '{value}' is not a YYYY-MM-DD date") from None


def _parse_time(value: Any, field_name: str) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        raise StorageError(f"{field_name}: '{value}' is not a HH:MM:SS time") from None


def _parse_float(value: Any, field_name: str) -> Optional[float]:
    if _is_missing(value):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise StorageError(f"{field_name}: '{value}' is not a number") from None
    if not math.isfinite(result):
        raise StorageError(f"{field_name}: '{value}' is not a finite number")
    return result


def _parse_int(value: Any, field_name: str) -> Optional[int]:
    number = _parse_float(value, field_name)
    if number is None:
        return None
    if number != int(number):
        raise StorageError(f"{field_name}: '{value}' is not a whole number")
    return int(number)


def entry_from_record(record: Mapping[str, Any]) -> Entry:
    """Build an Entry from a row mapping (SQLite row or CSV record).

    Raises:
        StorageError: If any column is missing or malformed
    """
    where = f"entry {record.get('entry_id', '?')}"
    try:
        kind = EntryKind(str(record["kind"]).strip().lower())
    except (KeyError, ValueError):
        raise StorageError(f"{where}: unknown kind '{record.get('kind')}'") from None

    if _is_missing(record.get("date")):
        raise StorageError(f"{where}: missing date")

    name = record.get("name")
    servings = _parse_float(record.get("servings"), f"{where} servings")

    try:
        return Entry(
            entry_id=_parse_int(record.get("entry_id"), f"{where} id"),
            date=_parse_date(record["date"], f"{where} date"),
            time=(
                time(0, 0)
                if _is_missing(record.get("time"))
                else _parse_time(record["time"], f"{where} time")
            ),
            kind=kind,
            weight=_parse_float(record.get("weight"), f"{where} weight"),
            name=None if _is_missing(name) else str(name),
            calories=_parse_float(record.get("calories"), f"{where} calories"),
            protein=_parse_float(record.get("protein"), f"{where} protein"),
            carbs=_parse_float(record.get("carbs"), f"{where} carbs"),
            fat=_parse_float(record.get("fat"), f"{where} fat"),
            servings=1.0 if servings is None else servings,
            source_id=_parse_int(record.get("source_id"), f"{where} source_id"),
        )
    except StorageError:
        raise
    except BiteError as e:
        raise StorageError(f"{where}: {e}") from e


def entry_to_record(entry: Entry) -> dict[str, Any]:
    """Flatten an Entry into column values."""
    return {
        "entry_id": entry.entry_id,
        "date": entry.date.isoformat(),
        "time": entry.time.isoformat(timespec="seconds"),
        "kind": entry.kind.value,
        "weight": entry.weight,
        "name": entry.name,
        "calories": entry.calories,
        "protein": entry.protein,
        "carbs": entry.carbs,
        "fat": entry.fat,
        "servings": entry.servings,
        "source_id": entry.source_id,
    }


# ============================================================================
# User config
# ============================================================================


class UserConfigStore:
    """Reads and writes the user config as flat ``key: value`` YAML."""

    REQUIRED_KEYS = ("height", "age", "gender", "activity_level")

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> UserConfig:
        """Read the whole config.

        Raises:
            StorageError: If the file is missing, unreadable or malformed
        """
        if not self.path.exists():
            raise StorageError(
                f"No user config at {self.path}. Run 'bite init' to create one."
            )

        try:
            with open(self.path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StorageError(f"Can't read user config {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"User config {self.path} must be a mapping")

        missing = [key for key in self.REQUIRED_KEYS if _is_missing(data.get(key))]
        if missing:
            raise StorageError(f"User config is missing: {', '.join(missing)}")

        try:
            config = UserConfig(
                height=_parse_float(data["height"], "height"),
                age=_parse_int(data["age"], "age"),
                gender=str(data["gender"]),
                activity_level=str(data["activity_level"]),
                phase=self._parse_phase(data),
            )
        except StorageError:
            raise
        except BiteError as e:
            raise StorageError(f"Invalid user config {self.path}: {e}") from e

        logger.info("Loaded user config from %s", self.path)
        return config

    @staticmethod
    def _parse_phase(data: Mapping[str, Any]) -> Optional[DietPhase]:
        raw_name = data.get("phase")
        if _is_missing(raw_name) or str(raw_name).strip().lower() == "none":
            return None

        if _is_missing(data.get("phase_start")):
            raise StorageError(f"phase '{raw_name}' has no phase_start")

        target_rate = _parse_float(data.get("target_rate"), "target_rate")
        if target_rate is None:
            raise StorageError(f"phase '{raw_name}' has no target_rate")

        return DietPhase(
            name=parse_phase_name(str(raw_name)),
            start_date=_parse_date(data["phase_start"], "phase_start"),
            target_rate=target_rate,
            end_date=(
                None
                if _is_missing(data.get("phase_end"))
                else _parse_date(data["phase_end"], "phase_end")
            ),
            planned_weeks=_parse_int(data.get("planned_weeks"), "planned_weeks"),
            start_weight=_parse_float(data.get("start_weight"), "start_weight"),
            goal_calories=_parse_float(data.get("goal_calories"), "goal_calories"),
            goal_weight=_parse_float(data.get("goal_weight"), "goal_weight"),
        )

    def save(self, config: UserConfig) -> None:
        """Write the whole config back."""
        phase = config.phase
        data: dict[str, Any] = {
            "height": float(config.height),
            "age": int(config.age),
            "gender": config.gender.value,
            "activity_level": config.activity_level.value,
            "phase": phase.name.value if phase else "none",
        }
        if phase is not None:
            data.update({
                "phase_start": phase.start_date.isoformat(),
                "phase_end": phase.end_date.isoformat() if phase.end_date else None,
                "target_rate": phase.target_rate,
                "planned_weeks": phase.planned_weeks,
                "start_weight": phase.start_weight,
                "goal_calories": (
                    round(phase.goal_calories, 1)
                    if phase.goal_calories is not None
                    else None
                ),
                "goal_weight": phase.goal_weight,
            })

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise StorageError(f"Can't write user config {self.path}: {e}") from e

        logger.info("Saved user config to %s", self.path)


# ============================================================================
# Entry log
# ============================================================================


class EntryStore:
    """Interface to the entry log.

    Subclasses implement the five primitive operations; ``all_entries``
    must return entries ordered by date and time.
    """

    def all_entries(self) -> list[Entry]:
        raise NotImplementedError

    def get(self, entry_id: int) -> Entry:
        raise NotImplementedError

    def append(self, entry: Entry) -> Entry:
        raise NotImplementedError

    def update(self, entry: Entry) -> Entry:
        raise NotImplementedError

    def delete(self, entry_id: int) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release any held resources."""

    def __enter__(self) -> "EntryStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def entries_of_kind(self, kind: EntryKind) -> list[Entry]:
        return [e for e in self.all_entries() if e.kind == kind]

    def entries_on(self, day: date) -> list[Entry]:
        return [e for e in self.all_entries() if e.date == day]

    def latest_weight(self) -> Optional[Entry]:
        weights = self.entries_of_kind(EntryKind.WEIGHT)
        return weights[-1] if weights else None


@contextmanager
def sqlite_errors(action: str) -> Generator[None, None, None]:
    """Re-raise sqlite3 errors raised inside the block as StorageError."""
    try:
        yield
    except sqlite3.Error as e:
        raise StorageError(f"Can't {action}: {e}") from e


class SqliteEntryStore(EntryStore):
    """Entry log kept in the ``entries`` table."""

    def __init__(self, db: DatabaseConnection):
        self.db = db
        self.db.open()
        try:
            self.db.initialize_schema()
        except sqlite3.Error as e:
            self.db.close()
            raise StorageError(f"Can't open database {db.db_path}: {e}") from e

    def close(self) -> None:
        self.db.close()

    def all_entries(self) -> list[Entry]:
        with sqlite_errors("read entries"):
            rows = self.db.execute_query(
                f"SELECT {', '.join(ENTRY_COLUMNS)} FROM entries "
                "ORDER BY date, time, entry_id"
            )
        return [entry_from_record(dict(row)) for row in rows]

    def get(self, entry_id: int) -> Entry:
        with sqlite_errors(f"read entry {entry_id}"):
            rows = self.db.execute_query(
                f"SELECT {', '.join(ENTRY_COLUMNS)} FROM entries WHERE entry_id = ?",
                (entry_id,),
            )
        if not rows:
            raise StorageError(f"No entry with id {entry_id}")
        return entry_from_record(dict(rows[0]))

    def append(self, entry: Entry) -> Entry:
        record = entry_to_record(entry)
        columns = [c for c in ENTRY_COLUMNS if c != "entry_id"]
        with sqlite_errors(f"append {entry.kind.value} entry"):
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    f"INSERT INTO entries ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})",
                    tuple(record[c] for c in columns),
                )
                entry_id = cursor.lastrowid
        logger.info("Appended %s entry %s", entry.kind.value, entry_id)
        return replace(entry, entry_id=entry_id)

    def update(self, entry: Entry) -> Entry:
        if entry.entry_id is None:
            raise StorageError("Cannot update an entry without entry_id")
        record = entry_to_record(entry)
        columns = [c for c in ENTRY_COLUMNS if c != "entry_id"]
        with sqlite_errors(f"update entry {entry.entry_id}"):
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    f"UPDATE entries SET {', '.join(f'{c} = ?' for c in columns)} "
                    "WHERE entry_id = ?",
                    tuple(record[c] for c in columns) + (entry.entry_id,),
                )
                updated = cursor.rowcount
        if updated == 0:
            raise StorageError(f"No entry with id {entry.entry_id}")
        logger.info("Updated entry %s", entry.entry_id)
        return entry

    def delete(self, entry_id: int) -> None:
        with sqlite_errors(f"delete entry {entry_id}"):
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM entries WHERE entry_id = ?", (entry_id,)
                )
                deleted = cursor.rowcount
        if deleted == 0:
            raise StorageError(f"No entry with id {entry_id}")
        logger.info("Deleted entry %s", entry_id)


class CsvEntryStore(EntryStore):
    """Entry log kept in a flat CSV file, one row per entry.

    Every cell is read as text and parsed by entry_from_record, so a food
    called "NA" or "None" stays a name; only empty cells are missing.

    CSV format:
        entry_id,date,time,kind,weight,name,calories,protein,carbs,fat,servings,source_id
        1,2026-10-01,07:30:00,weight,82.4,,,,,,1,
        2,2026-10-01,12:05:00,food,,Oatmeal,150,5,27,3,1.5,4
    """

    def __init__(self, csv_path: Path):
        self.csv_path = csv_path

    def _read(self) -> list[Entry]:
        if not self.csv_path.exists():
            return []
        try:
            df = pd.read_csv(self.csv_path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return []
        except (OSError, pd.errors.ParserError) as e:
            raise StorageError(f"Can't read {self.csv_path}: {e}") from e

        missing = {"date", "kind"} - set(df.columns)
        if missing:
            raise StorageError(f"{self.csv_path} is missing columns: {sorted(missing)}")

        entries = []
        for _, row in df.iterrows():
            record = {c: (None if pd.isna(row.get(c)) else row.get(c)) for c in ENTRY_COLUMNS}
            entries.append(entry_from_record(record))

        # Rows written before ids existed get sequential ids.
        next_id = max((e.entry_id or 0 for e in entries), default=0) + 1
        numbered = []
        for entry in entries:
            if entry.entry_id is None:
                entry = replace(entry, entry_id=next_id)
                next_id += 1
            numbered.append(entry)
        return numbered

    def _write(self, entries: list[Entry]) -> None:
        df = pd.DataFrame(
            [entry_to_record(e) for e in entries], columns=list(ENTRY_COLUMNS)
        )
        # Keep ids as integers when some rows have no source_id.
        df["source_id"] = df["source_id"].astype("Int64")
        try:
            self.csv_path.parent.mkdir(parents=True, exist_ok=True)
            df.to_csv(self.csv_path, index=False)
        except OSError as e:
            raise StorageError(f"Can't write {self.csv_path}: {e}") from e

    def all_entries(self) -> list[Entry]:
        return sorted(self._read(), key=lambda e: e.sort_key)

    def get(self, entry_id: int) -> Entry:
        for entry in self._read():
            if entry.entry_id == entry_id:
                return entry
        raise StorageError(f"No entry with id {entry_id}")

    def append(self, entry: Entry) -> Entry:
        entries = self._read()
        entry_id = max((e.entry_id or 0 for e in entries), default=0) + 1
        entry = replace(entry, entry_id=entry_id)
        entries.append(entry)
        self._write(entries)
        logger.info("Appended %s entry %s", entry.kind.value, entry_id)
        return entry

    def update(self, entry: Entry) -> Entry:
        entries = self._read()
        for i, existing in enumerate(entries):
            if existing.entry_id == entry.entry_id:
                entries[i] = entry
                self._write(entries)
                logger.info("Updated entry %s", entry.entry_id)
                return entry
        raise StorageError(f"No entry with id {entry.entry_id}")

    def delete(self, entry_id: int) -> None:
        entries = self._read()
        remaining = [e for e in entries if e.entry_id != entry_id]
        if len(remaining) == len(entries):
            raise StorageError(f"No entry with id {entry_id}")
        self._write(remaining)
        logger.info("Deleted entry %s", entry_id)


def open_entry_store(backend: str, database_path: Path, csv_path: Path) -> EntryStore:
    """Create the entry store for the configured backend."""
    if backend == "csv":
        return CsvEntryStore(csv_path)
    if backend == "sqlite":
        try:
            db = DatabaseConnection(database_path)
        except OSError as e:
            raise StorageError(f"Can't create {database_path.parent}: {e}") from e
        return SqliteEntryStore(db)
    raise StorageError(f"Unknown storage backend '{backend}'")
