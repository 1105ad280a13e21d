"""Food and meal catalog kept in SQLite.

Foods carry nutrition per serving and a preferred number of servings.
Meals group foods, each with its own servings in the meal. Logging from
the catalog copies the nutrition into the entry, so later edits to a food
do not rewrite history.
"""

from __future__ import annotations

import logging
import sqlite3
from collections import Counter
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from bite.db.connection import DatabaseConnection
from bite.db.schema import FOOD_COLUMNS
from bite.errors import BiteError, StorageError, ValidationError
from bite.tracking.models import (
    Entry,
    EntryKind,
    Food,
    FoodLogSummary,
    Meal,
    MealItem,
)
from bite.tracking.store import sqlite_errors

logger = logging.getLogger(__name__)

FREQUENT_FOODS_LIMIT = 10


def food_from_row(row: sqlite3.Row) -> Food:
    try:
        return Food(**{c: row[c] for c in FOOD_COLUMNS})
    except BiteError as e:
        raise StorageError(f"food {row['food_id']}: {e}") from e


class CatalogQueries:
    """Query functions for the foods, meals and meal_foods tables."""

    @staticmethod
    def get_food(conn: sqlite3.Connection, food_id: int) -> Optional[sqlite3.Row]:
        query = f"SELECT {', '.join(FOOD_COLUMNS)} FROM foods WHERE food_id = ?"
        return conn.execute(query, (food_id,)).fetchone()

    @staticmethod
    def get_food_by_name(conn: sqlite3.Connection, name: str) -> Optional[sqlite3.Row]:
        query = f"SELECT {', '.join(FOOD_COLUMNS)} FROM foods WHERE name = ?"
        return conn.execute(query, (name.strip(),)).fetchone()

    @staticmethod
    def search_foods(
        conn: sqlite3.Connection, search_term: Optional[str] = None
    ) -> list[sqlite3.Row]:
        """Foods whose name contains ``search_term`` (all foods if None)."""
        query = f"SELECT {', '.join(FOOD_COLUMNS)} FROM foods"
        params: tuple = ()
        if search_term:
            query += " WHERE name LIKE ?"
            params = (f"%{search_term}%",)
        return conn.execute(query + " ORDER BY name", params).fetchall()

    @staticmethod
    def get_meal(conn: sqlite3.Connection, meal_id: int) -> Optional[sqlite3.Row]:
        return conn.execute(
            "SELECT meal_id, name FROM meals WHERE meal_id = ?", (meal_id,)
        ).fetchone()

    @staticmethod
    def get_meal_by_name(conn: sqlite3.Connection, name: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            "SELECT meal_id, name FROM meals WHERE name = ?", (name.strip(),)
        ).fetchone()

    @staticmethod
    def get_meal_foods(conn: sqlite3.Connection, meal_id: int) -> list[sqlite3.Row]:
        """Foods of a meal, with the meal's servings or else the food's."""
        columns = ", ".join(f"f.{c}" for c in FOOD_COLUMNS)
        query = f"""
            SELECT {columns},
                   COALESCE(mf.servings, f.servings) AS meal_servings
            FROM meal_foods mf
            JOIN foods f ON f.food_id = mf.food_id
            WHERE mf.meal_id = ?
            ORDER BY f.name
        """
        return conn.execute(query, (meal_id,)).fetchall()

    @staticmethod
    def meals_using_food(conn: sqlite3.Connection, food_id: int) -> list[str]:
        query = """
            SELECT m.name FROM meals m
            JOIN meal_foods mf ON mf.meal_id = m.meal_id
            WHERE mf.food_id = ?
            ORDER BY m.name
        """
        return [row[0] for row in conn.execute(query, (food_id,)).fetchall()]


class FoodCatalog:
    """Foods and meals that entries can be logged from."""

    def __init__(self, db: DatabaseConnection):
        self.db = db
        self.db.open()
        try:
            self.db.initialize_schema()
        except sqlite3.Error as e:
            self.db.close()
            raise StorageError(f"Can't open food catalog {db.db_path}: {e}") from e

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "FoodCatalog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Foods
    # ------------------------------------------------------------------

    def get_food(self, food_id: int) -> Food:
        with sqlite_errors(f"read food {food_id}"):
            with self.db.get_connection() as conn:
                row = CatalogQueries.get_food(conn, food_id)
        if row is None:
            raise StorageError(f"No food with id {food_id}")
        return food_from_row(row)

    def find_food(self, key: str) -> Food:
        """Look a food up by id (all digits) or by name, ignoring case."""
        key = key.strip()
        if key.isdigit():
            return self.get_food(int(key))
        with sqlite_errors(f"read food '{key}'"):
            with self.db.get_connection() as conn:
                row = CatalogQueries.get_food_by_name(conn, key)
        if row is None:
            raise StorageError(f"No food named '{key}'")
        return food_from_row(row)

    def foods(self, search: Optional[str] = None) -> list[Food]:
        with sqlite_errors("read foods"):
            with self.db.get_connection() as conn:
                rows = CatalogQueries.search_foods(conn, search)
        return [food_from_row(row) for row in rows]

    def add_food(self, food: Food) -> Food:
        """Store a new food and return it with its id.

        Raises:
            ValidationError: If a food with the same name exists
        """
        columns = [c for c in FOOD_COLUMNS if c != "food_id"]
        with sqlite_errors(f"add food '{food.name}'"):
            with self.db.get_connection() as conn:
                if CatalogQueries.get_food_by_name(conn, food.name) is not None:
                    raise ValidationError(f"A food named '{food.name}' already exists")
                cursor = conn.execute(
                    f"INSERT INTO foods ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})",
                    tuple(getattr(food, c) for c in columns),
                )
                food_id = cursor.lastrowid
        logger.info("Added food %s (%s)", food_id, food.name)
        food.food_id = food_id
        return food

    def update_food(self, food: Food) -> Food:
        if food.food_id is None:
            raise StorageError("Cannot update a food without food_id")
        columns = [c for c in FOOD_COLUMNS if c != "food_id"]
        with sqlite_errors(f"update food {food.food_id}"):
            with self.db.get_connection() as conn:
                same_name = CatalogQueries.get_food_by_name(conn, food.name)
                if same_name is not None and same_name["food_id"] != food.food_id:
                    raise ValidationError(f"A food named '{food.name}' already exists")
                cursor = conn.execute(
                    f"UPDATE foods SET {', '.join(f'{c} = ?' for c in columns)} "
                    "WHERE food_id = ?",
                    tuple(getattr(food, c) for c in columns) + (food.food_id,),
                )
                updated = cursor.rowcount
        if updated == 0:
            raise StorageError(f"No food with id {food.food_id}")
        logger.info("Updated food %s", food.food_id)
        return food

    def delete_food(self, food_id: int) -> None:
        """Remove a food that no meal uses.

        Raises:
            ValidationError: If a meal still contains the food
        """
        with sqlite_errors(f"delete food {food_id}"):
            with self.db.get_connection() as conn:
                meals = CatalogQueries.meals_using_food(conn, food_id)
                if meals:
                    raise ValidationError(
                        f"Food {food_id} is used by: {', '.join(meals)}; "
                        "remove it from those meals first"
                    )
                cursor = conn.execute("DELETE FROM foods WHERE food_id = ?", (food_id,))
                deleted = cursor.rowcount
        if deleted == 0:
            raise StorageError(f"No food with id {food_id}")
        logger.info("Deleted food %s", food_id)

    # ------------------------------------------------------------------
    # Meals
    # ------------------------------------------------------------------

    def _load_meal(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Meal:
        items = [
            MealItem(food=food_from_row(food_row), servings=food_row["meal_servings"])
            for food_row in CatalogQueries.get_meal_foods(conn, row["meal_id"])
        ]
        return Meal(name=row["name"], items=items, meal_id=row["meal_id"])

    def get_meal(self, meal_id: int) -> Meal:
        with sqlite_errors(f"read meal {meal_id}"):
            with self.db.get_connection() as conn:
                row = CatalogQueries.get_meal(conn, meal_id)
                if row is None:
                    raise StorageError(f"No meal with id {meal_id}")
                return self._load_meal(conn, row)

    def find_meal(self, key: str) -> Meal:
        """Look a meal up by id (all digits) or by name, ignoring case."""
        key = key.strip()
        if key.isdigit():
            return self.get_meal(int(key))
        with sqlite_errors(f"read meal '{key}'"):
            with self.db.get_connection() as conn:
                row = CatalogQueries.get_meal_by_name(conn, key)
                if row is None:
                    raise StorageError(f"No meal named '{key}'")
                return self._load_meal(conn, row)

    def meals(self) -> list[Meal]:
        with sqlite_errors("read meals"):
            with self.db.get_connection() as conn:
                rows = conn.execute("SELECT meal_id, name FROM meals ORDER BY name").fetchall()
                return [self._load_meal(conn, row) for row in rows]

    def add_meal(self, name: str) -> Meal:
        meal = Meal(name=name.strip())
        with sqlite_errors(f"add meal '{meal.name}'"):
            with self.db.get_connection() as conn:
                if CatalogQueries.get_meal_by_name(conn, meal.name) is not None:
                    raise ValidationError(f"A meal named '{meal.name}' already exists")
                cursor = conn.execute("INSERT INTO meals (name) VALUES (?)", (meal.name,))
                meal.meal_id = cursor.lastrowid
        logger.info("Added meal %s (%s)", meal.meal_id, meal.name)
        return meal

    def add_meal_food(
        self, meal_id: int, food_id: int, servings: Optional[float] = None
    ) -> Meal:
        """Put a food in a meal, or change its servings if already there.

        Args:
            meal_id: Meal to change
            food_id: Food to add
            servings: Servings in the meal; None uses the food's preference
        """
        if servings is not None and servings <= 0:
            raise ValidationError(f"servings must be positive, got {servings}")
        meal = self.get_meal(meal_id)
        food = self.get_food(food_id)
        with sqlite_errors(f"add food {food_id} to meal {meal_id}"):
            with self.db.get_connection() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO meal_foods (meal_id, food_id, servings) "
                    "VALUES (?, ?, ?)",
                    (meal_id, food_id, servings),
                )
        logger.info("Added %s to meal %s", food.name, meal.name)
        return self.get_meal(meal_id)

    def remove_meal_food(self, meal_id: int, food_id: int) -> Meal:
        with sqlite_errors(f"remove food {food_id} from meal {meal_id}"):
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM meal_foods WHERE meal_id = ? AND food_id = ?",
                    (meal_id, food_id),
                )
                removed = cursor.rowcount
        if removed == 0:
            raise StorageError(f"Meal {meal_id} has no food {food_id}")
        logger.info("Removed food %s from meal %s", food_id, meal_id)
        return self.get_meal(meal_id)

    def delete_meal(self, meal_id: int) -> None:
        with sqlite_errors(f"delete meal {meal_id}"):
            with self.db.get_connection() as conn:
                conn.execute("DELETE FROM meal_foods WHERE meal_id = ?", (meal_id,))
                cursor = conn.execute("DELETE FROM meals WHERE meal_id = ?", (meal_id,))
                deleted = cursor.rowcount
        if deleted == 0:
            raise StorageError(f"No meal with id {meal_id}")
        logger.info("Deleted meal %s", meal_id)


def open_catalog(database_path: Path) -> FoodCatalog:
    """Open the food catalog kept in the SQLite database at ``database_path``."""
    try:
        db = DatabaseConnection(database_path)
    except OSError as e:
        raise StorageError(f"Can't create {database_path.parent}: {e}") from e
    return FoodCatalog(db)


# ============================================================================
# Entries from the catalog
# ============================================================================


def entry_for_food(food: Food, day: date, servings: Optional[float] = None) -> Entry:
    """A food entry carrying the food's nutrition per serving."""
    return Entry(
        date=day,
        kind=EntryKind.FOOD,
        name=food.name,
        calories=food.calories,
        protein=food.protein,
        carbs=food.carbs,
        fat=food.fat,
        servings=food.servings if servings is None else servings,
        source_id=food.food_id,
    )


def entry_for_meal(meal: Meal, day: date, servings: float = 1.0) -> Entry:
    """A meal entry whose single serving is the whole meal."""
    if not meal.items:
        raise ValidationError(f"Meal '{meal.name}' has no foods yet")
    return Entry(
        date=day,
        kind=EntryKind.MEAL,
        name=meal.name,
        calories=round(meal.calories, 2),
        protein=round(meal.total("protein"), 2),
        carbs=round(meal.total("carbs"), 2),
        fat=round(meal.total("fat"), 2),
        servings=servings,
        source_id=meal.meal_id,
    )


def summarize_food_log(
    entries: Sequence[Entry], limit: int = FREQUENT_FOODS_LIMIT
) -> FoodLogSummary:
    """Count logged foods and rank the most frequent ones.

    Only food entries count; meals and weigh-ins are ignored. Ties keep
    the order in which the foods were first logged.
    """
    foods = [e.name for e in entries if e.kind == EntryKind.FOOD]
    return FoodLogSummary(total=len(foods), frequent=Counter(foods).most_common(limit))
