"""SQLite persistence for the entry log and food catalog."""

from bite.db.connection import DatabaseConnection
from bite.db.schema import ENTRY_COLUMNS, FOOD_COLUMNS, get_schema_sql

__all__ = ["DatabaseConnection", "ENTRY_COLUMNS", "FOOD_COLUMNS", "get_schema_sql"]
