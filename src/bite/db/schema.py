"""SQLite database schema definitions."""

SCHEMA_SQL = """
-- Entry log: weigh-ins, foods and meals
CREATE TABLE IF NOT EXISTS entries (
    entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
    date DATE NOT NULL,
    time TIME NOT NULL,
    kind TEXT NOT NULL CHECK(kind IN ('weight', 'food', 'meal')),
    weight REAL,
    name TEXT,
    calories REAL,
    protein REAL,
    carbs REAL,
    fat REAL,
    servings REAL NOT NULL DEFAULT 1,
    source_id INTEGER
);

CREATE INDEX IF NOT EXISTS idx_entries_date ON entries(date, time);
CREATE INDEX IF NOT EXISTS idx_entries_kind ON entries(kind);

-- Food catalog, nutrition per serving
CREATE TABLE IF NOT EXISTS foods (
    food_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    calories REAL NOT NULL,
    protein REAL,
    carbs REAL,
    fat REAL,
    serving_size REAL NOT NULL DEFAULT 100,
    serving_unit TEXT NOT NULL DEFAULT 'g',
    servings REAL NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS meals (
    meal_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE
);

-- Foods in a meal; NULL servings falls back to the food's preference
CREATE TABLE IF NOT EXISTS meal_foods (
    meal_id INTEGER NOT NULL,
    food_id INTEGER NOT NULL,
    servings REAL,
    PRIMARY KEY (meal_id, food_id),
    FOREIGN KEY (meal_id) REFERENCES meals(meal_id),
    FOREIGN KEY (food_id) REFERENCES foods(food_id)
);

CREATE INDEX IF NOT EXISTS idx_meal_foods_food ON meal_foods(food_id);
"""

ENTRY_COLUMNS = (
    "entry_id",
    "date",
    "time",
    "kind",
    "weight",
    "name",
    "calories",
    "protein",
    "carbs",
    "fat",
    "servings",
    "source_id",
)

FOOD_COLUMNS = (
    "food_id",
    "name",
    "calories",
    "protein",
    "carbs",
    "fat",
    "serving_size",
    "serving_unit",
    "servings",
)


def get_schema_sql() -> str:
    """Return the complete schema SQL."""
    return SCHEMA_SQL


def migrate_entries_add_source_id(conn) -> bool:
    """
    Add the source_id column to entries if it doesn't exist.

    Databases created before foods could be logged from the catalog lack
    it. Returns True if migration was performed.
    """
    cursor = conn.execute("PRAGMA table_info(entries)")
    columns = {row[1] for row in cursor.fetchall()}
    if "source_id" in columns:
        return False

    conn.execute("ALTER TABLE entries ADD COLUMN source_id INTEGER")
    return True
