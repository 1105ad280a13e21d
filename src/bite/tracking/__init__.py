"""Entry log, food catalog, diet phases and weight-trend progress."""

from bite.tracking.catalog import (
    FoodCatalog,
    entry_for_food,
    entry_for_meal,
    open_catalog,
    summarize_food_log,
)
from bite.tracking.ema import calculate_trend, estimate_daily_calorie_balance
from bite.tracking.models import (
    DietPhase,
    Entry,
    EntryKind,
    Food,
    FoodLogSummary,
    Meal,
    MealItem,
    PhaseName,
    PhaseStatus,
    ProgressAssessment,
    ProgressStatus,
    UserConfig,
    WeekSummary,
)
from bite.tracking.phase import PhaseTracker, missed_week_streak
from bite.tracking.store import (
    CsvEntryStore,
    EntryStore,
    SqliteEntryStore,
    UserConfigStore,
    open_entry_store,
)

__all__ = [
    "CsvEntryStore",
    "DietPhase",
    "Entry",
    "EntryKind",
    "EntryStore",
    "Food",
    "FoodCatalog",
    "FoodLogSummary",
    "Meal",
    "MealItem",
    "PhaseName",
    "PhaseStatus",
    "PhaseTracker",
    "ProgressAssessment",
    "ProgressStatus",
    "SqliteEntryStore",
    "UserConfig",
    "UserConfigStore",
    "WeekSummary",
    "calculate_trend",
    "entry_for_food",
    "entry_for_meal",
    "estimate_daily_calorie_balance",
    "missed_week_streak",
    "open_catalog",
    "open_entry_store",
    "summarize_food_log",
]
