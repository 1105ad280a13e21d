"""Terminal output for the entry log, catalog, metrics and phase summaries."""

from bite.export.formatters import (
    ReportFormatter,
    assessment_as_dict,
    create_progress_bar,
    entry_as_dict,
    food_as_dict,
    format_entry_value,
    meal_as_dict,
)

__all__ = [
    "ReportFormatter",
    "assessment_as_dict",
    "create_progress_bar",
    "entry_as_dict",
    "food_as_dict",
    "format_entry_value",
    "meal_as_dict",
]
