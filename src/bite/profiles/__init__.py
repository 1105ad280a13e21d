"""Body metric calculations."""

from bite.profiles.body_calc import (
    ActivityLevel,
    Sex,
    clamp_goal_to_macro_bounds,
    goal_calories,
    macro_bounds,
    macros,
    mifflin,
    tdee,
)

__all__ = [
    "ActivityLevel",
    "Sex",
    "clamp_goal_to_macro_bounds",
    "goal_calories",
    "macro_bounds",
    "macros",
    "mifflin",
    "tdee",
]
