"""Body metrics: BMR, TDEE and macronutrient split.

Uses the Mifflin-St Jeor equation for BMR as it's widely validated for
calculating resting metabolic rate. All inputs are metric (kg, cm);
conversion helpers are provided for imperial input at the CLI.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Union

from bite.errors import UnknownActivityLevelError, ValidationError


class Sex(Enum):
    """Biological sex for BMR calculation."""
    MALE = "male"
    FEMALE = "female"


class ActivityLevel(Enum):
    """Activity level multipliers for TDEE calculation."""
    SEDENTARY = "sedentary"          # Little or no exercise
    LIGHT = "light"                  # Light exercise 1-3 days/week
    MODERATE = "moderate"            # Moderate exercise 3-5 days/week
    ACTIVE = "active"                # Hard exercise 6-7 days/week
    VERY_ACTIVE = "very-active"      # Very hard exercise, physical job


# Activity level multipliers (Harris-Benedict activity factors)
ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}

CALS_IN_PROTEIN = 4  # kcal per gram
CALS_IN_CARBS = 4
CALS_IN_FATS = 9

# Protein is set from bodyweight alone: 2.2 g per kg (1 g per lb).
PROTEIN_G_PER_KG = 2.2

# Reference daily intake used by macros() when no calorie goal is given.
# 33 kcal/kg is roughly 15 kcal/lb, a common maintenance rule of thumb.
REFERENCE_KCAL_PER_KG = 33.0

# Energy content of one kg of body weight change.
KCAL_PER_KG = 7700.0

KG_PER_LB = 0.45359237
CM_PER_INCH = 2.54

# Macro bounds: at least 0.3 g/lb of each macro, at most 2 g/lb protein,
# 4 g/lb carbs, and 40% of calories from fat.
MIN_MACRO_G_PER_KG = 0.3 / KG_PER_LB
MAX_PROTEIN_G_PER_KG = 2 / KG_PER_LB
MAX_CARBS_G_PER_KG = 4 / KG_PER_LB
MAX_FAT_SHARE = 0.4


def lbs_to_kg(lbs: float) -> float:
    """Convert pounds to kilograms."""
    return lbs * KG_PER_LB


def kg_to_lbs(kg: float) -> float:
    """Convert kilograms to pounds."""
    return kg / KG_PER_LB


def inches_to_cm(inches: float) -> float:
    """Convert inches to centimeters."""
    return inches * CM_PER_INCH


def cm_to_inches(cm: float) -> float:
    """Convert centimeters to inches."""
    return cm / CM_PER_INCH


def parse_sex(value: Union[str, Sex]) -> Sex:
    """Parse a sex value, raising ValidationError for anything unknown."""
    if isinstance(value, Sex):
        return value
    try:
        return Sex(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"sex must be 'male' or 'female', got '{value}'") from None


def parse_activity_level(value: Union[str, ActivityLevel]) -> ActivityLevel:
    """Parse an activity level; underscores are accepted in place of hyphens.

    Raises:
        UnknownActivityLevelError: If the value is not in the enumerated set
    """
    if isinstance(value, ActivityLevel):
        return value
    normalized = str(value).strip().lower().replace("_", "-")
    try:
        return ActivityLevel(normalized)
    except ValueError:
        valid = ", ".join(level.value for level in ActivityLevel)
        raise UnknownActivityLevelError(
            f"Unknown activity level '{value}' (expected one of: {valid})"
        ) from None


def mifflin(
    weight_kg: float,
    height_cm: float,
    age: int,
    sex: Union[str, Sex],
) -> float:
    """Calculate Basal Metabolic Rate using Mifflin-St Jeor equation.

    Args:
        weight_kg: Weight in kilograms
        height_cm: Height in centimeters
        age: Age in years
        sex: Biological sex

    Returns:
        BMR in calories per day

    Raises:
        ValidationError: For non-finite inputs or an unknown sex
    """
    for label, value in (("weight", weight_kg), ("height", height_cm), ("age", age)):
        if not math.isfinite(value):
            raise ValidationError(f"{label} must be a finite number, got {value}")

    sex_enum = parse_sex(sex)

    bmr = (10 * weight_kg) + (6.25 * height_cm) - (5 * age)
    if sex_enum == Sex.MALE:
        return bmr + 5
    return bmr - 161


def tdee(
    bmr: float,
    activity_level: Union[str, ActivityLevel],
) -> float:
    """Calculate Total Daily Energy Expenditure.

    Args:
        bmr: Basal Metabolic Rate
        activity_level: Activity level

    Returns:
        TDEE in calories per day
    """
    multiplier = ACTIVITY_MULTIPLIERS[parse_activity_level(activity_level)]
    return bmr * multiplier


def macros(
    weight_kg: float,
    fat_fraction: float,
    calories: Optional[float] = None,
) -> tuple[float, float, float]:
    """Suggest a daily macronutrient split.

    Protein is fixed by bodyweight alone (PROTEIN_G_PER_KG). The calories
    left after protein are split between fat and carbs: ``fat_fraction``
    of them go to fat, the remainder to carbs. The fraction never affects
    protein.

    Args:
        weight_kg: Current weight in kilograms
        fat_fraction: Share of non-protein calories assigned to fat (0-1)
        calories: Daily calorie goal. Defaults to REFERENCE_KCAL_PER_KG x weight

    Returns:
        (protein_g, carbs_g, fat_g), rounded to two decimals
    """
    if not 0 <= fat_fraction <= 1:
        raise ValidationError(f"fat_fraction must be between 0 and 1, got {fat_fraction}")
    if weight_kg <= 0:
        raise ValidationError(f"weight must be positive, got {weight_kg}")

    if calories is None:
        calories = REFERENCE_KCAL_PER_KG * weight_kg

    protein = PROTEIN_G_PER_KG * weight_kg
    remaining = max(calories - protein * CALS_IN_PROTEIN, 0.0)

    fats = remaining * fat_fraction / CALS_IN_FATS
    carbs = remaining * (1 - fat_fraction) / CALS_IN_CARBS

    return round(protein, 2), round(carbs, 2), round(fats, 2)


def macro_calories(protein: float, carbs: float, fats: float) -> float:
    """Return the calories contained in the given macronutrients (grams)."""
    return protein * CALS_IN_PROTEIN + carbs * CALS_IN_CARBS + fats * CALS_IN_FATS


def goal_calories(tdee_kcal: float, target_rate: float) -> float:
    """Daily intake that produces ``target_rate`` kg/week of change.

    A negative rate (cut) gives a deficit, a positive rate a surplus.
    """
    return tdee_kcal + target_rate * KCAL_PER_KG / 7


def macro_bounds(
    weight_kg: float, calories: float
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Daily lower and upper limits for each macronutrient.

    Every macro has the same floor (MIN_MACRO_G_PER_KG). Protein and carbs
    are capped by bodyweight; fat is capped at MAX_FAT_SHARE of ``calories``.

    Returns:
        ((min_protein, min_carbs, min_fat), (max_protein, max_carbs, max_fat))
        in grams
    """
    if weight_kg <= 0:
        raise ValidationError(f"weight must be positive, got {weight_kg}")
    floor = MIN_MACRO_G_PER_KG * weight_kg
    minimum = (floor, floor, floor)
    maximum = (
        MAX_PROTEIN_G_PER_KG * weight_kg,
        MAX_CARBS_G_PER_KG * weight_kg,
        MAX_FAT_SHARE * calories / CALS_IN_FATS,
    )
    return minimum, maximum


def clamp_goal_to_macro_bounds(calories: float, weight_kg: float) -> float:
    """Keep a calorie goal reachable within the macro bounds.

    A goal below the calories of the minimum macros is raised to them; a
    goal above what the maximum macros can supply is lowered to that
    ceiling. Since the fat cap scales with the goal, the ceiling G solves
    ``G = 4 * max_protein + 4 * max_carbs + MAX_FAT_SHARE * G``.
    """
    minimum, maximum = macro_bounds(weight_kg, calories)
    floor = macro_calories(*minimum)
    if calories < floor:
        return floor

    max_protein, max_carbs, _ = maximum
    ceiling = macro_calories(max_protein, max_carbs, 0) / (1 - MAX_FAT_SHARE)
    if calories > ceiling:
        return ceiling
    return calories
