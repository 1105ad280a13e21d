"""Data models for the entry log and diet phases."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from bite.errors import ValidationError
from bite.profiles.body_calc import ActivityLevel, Sex, parse_activity_level, parse_sex


class EntryKind(Enum):
    """What a log entry records."""
    WEIGHT = "weight"
    FOOD = "food"
    MEAL = "meal"


class PhaseName(Enum):
    """Diet phase goal."""
    CUT = "cut"
    MAINTAIN = "maintain"
    BULK = "bulk"


class PhaseStatus(Enum):
    """Whether a diet phase is currently running."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ProgressStatus(Enum):
    """Outcome of comparing the actual weight trend with the target rate."""
    ON_TRACK = "on-track"
    TOO_SLOW = "too-slow"
    TOO_FAST = "too-fast"
    WRONG_DIRECTION = "wrong-direction"


# Default weekly rate (kg/week), planned duration (weeks) and allowed
# duration bounds (weeks) per phase.
DEFAULT_TARGET_RATES = {
    PhaseName.CUT: -0.5,
    PhaseName.MAINTAIN: 0.0,
    PhaseName.BULK: 0.25,
}
DEFAULT_PLANNED_WEEKS = {
    PhaseName.CUT: 8,
    PhaseName.MAINTAIN: 5,
    PhaseName.BULK: 10,
}
PHASE_DURATION_BOUNDS = {
    PhaseName.CUT: (6, 12),
    PhaseName.MAINTAIN: (4, None),
    PhaseName.BULK: (6, 16),
}


def parse_phase_name(value: str | PhaseName) -> PhaseName:
    """Parse a phase name, raising ValidationError for anything unknown."""
    if isinstance(value, PhaseName):
        return value
    try:
        return PhaseName(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(p.value for p in PhaseName)
        raise ValidationError(f"phase must be one of: {valid}, got '{value}'") from None


@dataclass
class DietPhase:
    """A bounded period with a weight-change goal.

    A phase is active iff it has a start date and no end date.
    """

    name: PhaseName
    start_date: date
    target_rate: float  # kg/week, negative when losing
    end_date: Optional[date] = None
    planned_weeks: Optional[int] = None
    start_weight: Optional[float] = None  # kg
    goal_calories: Optional[float] = None
    goal_weight: Optional[float] = None  # kg

    @property
    def is_active(self) -> bool:
        return self.start_date is not None and self.end_date is None

    @property
    def planned_end(self) -> Optional[date]:
        """Date the phase is planned to finish, if a duration was set."""
        if self.planned_weeks is None:
            return None
        return self.start_date + timedelta(days=self.planned_weeks * 7)


@dataclass
class UserConfig:
    """User biometrics and the current diet phase."""

    height: float  # cm
    age: int
    gender: Sex
    activity_level: ActivityLevel
    phase: Optional[DietPhase] = None

    def __post_init__(self) -> None:
        self.gender = parse_sex(self.gender)
        self.activity_level = parse_activity_level(self.activity_level)
        if not 50 <= self.height <= 275:
            raise ValidationError(f"height must be between 50 and 275 cm, got {self.height}")
        if not 1 <= self.age <= 120:
            raise ValidationError(f"age must be between 1 and 120, got {self.age}")


@dataclass(frozen=True)
class Entry:
    """A single logged event.

    Weight entries carry ``weight`` (kg). Food and meal entries carry a
    ``name`` and their calorie and macro content.
    """

    date: date
    kind: EntryKind
    entry_id: Optional[int] = None
    time: time = field(default_factory=lambda: datetime.now().time().replace(microsecond=0))
    weight: Optional[float] = None
    name: Optional[str] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    servings: float = 1.0
    source_id: Optional[int] = None  # catalog food or meal it was logged from

    def __post_init__(self) -> None:
        if self.kind == EntryKind.WEIGHT:
            if self.weight is None or self.weight <= 0:
                raise ValidationError(f"weight entry needs a positive weight, got {self.weight}")
            if self.source_id is not None:
                raise ValidationError("weight entries have no catalog source")
            return

        if not self.name:
            raise ValidationError(f"{self.kind.value} entry needs a name")
        if self.calories is None or self.calories < 0:
            raise ValidationError(
                f"{self.kind.value} entry needs non-negative calories, got {self.calories}"
            )
        for label in ("protein", "carbs", "fat"):
            value = getattr(self, label)
            if value is not None and value < 0:
                raise ValidationError(f"{label} cannot be negative, got {value}")
        if self.servings <= 0:
            raise ValidationError(f"servings must be positive, got {self.servings}")

    @property
    def sort_key(self) -> tuple:
        return (self.date, self.time, self.entry_id or 0)

    @property
    def total_calories(self) -> float:
        """Calories for the logged number of servings (0 for weigh-ins)."""
        return (self.calories or 0.0) * self.servings

    def total(self, macro: str) -> float:
        """Grams of ``macro`` (protein/carbs/fat) for the logged servings."""
        return (getattr(self, macro) or 0.0) * self.servings


@dataclass
class WeekSummary:
    """Weigh-ins within one 7-day block of a phase."""

    week_number: int
    start: date
    end: date
    weigh_ins: int
    change: Optional[float]  # kg, last minus first; None with fewer than 2 weigh-ins
    rate: Optional[float]  # kg/week, change scaled by the days it spans
    met_target: Optional[bool]


@dataclass
class ProgressAssessment:
    """Actual weight trend of a phase versus its target rate."""

    phase: PhaseName
    status: ProgressStatus
    target_rate: float  # kg/week
    actual_rate: float  # kg/week, from a linear fit
    tolerance: float  # kg/week band around the target
    weigh_ins: int
    first_weight: float
    last_weight: float
    span_days: int
    daily_energy_balance: float  # kcal/day implied by actual_rate
    calorie_adjustment: float  # kcal/day change suggested to reach target
    threshold_exceeded: bool = False
    goal_reached: bool = False
    recommendation: str = ""

    @property
    def total_change(self) -> float:
        return self.last_weight - self.first_weight

    @property
    def on_track(self) -> bool:
        return self.status == ProgressStatus.ON_TRACK


@dataclass
class Food:
    """A catalog food with its nutrition per serving.

    ``servings`` is the preferred number of servings logged when none is
    given.
    """

    name: str
    calories: float  # kcal per serving
    protein: Optional[float] = None  # g per serving
    carbs: Optional[float] = None
    fat: Optional[float] = None
    serving_size: float = 100.0
    serving_unit: str = "g"
    servings: float = 1.0
    food_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("food needs a name")
        if self.name.strip().isdigit():
            raise ValidationError(f"food name cannot be a number, got '{self.name}'")
        if self.calories is None or self.calories < 0:
            raise ValidationError(f"food needs non-negative calories, got {self.calories}")
        for label in ("protein", "carbs", "fat"):
            value = getattr(self, label)
            if value is not None and value < 0:
                raise ValidationError(f"{label} cannot be negative, got {value}")
        if self.serving_size <= 0:
            raise ValidationError(f"serving size must be positive, got {self.serving_size}")
        if self.servings <= 0:
            raise ValidationError(f"servings must be positive, got {self.servings}")


@dataclass
class MealItem:
    """A food inside a meal and how many servings of it the meal holds."""

    food: Food
    servings: float

    @property
    def calories(self) -> float:
        return self.food.calories * self.servings

    def total(self, macro: str) -> float:
        return (getattr(self.food, macro) or 0.0) * self.servings


@dataclass
class Meal:
    """A named set of catalog foods logged together."""

    name: str
    items: list[MealItem] = field(default_factory=list)
    meal_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("meal needs a name")
        if self.name.strip().isdigit():
            raise ValidationError(f"meal name cannot be a number, got '{self.name}'")

    @property
    def calories(self) -> float:
        return sum(item.calories for item in self.items)

    def total(self, macro: str) -> float:
        return sum(item.total(macro) for item in self.items)


@dataclass
class FoodLogSummary:
    """How many foods were logged and which ones most often."""

    total: int
    frequent: list[tuple[str, int]]  # (name, times eaten), most frequent first
