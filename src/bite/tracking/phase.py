"""Diet phase tracking: status, the phase's log window, and progress.

A phase is active from its start date until an end date is recorded by
``stop_phase``. Progress is measured only over the entries inside the
phase window, never over older history.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional, Sequence

import numpy as np

from bite.errors import InsufficientDataError, PhaseNotActiveError, ValidationError
from bite.profiles.body_calc import (
    KCAL_PER_KG,
    clamp_goal_to_macro_bounds,
    goal_calories,
    mifflin,
    tdee,
)
from bite.tracking.ema import estimate_daily_calorie_balance
from bite.tracking.models import (
    DEFAULT_PLANNED_WEEKS,
    DEFAULT_TARGET_RATES,
    PHASE_DURATION_BOUNDS,
    DietPhase,
    Entry,
    EntryKind,
    PhaseName,
    PhaseStatus,
    ProgressAssessment,
    ProgressStatus,
    UserConfig,
    WeekSummary,
    parse_phase_name,
)

logger = logging.getLogger(__name__)

# Share of the start weight a single cut or bulk may lose or gain.
WEIGHT_CHANGE_THRESHOLD = 0.10

TRANSITION_SUGGESTIONS = {
    PhaseName.CUT: (
        "After a completed cut, a maintenance phase of the same duration "
        "as the cut is recommended."
    ),
    PhaseName.MAINTAIN: (
        "After a completed maintenance phase you are primed for a bulk or a "
        "cut. Extending maintenance is fine too."
    ),
    PhaseName.BULK: (
        "After a completed bulk, a maintenance phase of at least a month "
        "is recommended."
    ),
}


class PhaseTracker:
    """Answers questions about the user's current diet phase.

    Args:
        config: User config holding the phase. ``start_phase`` and
            ``stop_phase`` mutate ``config.phase``; persisting it is up to
            the caller.
        tolerance: Allowed deviation from the target rate, as a fraction
            of that rate
        maintenance_band: Allowed drift (kg/week) when the target is zero
        today: Override for the current date
    """

    def __init__(
        self,
        config: UserConfig,
        tolerance: float = 0.2,
        maintenance_band: float = 0.1,
        today: Optional[date] = None,
    ):
        self.config = config
        self.tolerance = tolerance
        self.maintenance_band = maintenance_band
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    @property
    def phase(self) -> Optional[DietPhase]:
        return self.config.phase

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def check_phase_status(self) -> PhaseStatus:
        """Return ACTIVE when the phase has a start date and no end date."""
        phase = self.phase
        if phase is not None and phase.is_active:
            return PhaseStatus.ACTIVE
        return PhaseStatus.INACTIVE

    def is_active(self) -> bool:
        return self.check_phase_status() == PhaseStatus.ACTIVE

    def is_overdue(self) -> bool:
        """True when an active phase has run past its planned end."""
        phase = self.phase
        if not self.is_active() or phase.planned_end is None:
            return False
        return self.today > phase.planned_end

    def transition_suggestion(self) -> Optional[str]:
        if self.phase is None:
            return None
        return TRANSITION_SUGGESTIONS[self.phase.name]

    # ------------------------------------------------------------------
    # Log window
    # ------------------------------------------------------------------

    def window(self) -> Optional[tuple[date, date]]:
        """Inclusive date range of the phase: start to end date or today."""
        phase = self.phase
        if phase is None:
            return None
        return phase.start_date, phase.end_date or self.today

    def valid_log_indices(self, entries: Sequence[Entry]) -> list[int]:
        """Indices of the entries dated inside the phase window.

        Entries before the start date are always excluded, and for a
        stopped phase so are entries after the end date. Indices come back
        in chronological order of their entries.
        """
        bounds = self.window()
        if bounds is None:
            return []
        start, end = bounds
        indices = [i for i, entry in enumerate(entries) if start <= entry.date <= end]
        return sorted(indices, key=lambda i: entries[i].sort_key)

    def valid_log(self, entries: Sequence[Entry]) -> list[Entry]:
        """Entries dated inside the phase window, chronologically."""
        return [entries[i] for i in self.valid_log_indices(entries)]

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def tolerance_band(self, target_rate: float) -> float:
        if target_rate == 0:
            return self.maintenance_band
        return abs(target_rate) * self.tolerance

    @staticmethod
    def classify(actual_rate: float, target_rate: float, band: float) -> ProgressStatus:
        """Compare an actual weekly rate with the target rate."""
        if target_rate != 0 and actual_rate * target_rate < 0:
            return ProgressStatus.WRONG_DIRECTION
        if abs(actual_rate - target_rate) <= band:
            return ProgressStatus.ON_TRACK
        if target_rate == 0:
            return ProgressStatus.TOO_FAST
        if abs(actual_rate) < abs(target_rate):
            return ProgressStatus.TOO_SLOW
        return ProgressStatus.TOO_FAST

    def check_progress(self, active_entries: Sequence[Entry]) -> ProgressAssessment:
        """Evaluate the weight trend of the phase against its target rate.

        The weekly rate is the slope of a least-squares line through the
        weigh-ins, scaled to seven days.

        Args:
            active_entries: Entries inside the phase window (see valid_log)

        Raises:
            PhaseNotActiveError: If there is no phase at all
            InsufficientDataError: With fewer than two weigh-ins on
                different days
        """
        phase = self.phase
        if phase is None:
            raise PhaseNotActiveError("No diet phase has been started")

        weights = sorted(
            (e for e in active_entries if e.kind == EntryKind.WEIGHT),
            key=lambda e: e.sort_key,
        )
        if len(weights) < 2 or len({e.date for e in weights}) < 2:
            raise InsufficientDataError(
                f"Need weigh-ins on at least two days since {phase.start_date} "
                f"to check progress (found {len(weights)})"
            )

        first_day = weights[0].date
        days = np.array([(e.date - first_day).days for e in weights], dtype=float)
        values = np.array([e.weight for e in weights], dtype=float)
        slope, _ = np.polyfit(days, values, 1)
        actual_rate = float(slope) * 7

        target_rate = phase.target_rate
        band = self.tolerance_band(target_rate)
        status = self.classify(actual_rate, target_rate, band)

        if status == ProgressStatus.ON_TRACK:
            adjustment = 0.0
        else:
            adjustment = (target_rate - actual_rate) * KCAL_PER_KG / 7

        start_weight = phase.start_weight or weights[0].weight
        last_weight = weights[-1].weight
        threshold_exceeded = self._threshold_exceeded(phase.name, start_weight, last_weight)
        goal_reached = self._goal_reached(phase, last_weight)

        assessment = ProgressAssessment(
            phase=phase.name,
            status=status,
            target_rate=target_rate,
            actual_rate=actual_rate,
            tolerance=band,
            weigh_ins=len(weights),
            first_weight=weights[0].weight,
            last_weight=last_weight,
            span_days=(weights[-1].date - first_day).days,
            daily_energy_balance=estimate_daily_calorie_balance(actual_rate),
            calorie_adjustment=adjustment,
            threshold_exceeded=threshold_exceeded,
            goal_reached=goal_reached,
        )
        assessment.recommendation = self._recommend(assessment)
        logger.debug(
            "Progress for %s phase: %+.2f kg/week vs target %+.2f (%s)",
            phase.name.value, actual_rate, target_rate, status.value,
        )
        return assessment

    @staticmethod
    def _threshold_exceeded(name: PhaseName, start_weight: float, current: float) -> bool:
        limit = start_weight * WEIGHT_CHANGE_THRESHOLD
        if name == PhaseName.CUT:
            return start_weight - current > limit
        if name == PhaseName.BULK:
            return current - start_weight > limit
        return False

    @staticmethod
    def _goal_reached(phase: DietPhase, current: float) -> bool:
        if phase.goal_weight is None:
            return False
        if phase.name == PhaseName.CUT:
            return current <= phase.goal_weight
        if phase.name == PhaseName.BULK:
            return current >= phase.goal_weight
        return False

    def _recommend(self, assessment: ProgressAssessment) -> str:
        adjustment = assessment.calorie_adjustment
        change = (
            f"{'increasing' if adjustment > 0 else 'reducing'} intake by "
            f"~{abs(adjustment):.0f} kcal/day"
        )

        if assessment.status == ProgressStatus.ON_TRACK:
            message = "You're on track. Keep doing what you're doing."
        elif assessment.status == ProgressStatus.WRONG_DIRECTION:
            moving = "gaining" if assessment.actual_rate > 0 else "losing"
            message = (
                f"You're {moving} weight during a {assessment.phase.value}. "
                f"Consider {change}."
            )
        elif assessment.phase == PhaseName.MAINTAIN:
            drift = "up" if assessment.actual_rate > 0 else "down"
            message = f"Weight is drifting {drift}. Consider {change}."
        else:
            verb = "Losing" if assessment.target_rate < 0 else "Gaining"
            pace = "slower" if assessment.status == ProgressStatus.TOO_SLOW else "faster"
            message = f"{verb} {pace} than target. Consider {change}."

        if assessment.threshold_exceeded:
            message += (
                f" You've moved more than {WEIGHT_CHANGE_THRESHOLD:.0%} from your "
                "starting weight this phase; consider a maintenance phase."
            )
        if assessment.goal_reached:
            message += " You've reached your goal weight; consider stopping this phase."
        return message

    def weekly_summaries(self, active_entries: Sequence[Entry]) -> list[WeekSummary]:
        """Break the phase into 7-day blocks counted from its start date.

        A week's rate is its first-to-last change scaled to seven days, so
        a week weighed on fewer days is judged on the days it covers.
        Weeks with weigh-ins on fewer than two days are not judged.
        """
        bounds = self.window()
        if bounds is None:
            return []
        start, end = bounds
        target_rate = self.phase.target_rate
        band = self.tolerance_band(target_rate)

        weights = sorted(
            (e for e in active_entries if e.kind == EntryKind.WEIGHT),
            key=lambda e: e.sort_key,
        )

        summaries = []
        week_start = start
        week_number = 1
        while week_start <= end:
            week_end = week_start + timedelta(days=6)
            in_week = [e for e in weights if week_start <= e.date <= week_end]

            change = None
            rate = None
            met = None
            if len(in_week) >= 2:
                change = in_week[-1].weight - in_week[0].weight
                span = (in_week[-1].date - in_week[0].date).days
                if span > 0:
                    rate = change * 7 / span
                    if target_rate < 0:
                        met = rate <= target_rate + band
                    elif target_rate > 0:
                        met = rate >= target_rate - band
                    else:
                        met = abs(rate) <= band

            summaries.append(WeekSummary(
                week_number=week_number,
                start=week_start,
                end=week_end,
                weigh_ins=len(in_week),
                change=change,
                rate=rate,
                met_target=met,
            ))
            week_start += timedelta(days=7)
            week_number += 1

        return summaries

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_phase(
        self,
        name: str | PhaseName,
        start_date: Optional[date] = None,
        target_rate: Optional[float] = None,
        planned_weeks: Optional[int] = None,
        current_weight: Optional[float] = None,
        goal_weight: Optional[float] = None,
    ) -> DietPhase:
        """Begin a fresh phase, replacing any stopped one.

        Args:
            name: cut, maintain or bulk
            start_date: Defaults to today; may not be in the future
            target_rate: kg/week, defaults per phase (negative for a cut)
            planned_weeks: Planned duration, checked against phase bounds
            current_weight: Latest weight (kg); sets the start weight, the
                goal calories and the default goal weight
            goal_weight: Weight (kg) to reach; needs ``current_weight``

        Raises:
            ValidationError: If a phase is already active or a value is invalid
        """
        if self.is_active():
            raise ValidationError(
                f"A {self.phase.name.value} phase is already active; stop it first"
            )

        phase_name = parse_phase_name(name)
        start = start_date or self.today
        if start > self.today:
            raise ValidationError(f"Start date {start} is in the future")

        rate = DEFAULT_TARGET_RATES[phase_name] if target_rate is None else target_rate
        if phase_name == PhaseName.CUT and rate >= 0:
            raise ValidationError("A cut needs a negative weekly rate")
        if phase_name == PhaseName.BULK and rate <= 0:
            raise ValidationError("A bulk needs a positive weekly rate")
        if phase_name == PhaseName.MAINTAIN and rate != 0:
            raise ValidationError("A maintenance phase has a weekly rate of zero")

        weeks = DEFAULT_PLANNED_WEEKS[phase_name] if planned_weeks is None else planned_weeks
        min_weeks, max_weeks = PHASE_DURATION_BOUNDS[phase_name]
        if weeks < min_weeks or (max_weeks is not None and weeks > max_weeks):
            upper = f"-{max_weeks}" if max_weeks is not None else "+"
            raise ValidationError(
                f"A {phase_name.value} should last {min_weeks}{upper} weeks, got {weeks}"
            )

        calories = None
        goal = None
        if current_weight is not None:
            bmr = mifflin(
                current_weight, self.config.height, self.config.age, self.config.gender
            )
            calories = clamp_goal_to_macro_bounds(
                goal_calories(tdee(bmr, self.config.activity_level), rate),
                current_weight,
            )
            goal = self._goal_weight(phase_name, current_weight, rate * weeks, goal_weight)
        elif goal_weight is not None:
            raise ValidationError("Log a weight before setting a goal weight")

        phase = DietPhase(
            name=phase_name,
            start_date=start,
            target_rate=rate,
            planned_weeks=weeks,
            start_weight=current_weight,
            goal_calories=calories,
            goal_weight=goal,
        )
        self.config.phase = phase
        logger.info("Started %s phase on %s", phase_name.value, start)
        return phase

    @staticmethod
    def _goal_weight(
        name: PhaseName,
        start_weight: float,
        planned_change: float,
        goal_weight: Optional[float],
    ) -> float:
        """Check a requested goal weight, or derive one from the plan.

        A cut may not aim below, nor a bulk above, WEIGHT_CHANGE_THRESHOLD
        of the start weight. The derived goal is the planned change capped
        at that limit; a maintenance goal is the start weight.
        """
        limit = start_weight * WEIGHT_CHANGE_THRESHOLD
        if goal_weight is None:
            if name == PhaseName.MAINTAIN:
                return start_weight
            change = max(-limit, min(limit, planned_change))
            return round(start_weight + change, 2)

        if goal_weight <= 0:
            raise ValidationError(f"goal weight must be positive, got {goal_weight}")
        if name == PhaseName.CUT:
            if goal_weight >= start_weight:
                raise ValidationError(
                    f"A cut needs a goal weight below the start weight ({start_weight:.1f} kg)"
                )
            if start_weight - goal_weight > limit:
                raise ValidationError(
                    f"A cut may lose at most {WEIGHT_CHANGE_THRESHOLD:.0%} of the start "
                    f"weight; the lowest goal is {start_weight - limit:.1f} kg"
                )
        elif name == PhaseName.BULK:
            if goal_weight <= start_weight:
                raise ValidationError(
                    f"A bulk needs a goal weight above the start weight ({start_weight:.1f} kg)"
                )
            if goal_weight - start_weight > limit:
                raise ValidationError(
                    f"A bulk may gain at most {WEIGHT_CHANGE_THRESHOLD:.0%} of the start "
                    f"weight; the highest goal is {start_weight + limit:.1f} kg"
                )
        elif abs(goal_weight - start_weight) > limit:
            raise ValidationError(
                f"A maintenance goal must stay within {WEIGHT_CHANGE_THRESHOLD:.0%} "
                "of the start weight"
            )
        return goal_weight

    def stop_phase(self) -> DietPhase:
        """Record today as the end date of the active phase.

        Raises:
            PhaseNotActiveError: If no phase is active; nothing is changed
        """
        if not self.is_active():
            raise PhaseNotActiveError("There is no active diet phase to stop")

        self.phase.end_date = self.today
        logger.info("Stopped %s phase on %s", self.phase.name.value, self.today)
        return self.phase


def missed_week_streak(summaries: Sequence[WeekSummary]) -> int:
    """Number of most recent weeks in a row that missed the target.

    Weeks with too few weigh-ins to judge are skipped.
    """
    streak = 0
    for summary in reversed(summaries):
        if summary.met_target is None:
            continue
        if summary.met_target:
            break
        streak += 1
    return streak
