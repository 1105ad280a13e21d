"""Tests for diet phase status, log window and progress."""

from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from bite.errors import InsufficientDataError, PhaseNotActiveError, ValidationError
from bite.profiles.body_calc import macro_bounds, macro_calories
from bite.tracking.models import (
    Entry,
    EntryKind,
    PhaseName,
    PhaseStatus,
    ProgressStatus,
    UserConfig,
)
from bite.tracking.phase import PhaseTracker, missed_week_streak


class TestPhaseStatus:
    """Tests for check_phase_status."""

    def test_started_without_end_is_active(self, make_config, today) -> None:
        tracker = PhaseTracker(make_config(), today=today)
        assert tracker.check_phase_status() == PhaseStatus.ACTIVE

    def test_with_end_is_inactive(self, make_config, today) -> None:
        config = make_config(end=today - timedelta(days=1))
        assert PhaseTracker(config, today=today).check_phase_status() == PhaseStatus.INACTIVE

    def test_no_phase_is_inactive(self, sample_config, today) -> None:
        assert PhaseTracker(sample_config, today=today).check_phase_status() == PhaseStatus.INACTIVE


class TestValidLog:
    """Tests for the phase log window."""

    def test_excludes_entries_before_start(self, make_config, make_food, today) -> None:
        start = today - timedelta(days=10)
        entries = [
            make_food(start - timedelta(days=1), entry_id=1),
            make_food(start, entry_id=2),
            make_food(today, entry_id=3),
        ]
        tracker = PhaseTracker(make_config(start=start), today=today)
        assert [e.entry_id for e in tracker.valid_log(entries)] == [2, 3]
        assert tracker.valid_log_indices(entries) == [1, 2]

    def test_stopped_phase_excludes_entries_after_end(self, make_config, make_food, today) -> None:
        start = today - timedelta(days=20)
        end = today - timedelta(days=5)
        entries = [make_food(start + timedelta(days=d), entry_id=d) for d in range(21)]
        tracker = PhaseTracker(make_config(start=start, end=end), today=today)

        window = tracker.valid_log(entries)
        assert window[0].date == start
        assert window[-1].date == end
        assert all(start <= e.date <= end for e in window)

    def test_chronological_order(self, make_config, make_food, today) -> None:
        start = today - timedelta(days=5)
        entries = [
            make_food(today, entry_id=1),
            make_food(start, entry_id=2),
            make_food(start + timedelta(days=2), entry_id=3),
        ]
        tracker = PhaseTracker(make_config(start=start), today=today)
        assert tracker.valid_log_indices(entries) == [1, 2, 0]

    def test_no_phase_gives_empty_window(self, sample_config, make_food, today) -> None:
        tracker = PhaseTracker(sample_config, today=today)
        assert tracker.valid_log([make_food(today)]) == []


class TestCheckProgress:
    """Tests for check_progress classification."""

    def test_on_track(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=28)
        tracker = PhaseTracker(make_config(start=start, target_rate=-0.5), today=today)
        result = tracker.check_progress(make_weigh_ins(start, 85.0, -0.5, 28))

        assert result.status == ProgressStatus.ON_TRACK
        assert result.actual_rate == pytest.approx(-0.5, abs=1e-6)
        assert result.calorie_adjustment == 0
        assert result.weigh_ins == 28

    def test_half_rate_is_too_slow(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=28)
        tracker = PhaseTracker(make_config(start=start, target_rate=-0.5), today=today)
        result = tracker.check_progress(make_weigh_ins(start, 85.0, -0.25, 28))

        assert result.status == ProgressStatus.TOO_SLOW
        # 0.25 kg/week short of target: 0.25 * 7700 / 7 = 275 kcal/day less
        assert result.calorie_adjustment == pytest.approx(-275, abs=0.5)
        assert "Reduc" in result.recommendation or "reduc" in result.recommendation

    def test_double_rate_is_too_fast(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=28)
        tracker = PhaseTracker(make_config(start=start, target_rate=-0.5), today=today)
        result = tracker.check_progress(make_weigh_ins(start, 85.0, -1.0, 28))
        assert result.status == ProgressStatus.TOO_FAST
        assert result.calorie_adjustment > 0

    def test_gaining_on_cut_is_wrong_direction(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=28)
        tracker = PhaseTracker(make_config(start=start, target_rate=-0.5), today=today)
        result = tracker.check_progress(make_weigh_ins(start, 85.0, 0.3, 28))
        assert result.status == ProgressStatus.WRONG_DIRECTION

    def test_bulk_on_track(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=21)
        config = make_config(name=PhaseName.BULK, start=start, target_rate=0.25)
        result = PhaseTracker(config, today=today).check_progress(
            make_weigh_ins(start, 75.0, 0.27, 21, every=3)
        )
        assert result.status == ProgressStatus.ON_TRACK

    def test_maintain_drift_is_too_fast(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=21)
        config = make_config(name=PhaseName.MAINTAIN, start=start, target_rate=0.0)
        tracker = PhaseTracker(config, today=today)

        steady = tracker.check_progress(make_weigh_ins(start, 75.0, 0.05, 21))
        drifting = tracker.check_progress(make_weigh_ins(start, 75.0, 0.4, 21))

        assert steady.status == ProgressStatus.ON_TRACK
        assert drifting.status == ProgressStatus.TOO_FAST

    def test_only_weight_entries_count(self, make_config, make_weigh_ins, make_food, today) -> None:
        start = today - timedelta(days=14)
        entries = make_weigh_ins(start, 85.0, -0.5, 14) + [make_food(start, calories=5000)]
        tracker = PhaseTracker(make_config(start=start), today=today)
        assert tracker.check_progress(entries).weigh_ins == 14

    def test_single_weigh_in_is_insufficient(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=7)
        tracker = PhaseTracker(make_config(start=start), today=today)
        with pytest.raises(InsufficientDataError):
            tracker.check_progress(make_weigh_ins(start, 85.0, -0.5, 1))

    def test_same_day_weigh_ins_are_insufficient(self, make_config, today) -> None:
        tracker = PhaseTracker(make_config(start=today - timedelta(days=7)), today=today)
        entries = [
            Entry(date=today, kind=EntryKind.WEIGHT, time=time(7, 0), weight=85.0),
            Entry(date=today, kind=EntryKind.WEIGHT, time=time(21, 0), weight=85.6),
        ]
        with pytest.raises(InsufficientDataError):
            tracker.check_progress(entries)

    def test_no_phase_raises(self, sample_config, make_weigh_ins, today) -> None:
        with pytest.raises(PhaseNotActiveError):
            PhaseTracker(sample_config, today=today).check_progress(
                make_weigh_ins(today - timedelta(days=7), 80, -0.5, 7)
            )

    def test_threshold_exceeded_recommends_maintenance(
        self, make_config, make_weigh_ins, today
    ) -> None:
        start = today - timedelta(days=70)
        config = make_config(start=start, target_rate=-1.0, start_weight=80.0)
        result = PhaseTracker(config, today=today).check_progress(
            make_weigh_ins(start, 80.0, -1.0, 70)
        )
        assert result.threshold_exceeded
        assert "maintenance" in result.recommendation

    def test_no_entries_is_insufficient(self, make_config, today) -> None:
        tracker = PhaseTracker(make_config(), today=today)
        with pytest.raises(InsufficientDataError):
            tracker.check_progress([])

    def test_foods_without_weigh_ins_is_insufficient(
        self, make_config, make_food, today
    ) -> None:
        start = today - timedelta(days=14)
        entries = [make_food(start + timedelta(days=d), entry_id=d) for d in range(14)]
        tracker = PhaseTracker(make_config(start=start), today=today)
        with pytest.raises(InsufficientDataError):
            tracker.check_progress(tracker.valid_log(entries))

    def test_goal_reached_is_recommended(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=28)
        config = make_config(start=start, start_weight=80.0)
        config.phase.goal_weight = 79.0
        result = PhaseTracker(config, today=today).check_progress(
            make_weigh_ins(start, 80.0, -0.5, 28)
        )
        assert result.goal_reached
        assert "goal weight" in result.recommendation

    def test_goal_not_yet_reached(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=28)
        config = make_config(start=start, start_weight=80.0)
        config.phase.goal_weight = 76.0
        result = PhaseTracker(config, today=today).check_progress(
            make_weigh_ins(start, 80.0, -0.5, 28)
        )
        assert not result.goal_reached
        assert "goal weight" not in result.recommendation


class TestStopPhase:
    """Tests for stop_phase."""

    def test_stop_records_today(self, make_config, today) -> None:
        config = make_config()
        phase = PhaseTracker(config, today=today).stop_phase()
        assert phase.end_date == today
        assert config.phase.end_date == today

    def test_stop_inactive_raises_and_keeps_state(self, make_config, user_store, today) -> None:
        ended = today - timedelta(days=3)
        config = make_config(end=ended)
        user_store.save(config)

        with pytest.raises(PhaseNotActiveError):
            PhaseTracker(config, today=today).stop_phase()

        assert config.phase.end_date == ended
        assert user_store.load().phase.end_date == ended

    def test_stop_without_phase_raises(self, sample_config, today) -> None:
        with pytest.raises(PhaseNotActiveError):
            PhaseTracker(sample_config, today=today).stop_phase()


class TestStartPhase:
    """Tests for start_phase."""

    def test_defaults(self, sample_config, today) -> None:
        phase = PhaseTracker(sample_config, today=today).start_phase("cut")
        assert phase.name == PhaseName.CUT
        assert phase.start_date == today
        assert phase.target_rate == -0.5
        assert phase.planned_weeks == 8
        assert phase.goal_calories is None
        assert sample_config.phase is phase

    def test_goal_calories_from_current_weight(self, sample_config, today) -> None:
        phase = PhaseTracker(sample_config, today=today).start_phase("bulk", current_weight=80)
        # BMR 10*80 + 6.25*180 - 5*30 + 5 = 1780; TDEE 2759; +0.25 kg/week = +275
        assert phase.goal_calories == pytest.approx(1780 * 1.55 + 275)
        assert phase.start_weight == 80

    def test_restart_after_stop(self, make_config, today) -> None:
        config = make_config(end=today - timedelta(days=1))
        phase = PhaseTracker(config, today=today).start_phase("maintain")
        assert phase.end_date is None
        assert phase.target_rate == 0
        assert PhaseTracker(config, today=today).check_phase_status() == PhaseStatus.ACTIVE

    def test_cannot_start_while_active(self, make_config, today) -> None:
        with pytest.raises(ValidationError):
            PhaseTracker(make_config(), today=today).start_phase("bulk")

    def test_future_start_rejected(self, sample_config, today) -> None:
        with pytest.raises(ValidationError):
            PhaseTracker(sample_config, today=today).start_phase(
                "cut", start_date=today + timedelta(days=1)
            )

    @pytest.mark.parametrize("name,weeks", [("cut", 4), ("cut", 13), ("bulk", 20), ("maintain", 3)])
    def test_duration_bounds(self, sample_config, today, name: str, weeks: int) -> None:
        with pytest.raises(ValidationError):
            PhaseTracker(sample_config, today=today).start_phase(name, planned_weeks=weeks)

    def test_rate_sign_checked(self, sample_config, today) -> None:
        with pytest.raises(ValidationError):
            PhaseTracker(sample_config, today=today).start_phase("cut", target_rate=0.5)

    def test_goal_calories_kept_within_macro_bounds(self, today) -> None:
        config = UserConfig(height=150, age=80, gender="female", activity_level="sedentary")
        phase = PhaseTracker(config, today=today).start_phase(
            "cut", target_rate=-1.0, current_weight=40
        )
        # TDEE of ~932 kcal minus 1100 would be negative
        minimum, _ = macro_bounds(40, 0)
        assert phase.goal_calories == pytest.approx(macro_calories(*minimum))

    @pytest.mark.parametrize(
        "name,rate,weeks,expected",
        [
            ("cut", None, None, 76.0),
            ("cut", -1.0, 12, 72.0),
            ("bulk", None, None, 82.5),
            ("maintain", None, None, 80.0),
        ],
    )
    def test_default_goal_weight(
        self, sample_config, today, name: str, rate, weeks, expected: float
    ) -> None:
        phase = PhaseTracker(sample_config, today=today).start_phase(
            name, target_rate=rate, planned_weeks=weeks, current_weight=80
        )
        assert phase.goal_weight == pytest.approx(expected)

    def test_explicit_goal_weight(self, sample_config, today) -> None:
        phase = PhaseTracker(sample_config, today=today).start_phase(
            "cut", current_weight=80, goal_weight=74
        )
        assert phase.goal_weight == 74

    @pytest.mark.parametrize(
        "name,goal",
        [
            ("cut", 70),
            ("cut", 81),
            ("bulk", 79),
            ("bulk", 90),
            ("maintain", 95),
            ("cut", 0),
        ],
    )
    def test_goal_weight_limits(self, sample_config, today, name: str, goal: float) -> None:
        with pytest.raises(ValidationError):
            PhaseTracker(sample_config, today=today).start_phase(
                name, current_weight=80, goal_weight=goal
            )

    def test_goal_weight_needs_current_weight(self, sample_config, today) -> None:
        with pytest.raises(ValidationError):
            PhaseTracker(sample_config, today=today).start_phase("cut", goal_weight=75)
        assert sample_config.phase is None


class TestWeeklySummaries:
    """Tests for the weekly breakdown."""

    def test_blocks_from_start(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=20)
        tracker = PhaseTracker(make_config(start=start), today=today)
        weeks = tracker.weekly_summaries(make_weigh_ins(start, 85.0, -0.5, 21))

        assert [w.week_number for w in weeks] == [1, 2, 3]
        assert weeks[0].start == start
        assert weeks[0].weigh_ins == 7
        # six days of a -0.5 kg/week line
        assert weeks[0].change == pytest.approx(-0.5 * 6 / 7)
        assert weeks[0].rate == pytest.approx(-0.5)
        assert all(w.met_target for w in weeks)

    def test_missed_streak(self, make_config, make_weigh_ins, today) -> None:
        start = today - timedelta(days=20)
        tracker = PhaseTracker(make_config(start=start), today=today)
        weeks = tracker.weekly_summaries(make_weigh_ins(start, 85.0, 0.0, 21))
        assert missed_week_streak(weeks) == 3

    def test_partial_weeks_judged_on_days_covered(
        self, make_config, make_weigh_ins, today
    ) -> None:
        start = today - timedelta(days=27)
        tracker = PhaseTracker(make_config(start=start, target_rate=-0.5), today=today)
        weekdays_only = [
            e for e in make_weigh_ins(start, 85.0, -0.5, 28)
            if (e.date - start).days % 7 < 5
        ]

        weeks = tracker.weekly_summaries(weekdays_only)
        assert [w.weigh_ins for w in weeks] == [5, 5, 5, 5]
        assert all(w.rate == pytest.approx(-0.5) for w in weeks)
        assert all(w.met_target for w in weeks)
        assert missed_week_streak(weeks) == 0
        assert tracker.check_progress(weekdays_only).status == ProgressStatus.ON_TRACK

    def test_week_with_one_weigh_in_day_not_judged(self, make_config, today) -> None:
        start = today - timedelta(days=6)
        tracker = PhaseTracker(make_config(start=start), today=today)
        entries = [
            Entry(date=start, kind=EntryKind.WEIGHT, time=time(7, 0), weight=85.0),
            Entry(date=start, kind=EntryKind.WEIGHT, time=time(20, 0), weight=84.2),
        ]

        week = tracker.weekly_summaries(entries)[0]
        assert week.change == pytest.approx(-0.8)
        assert week.rate is None
        assert week.met_target is None


class TestOverdue:
    """Tests for planned end handling."""

    def test_overdue_after_planned_end(self, make_config, today) -> None:
        config = make_config(start=today - timedelta(weeks=9), planned_weeks=8)
        tracker = PhaseTracker(config, today=today)
        assert tracker.is_overdue()
        assert "maintenance" in tracker.transition_suggestion()

    def test_not_overdue_within_plan(self, make_config, today) -> None:
        config = make_config(start=today - timedelta(weeks=2), planned_weeks=8)
        assert not PhaseTracker(config, today=today).is_overdue()
