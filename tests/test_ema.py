"""Tests for the EMA weight trend with gap handling."""

from __future__ import annotations

from datetime import date

import pytest

from bite.tracking.ema import (
    DEFAULT_SMOOTHING,
    calculate_trend,
    estimate_daily_calorie_balance,
    time_scaled_alpha,
    update_trend,
)


class TestTimeScaledAlpha:
    """Tests for time_scaled_alpha function."""

    def test_daily_unchanged(self) -> None:
        assert time_scaled_alpha(0.1, 1) == pytest.approx(0.1)

    def test_weekly_gap(self) -> None:
        """After 7 days, alpha should be 1 - 0.9^7 ≈ 0.522."""
        assert time_scaled_alpha(0.1, 7) == pytest.approx(1 - 0.9 ** 7)

    def test_zero_days_treated_as_one(self) -> None:
        """Same-day weigh-ins step like a single day."""
        assert time_scaled_alpha(0.1, 0) == pytest.approx(0.1)
        assert time_scaled_alpha(0.1, -1) == pytest.approx(0.1)

    def test_large_gap_approaches_one(self) -> None:
        assert time_scaled_alpha(0.1, 30) > 0.95


class TestUpdateTrend:
    """Tests for update_trend function."""

    def test_daily_update(self) -> None:
        result = update_trend(80.0, 79.0)
        assert result == pytest.approx(80.0 + DEFAULT_SMOOTHING * (79.0 - 80.0))

    def test_multi_day_gap_gives_more_weight(self) -> None:
        daily = update_trend(80.0, 79.0, days_elapsed=1)
        three_day = update_trend(80.0, 79.0, days_elapsed=3)
        assert three_day < daily  # Closer to 79.0


class TestCalculateTrend:
    """Tests for calculate_trend function."""

    def test_empty_list(self) -> None:
        assert calculate_trend([]) == []

    def test_first_weight_seeds_trend(self) -> None:
        assert calculate_trend([(date(2026, 10, 1), 82.0)]) == [82.0]

    def test_mixed_gaps(self) -> None:
        dated = [
            (date(2026, 10, 1), 82.0),
            (date(2026, 10, 2), 81.8),  # 1-day gap
            (date(2026, 10, 5), 81.5),  # 3-day gap
            (date(2026, 10, 12), 81.0),  # 7-day gap
        ]
        trends = calculate_trend(dated)

        assert len(trends) == 4
        assert trends[1] == pytest.approx(82.0 + 0.1 * (81.8 - 82.0))

        alpha_3 = time_scaled_alpha(0.1, 3)
        assert trends[2] == pytest.approx(trends[1] + alpha_3 * (81.5 - trends[1]))

        alpha_7 = time_scaled_alpha(0.1, 7)
        assert trends[3] == pytest.approx(trends[2] + alpha_7 * (81.0 - trends[2]))

    def test_trend_lags_a_falling_series(self) -> None:
        dated = [(date(2026, 10, d), 82.0 - 0.1 * d) for d in range(1, 15)]
        trends = calculate_trend(dated)
        assert all(t > w for t, (_, w) in zip(trends[1:], dated[1:]))


class TestCalorieBalance:
    """Tests for estimate_daily_calorie_balance."""

    def test_half_kilo_per_week_loss(self) -> None:
        assert estimate_daily_calorie_balance(-0.5) == pytest.approx(-550)

    def test_no_change(self) -> None:
        assert estimate_daily_calorie_balance(0) == 0
