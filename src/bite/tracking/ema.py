"""Exponentially smoothed moving average for weight tracking.

This implements the Hacker's Diet trend calculation:
    T_n = T_{n-1} + smoothing × (W_n - T_{n-1})

With smoothing=0.1 (10%) the trend has a time constant of roughly ten
days, which removes day-to-day noise from water retention and scale
error while following the underlying weight.

Weigh-ins are rarely daily, so the smoothing factor is scaled by the gap:
    α_adjusted = 1 - (1 - α)^t
where t is days since the previous weigh-in.

Reference: https://www.fourmilab.ch/hackdiet/
"""

from __future__ import annotations

from datetime import date

from bite.profiles.body_calc import KCAL_PER_KG

DEFAULT_SMOOTHING = 0.1


def time_scaled_alpha(base_alpha: float, days_elapsed: int) -> float:
    """
    Adjust smoothing factor for non-daily measurements.

    Args:
        base_alpha: Base smoothing factor (typically 0.1)
        days_elapsed: Days since last measurement

    Returns:
        Adjusted smoothing factor

    Example:
        >>> time_scaled_alpha(0.1, 1)
        0.1
        >>> round(time_scaled_alpha(0.1, 3), 3)
        0.271
    """
    if days_elapsed <= 0:
        days_elapsed = 1
    return 1 - (1 - base_alpha) ** days_elapsed


def update_trend(
    prev_trend: float,
    today_weight: float,
    smoothing: float = DEFAULT_SMOOTHING,
    days_elapsed: int = 1,
) -> float:
    """
    Calculate new trend value from the previous trend and a new weigh-in.

    Args:
        prev_trend: Previous trend value (T_{n-1})
        today_weight: Today's scale weight (W_n)
        smoothing: Base smoothing factor, default 0.1
        days_elapsed: Days since last measurement (default 1)

    Returns:
        Today's trend value (T_n)
    """
    adjusted_alpha = time_scaled_alpha(smoothing, days_elapsed)
    return prev_trend + adjusted_alpha * (today_weight - prev_trend)


def calculate_trend(
    weights: list[tuple[date, float]],
    smoothing: float = DEFAULT_SMOOTHING,
) -> list[float]:
    """
    Calculate trend values for a chronological series of weigh-ins.

    The first weight seeds the trend. Gaps between dates scale the
    smoothing factor; several weigh-ins on the same day count as a
    one-day step.

    Args:
        weights: (date, weight) tuples in chronological order
        smoothing: Base smoothing factor, default 0.1

    Returns:
        List of trend values, same length as weights
    """
    if not weights:
        return []

    trends = [weights[0][1]]
    for i in range(1, len(weights)):
        prev_date, _ = weights[i - 1]
        curr_date, curr_weight = weights[i]
        days_elapsed = (curr_date - prev_date).days
        trends.append(update_trend(trends[-1], curr_weight, smoothing, days_elapsed))

    return trends


def estimate_daily_calorie_balance(weekly_change_kg: float) -> float:
    """
    Estimate daily calorie surplus/deficit from weekly weight change.

    Uses the approximation that 1 kg of body weight holds 7700 kcal.

    Args:
        weekly_change_kg: Weekly weight change in kg (negative = loss)

    Returns:
        Daily calorie balance (negative = deficit, positive = surplus)
    """
    return (weekly_change_kg * KCAL_PER_KG) / 7
