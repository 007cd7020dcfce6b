"""Posting volume metrics: weekly buckets, velocity and period change."""
from __future__ import annotations

from typing import Any, Dict, Optional

import pandas as pd

from workforce_intel.config import MetricThresholds
from workforce_intel.data.semantic import round_pct, safe_pct, safe_pct_change

WEEKLY_COLUMNS = ["week_start", "week_label", "count", "cumulative_count"]

ACCELERATING = "accelerating"
DECELERATING = "decelerating"
STEADY = "steady"


def weekly_volume_breakdown(df: pd.DataFrame) -> pd.DataFrame:
    """
    Postings bucketed by ISO week (Monday start), in week order.

    Only weeks with at least one posting appear.
    """
    if df.empty:
        return pd.DataFrame(columns=WEEKLY_COLUMNS)

    dates = df["posting_date"].dropna()
    week_start = dates.dt.normalize() - pd.to_timedelta(dates.dt.weekday, unit="D")
    counts = week_start.value_counts().sort_index()

    weekly = pd.DataFrame({
        "week_start": counts.index,
        "count": counts.values.astype(int),
    })
    weekly["week_label"] = weekly["week_start"].map(lambda d: f"{d:%b} {d.day}")
    weekly["cumulative_count"] = weekly["count"].cumsum()
    return weekly[WEEKLY_COLUMNS].reset_index(drop=True)


def volume_velocity(weekly: pd.DataFrame, thresholds: Optional[MetricThresholds] = None) -> Dict[str, Any]:
    """
    Peak week, half-period split and acceleration from a weekly breakdown.

    The split is at ``len(weekly) // 2``; the second half is compared to the
    first to classify the period as accelerating, decelerating or steady.
    """
    thresholds = thresholds or MetricThresholds()
    if weekly.empty:
        return {
            "peak_week": None,
            "peak_count": 0,
            "first_half_count": 0,
            "second_half_count": 0,
            "first_half_share": 0.0,
            "second_half_share": 0.0,
            "acceleration": STEADY,
        }

    peak_idx = weekly["count"].idxmax()
    midpoint = len(weekly) // 2
    first = int(weekly["count"].iloc[:midpoint].sum())
    second = int(weekly["count"].iloc[midpoint:].sum())
    total = first + second

    if second > first * thresholds.accelerating_ratio:
        acceleration = ACCELERATING
    elif second < first * thresholds.decelerating_ratio:
        acceleration = DECELERATING
    else:
        acceleration = STEADY

    return {
        "peak_week": weekly.loc[peak_idx, "week_label"],
        "peak_count": int(weekly.loc[peak_idx, "count"]),
        "first_half_count": first,
        "second_half_count": second,
        "first_half_share": round_pct(safe_pct(first, total)),
        "second_half_share": round_pct(safe_pct(second, total)),
        "acceleration": acceleration,
    }


def compute_volume_metrics(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    historical: pd.DataFrame,
    period_weeks: int,
    thresholds: Optional[MetricThresholds] = None,
) -> Dict[str, Any]:
    """Volume section of the brief."""
    total = len(current)
    previous_total = len(previous)
    weekly_avg = total / period_weeks if period_weeks else 0.0
    previous_weekly_avg = previous_total / period_weeks if period_weeks else 0.0
    historical_weekly_avg = len(historical) / 52

    weekly = weekly_volume_breakdown(current)
    velocity = volume_velocity(weekly, thresholds)

    return {
        "total": total,
        "previous_total": previous_total,
        "change": round_pct(safe_pct_change(total, previous_total)),
        "weekly_average": round_pct(weekly_avg),
        "previous_weekly_average": round_pct(previous_weekly_avg),
        "velocity_change": round_pct(safe_pct_change(weekly_avg, previous_weekly_avg)),
        "historical_weekly_average": round_pct(historical_weekly_avg),
        "vs_12_month_average": round_pct(safe_pct_change(weekly_avg, historical_weekly_avg)),
        "weekly": weekly,
        **velocity,
    }
