"""
Period resolution: current, previous and historical windows for a brief.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pandas as pd
from loguru import logger

from workforce_intel.config import HISTORICAL_MONTHS, TIME_RANGE_WEEKS, config


@dataclass(frozen=True)
class PeriodWindow:
    """Closed interval [start, end] over posting dates."""

    start: pd.Timestamp
    end: pd.Timestamp
    label: str

    @property
    def length(self) -> pd.Timedelta:
        return self.end - self.start

    def contains(self, dates: pd.Series) -> pd.Series:
        """Membership mask; NaT never matches."""
        return dates.notna() & (dates >= self.start) & (dates <= self.end)


@dataclass(frozen=True)
class PeriodWindows:
    selector: str
    weeks: int
    current: PeriodWindow
    previous: PeriodWindow
    historical: PeriodWindow


def _day_label(ts: pd.Timestamp) -> str:
    return f"{ts:%b} {ts.day}"


def format_period_label(start: pd.Timestamp, end: pd.Timestamp, with_year: bool = True) -> str:
    """'Jan 5 - Apr 6, 2025' or, without year, 'Jan 5 - Apr 6'."""
    label = f"{_day_label(start)} - {_day_label(end)}"
    return f"{label}, {end.year}" if with_year else label


def to_naive_timestamp(value) -> pd.Timestamp:
    """Timestamp in naive UTC; aware values are converted first."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def normalize_time_range(selector: Optional[str]) -> str:
    """Known selector, else the configured default."""
    if selector in TIME_RANGE_WEEKS:
        return selector
    fallback = config.default_time_range if config.default_time_range in TIME_RANGE_WEEKS else "3months"
    if selector is not None:
        logger.warning("Unknown time range {!r}; using {}", selector, fallback)
    return fallback


def resolve_periods(selector: Optional[str], now=None) -> PeriodWindows:
    """
    Resolve the analysis windows for a selector relative to ``now``.

    current    = [now - length, now]
    previous   = [current.start - length, current.start]
    historical = [now - 12 months, now]

    The historical window may overlap the other two; it only feeds
    long-run baselines.
    """
    selector = normalize_time_range(selector)
    now = to_naive_timestamp(now if now is not None else pd.Timestamp.now(tz="UTC"))
    weeks = TIME_RANGE_WEEKS[selector]
    length = pd.Timedelta(weeks=weeks)

    current_start = now - length
    previous_start = current_start - length
    historical_start = now - pd.DateOffset(months=HISTORICAL_MONTHS)

    return PeriodWindows(
        selector=selector,
        weeks=weeks,
        current=PeriodWindow(current_start, now, format_period_label(current_start, now)),
        previous=PeriodWindow(
            previous_start,
            current_start,
            format_period_label(previous_start, current_start, with_year=False),
        ),
        historical=PeriodWindow(historical_start, now, format_period_label(historical_start, now)),
    )


def filter_window(df: pd.DataFrame, window: PeriodWindow, date_col: str = "posting_date") -> pd.DataFrame:
    """Rows whose posting date falls inside the window (closed interval)."""
    if df.empty or date_col not in df.columns:
        return df.iloc[0:0]
    return df.loc[window.contains(df[date_col])]
