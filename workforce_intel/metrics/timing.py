"""Application window metrics."""
from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from workforce_intel.config import MetricThresholds
from workforce_intel.data.semantic import round_pct, safe_pct

WINDOW_BUCKETS = [
    ("<10 days", 0, 10),
    ("10-14 days", 10, 15),
    ("15-30 days", 15, 31),
    (">30 days", 31, np.inf),
]

WINDOW_DISTRIBUTION_COLUMNS = ["bucket", "count", "percentage"]

CATEGORY_WINDOW_COLUMNS = [
    "category",
    "avg_window",
    "market_avg_window",
    "difference",
    "assessment",
]

FASTER = "Faster than market"
SLOWER = "Slower than market"
IN_LINE = "In line with market"


def _window_values(df: pd.DataFrame) -> pd.Series:
    if df.empty or "application_window_days" not in df.columns:
        return pd.Series(dtype=float)
    return pd.to_numeric(df["application_window_days"], errors="coerce")


def avg_application_window(df: pd.DataFrame, thresholds: Optional[MetricThresholds] = None) -> float:
    """
    Mean application window in days.

    Only windows strictly between 0 and 120 days count; without any valid
    sample the default of 14 days is returned.
    """
    thresholds = thresholds or MetricThresholds()
    windows = _window_values(df)
    valid = windows[(windows > 0) & (windows < thresholds.max_valid_window_days)]
    if valid.empty:
        return thresholds.default_window_days
    return float(valid.mean())


def short_window_share(df: pd.DataFrame, thresholds: Optional[MetricThresholds] = None) -> float:
    """% of postings open for fewer than 10 days (and more than 0)."""
    thresholds = thresholds or MetricThresholds()
    windows = _window_values(df)
    if windows.empty:
        return 0.0
    short = (windows > 0) & (windows < thresholds.short_window_days)
    return safe_pct(short.sum(), len(df))


def window_distribution(df: pd.DataFrame) -> pd.DataFrame:
    """Postings per application-window bucket; rows without a window are skipped."""
    windows = _window_values(df)
    valid = windows[windows > 0]
    rows = []
    for label, low, high in WINDOW_BUCKETS:
        count = int(((valid >= low) & (valid < high)).sum())
        rows.append({"bucket": label, "count": count, "percentage": round_pct(safe_pct(count, len(valid)))})
    return pd.DataFrame(rows, columns=WINDOW_DISTRIBUTION_COLUMNS)


def category_application_windows(
    current: pd.DataFrame,
    market: pd.DataFrame,
    top_n: int = 6,
    thresholds: Optional[MetricThresholds] = None,
) -> pd.DataFrame:
    """Average window in the subject's top categories against the market."""
    thresholds = thresholds or MetricThresholds()
    if current.empty:
        return pd.DataFrame(columns=CATEGORY_WINDOW_COLUMNS)

    rows = []
    for category in current["primary_category"].value_counts().head(top_n).index:
        yours = avg_application_window(current.loc[current["primary_category"] == category], thresholds)
        theirs = avg_application_window(market.loc[market["primary_category"] == category], thresholds)
        diff = yours - theirs
        if diff < -thresholds.window_assessment_days:
            assessment = FASTER
        elif diff > thresholds.window_assessment_days:
            assessment = SLOWER
        else:
            assessment = IN_LINE
        rows.append({
            "category": category,
            "avg_window": round_pct(yours),
            "market_avg_window": round_pct(theirs),
            "difference": round_pct(diff),
            "assessment": assessment,
        })
    return pd.DataFrame(rows, columns=CATEGORY_WINDOW_COLUMNS)
