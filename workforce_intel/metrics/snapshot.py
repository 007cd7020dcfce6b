"""Scalar metric snapshot for one record slice."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pandas as pd

from workforce_intel.config import MetricThresholds
from workforce_intel.metrics.geography import field_ratio, home_based_ratio
from workforce_intel.metrics.timing import avg_application_window, short_window_share
from workforce_intel.metrics.workforce import senior_ratio, staff_ratio


@dataclass(frozen=True)
class MetricSnapshot:
    total: int
    staff_ratio: float
    field_ratio: float
    senior_ratio: float
    avg_window: float
    short_window_pct: float
    home_based_pct: float


def compute_metric_snapshot(df: pd.DataFrame, thresholds: Optional[MetricThresholds] = None) -> MetricSnapshot:
    """All scalar ratios for a slice; every ratio is 0 and the window 14 days when empty."""
    return MetricSnapshot(
        total=len(df),
        staff_ratio=staff_ratio(df),
        field_ratio=field_ratio(df),
        senior_ratio=senior_ratio(df),
        avg_window=avg_application_window(df, thresholds),
        short_window_pct=short_window_share(df, thresholds),
        home_based_pct=home_based_ratio(df),
    )
