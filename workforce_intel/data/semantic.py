"""
Semantic layer: enrichment and slicing of job records.

All metric code reads the derived columns added here rather than re-parsing
grade codes or duty stations.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from loguru import logger

from workforce_intel.config import config
from workforce_intel.data.grades import SENIOR_TIERS, STAFF, classify_grades
from workforce_intel.data.locations import (
    LOCATION_FIELD,
    LOCATION_HOME,
    normalize_region,
    resolve_location_type,
    station_name,
)
from workforce_intel.data.periods import PeriodWindows, filter_window
from workforce_intel.data.schema import RecordsInput, drop_undated, records_to_frame

ENRICHED_COLUMNS = [
    "grade_tier",
    "staff_category",
    "consolidated_tier",
    "contract_type",
    "grade_level",
    "is_staff",
    "is_senior",
    "location_class",
    "is_field",
    "is_home",
    "region_name",
    "station",
    "is_short_window",
]


# =============================================================================
# ENRICHMENT
# =============================================================================

def enrich_records(df: pd.DataFrame) -> pd.DataFrame:
    """Add grade classification, location and window flags to a record frame."""
    df = df.copy()
    if df.empty:
        for col in ENRICHED_COLUMNS:
            df[col] = pd.Series(dtype=object)
        return df

    grades = classify_grades(df["grade_code"])
    for col in grades.columns:
        df[col] = grades[col]

    df["is_staff"] = df["staff_category"] == STAFF
    df["is_senior"] = df["grade_tier"].isin(SENIOR_TIERS)

    df["location_class"] = [
        resolve_location_type(loc, station, home)
        for loc, station, home in zip(df["location_type"], df["duty_station"], df["is_home_based"])
    ]
    df["is_field"] = df["location_class"] == LOCATION_FIELD
    df["is_home"] = df["location_class"] == LOCATION_HOME

    df["region_name"] = [
        normalize_region(region, station) for region, station in zip(df["region"], df["duty_station"])
    ]
    df["station"] = df["duty_station"].map(station_name)

    window = pd.to_numeric(df["application_window_days"], errors="coerce")
    df["is_short_window"] = (window > 0) & (window < config.metrics.short_window_days)

    return df


def prepare_records(records: RecordsInput) -> pd.DataFrame:
    """Normalise, drop undated records and enrich."""
    df = records_to_frame(records)
    total = len(df)
    df = drop_undated(df)
    df = enrich_records(df)
    logger.debug("Prepared {} of {} job records", len(df), total)
    return df


def filter_agency(df: pd.DataFrame, agency: Optional[str]) -> pd.DataFrame:
    """Exact-match agency filter; None returns the frame unchanged."""
    if agency is None:
        return df
    return df.loc[df["agency"] == agency]


def exclude_agency(df: pd.DataFrame, agency: Optional[str]) -> pd.DataFrame:
    if agency is None:
        return df
    return df.loc[df["agency"] != agency]


# =============================================================================
# SLICES
# =============================================================================

@dataclass(frozen=True)
class RecordSlices:
    """
    Record subsets for one brief.

    ``current``/``previous``/``historical`` belong to the subject (the agency
    in an agency view, otherwise the whole market). ``market_*`` are always
    the full cross-agency population.
    """

    current: pd.DataFrame
    previous: pd.DataFrame
    historical: pd.DataFrame
    market_current: pd.DataFrame
    market_previous: pd.DataFrame
    market_historical: pd.DataFrame
    agency: Optional[str] = None
    current_start: Optional[pd.Timestamp] = None

    @property
    def is_agency_view(self) -> bool:
        return self.agency is not None

    @property
    def prior_history(self) -> pd.DataFrame:
        """Subject's historical records posted before the current window opened."""
        if self.historical.empty or self.current_start is None:
            return self.historical
        return self.historical.loc[self.historical["posting_date"] < self.current_start]


def build_slices(df: pd.DataFrame, periods: PeriodWindows, agency: Optional[str] = None) -> RecordSlices:
    """Slice prepared records into current / previous / historical windows."""
    market_current = filter_window(df, periods.current)
    market_previous = filter_window(df, periods.previous)
    market_historical = filter_window(df, periods.historical)

    slices = RecordSlices(
        current=filter_agency(market_current, agency),
        previous=filter_agency(market_previous, agency),
        historical=filter_agency(market_historical, agency),
        market_current=market_current,
        market_previous=market_previous,
        market_historical=market_historical,
        agency=agency,
        current_start=periods.current.start,
    )
    logger.debug(
        "Slices: current={} previous={} historical={} market_current={}",
        len(slices.current), len(slices.previous), len(slices.historical), len(market_current),
    )
    return slices


def safe_pct(numerator, denominator) -> float:
    """Percentage with a zero denominator guard."""
    if denominator is None or denominator == 0 or pd.isna(denominator):
        return 0.0
    return float(numerator) / float(denominator) * 100


def safe_pct_change(current, previous) -> float:
    """Relative change in %; 100 when growing from zero, 0 when both are zero."""
    if previous is None or pd.isna(previous) or previous == 0:
        return 100.0 if current and current > 0 else 0.0
    return (float(current) - float(previous)) / float(previous) * 100


def round_pct(value, decimals: int = 1) -> float:
    if value is None or pd.isna(value):
        return 0.0
    return float(np.round(value, decimals))
