"""Geographic footprint metrics."""
from __future__ import annotations

from typing import Any, Dict, Optional

import pandas as pd

from workforce_intel.config import LOCATION_TYPE_ORDER, OTHER_REGION
from workforce_intel.data.grades import BAND_JUNIOR, BAND_MID, BAND_NON_PYRAMID, BAND_SENIOR
from workforce_intel.data.semantic import round_pct, safe_pct, safe_pct_change

LOCATION_TYPE_COLUMNS = ["location_type", "count", "percentage", "previous_percentage", "change"]

TOP_LOCATION_COLUMNS = ["station", "country", "count", "previous_count", "change"]

REGION_COLUMNS = ["region", "count", "percentage", "previous_count", "change"]

CATEGORY_FIELD_COLUMNS = ["category", "job_count", "field_pct", "market_field_pct", "gap"]

GRADE_LOCATION_COLUMNS = ["location_type", "count", "senior_pct", "mid_pct", "junior_pct", "other_pct"]

NEW_LOCATION_COLUMNS = ["station", "country", "count"]

# Regions below this count are folded away when labelled Other
MIN_OTHER_REGION_COUNT = 10


def field_ratio(df: pd.DataFrame) -> float:
    """
    % of postings in the field.

    Uses the recorded location type, else duty station heuristics
    (see ``resolve_location_type``); 0 on an empty slice.
    """
    if df.empty or "is_field" not in df.columns:
        return 0.0
    return safe_pct(df["is_field"].astype(bool).sum(), len(df))


def home_based_ratio(df: pd.DataFrame) -> float:
    """% of postings that are home-based."""
    if df.empty or "is_home" not in df.columns:
        return 0.0
    return safe_pct(df["is_home"].astype(bool).sum(), len(df))


def location_type_distribution(current: pd.DataFrame, previous: Optional[pd.DataFrame] = None) -> pd.DataFrame:
    previous = previous if previous is not None else current.iloc[0:0]
    curr_counts = current["location_class"].value_counts() if not current.empty else pd.Series(dtype=int)
    prev_counts = previous["location_class"].value_counts() if not previous.empty else pd.Series(dtype=int)

    rows = []
    for loc_type in LOCATION_TYPE_ORDER:
        count = int(curr_counts.get(loc_type, 0))
        pct = safe_pct(count, len(current))
        prev_pct = safe_pct(int(prev_counts.get(loc_type, 0)), len(previous))
        rows.append({
            "location_type": loc_type,
            "count": count,
            "percentage": round_pct(pct),
            "previous_percentage": round_pct(prev_pct),
            "change": round_pct(pct - prev_pct),
        })
    return pd.DataFrame(rows, columns=LOCATION_TYPE_COLUMNS)


def _station_counts(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=["station", "country", "count"])
    grouped = df.assign(country=df["duty_country"].fillna("")).groupby("station")
    counts = grouped.agg(
        country=("country", lambda s: s.mode().iloc[0] if not s.mode().empty else ""),
        count=("country", "size"),
    ).reset_index()
    return counts


def top_locations(current: pd.DataFrame, previous: pd.DataFrame, limit: int = 15) -> pd.DataFrame:
    """Busiest duty stations with the change against the previous period."""
    counts = _station_counts(current)
    if counts.empty:
        return pd.DataFrame(columns=TOP_LOCATION_COLUMNS)

    prev = _station_counts(previous)
    prev_map = prev.set_index("station")["count"] if not prev.empty else pd.Series(dtype=int)
    counts["previous_count"] = counts["station"].map(prev_map).fillna(0).astype(int)
    counts["change"] = counts["count"] - counts["previous_count"]
    counts = counts.sort_values(["count", "station"], ascending=[False, True]).head(limit)
    return counts[TOP_LOCATION_COLUMNS].reset_index(drop=True)


def location_changes(current: pd.DataFrame, previous: pd.DataFrame, min_count: int = 10) -> pd.DataFrame:
    """Stations with at least ``min_count`` postings in either period, largest change first."""
    curr = _station_counts(current)
    prev = _station_counts(previous)
    merged = pd.merge(
        curr[["station", "count"]],
        prev[["station", "count"]].rename(columns={"count": "previous_count"}),
        on="station",
        how="outer",
    ).fillna(0)
    if merged.empty:
        return pd.DataFrame(columns=["station", "count", "previous_count", "change"])
    merged["count"] = merged["count"].astype(int)
    merged["previous_count"] = merged["previous_count"].astype(int)
    merged["change"] = merged["count"] - merged["previous_count"]
    merged = merged.loc[
        ((merged["count"] >= min_count) | (merged["previous_count"] >= min_count)) & (merged["change"] != 0)
    ]
    merged = merged.assign(abs_change=merged["change"].abs())
    merged = merged.sort_values(["abs_change", "station"], ascending=[False, True])
    return merged[["station", "count", "previous_count", "change"]].reset_index(drop=True)


def region_distribution(current: pd.DataFrame, previous: pd.DataFrame) -> pd.DataFrame:
    """Postings per region; the catch-all region is kept only when it is sizeable."""
    if current.empty and previous.empty:
        return pd.DataFrame(columns=REGION_COLUMNS)

    curr_counts = current["region_name"].value_counts() if not current.empty else pd.Series(dtype=int)
    prev_counts = previous["region_name"].value_counts() if not previous.empty else pd.Series(dtype=int)
    regions = sorted(set(curr_counts.index) | set(prev_counts.index))

    rows = []
    for region in regions:
        count = int(curr_counts.get(region, 0))
        prev_count = int(prev_counts.get(region, 0))
        if region == OTHER_REGION and count <= MIN_OTHER_REGION_COUNT:
            continue
        rows.append({
            "region": region,
            "count": count,
            "percentage": round_pct(safe_pct(count, len(current))),
            "previous_count": prev_count,
            "change": round_pct(safe_pct_change(count, prev_count)),
        })
    if not rows:
        return pd.DataFrame(columns=REGION_COLUMNS)
    result = pd.DataFrame(rows, columns=REGION_COLUMNS)
    return result.sort_values(["count", "region"], ascending=[False, True]).reset_index(drop=True)


def category_field_patterns(current: pd.DataFrame, market: pd.DataFrame, top_n: int = 6) -> pd.DataFrame:
    """Field ratio in the subject's top categories against the market."""
    if current.empty:
        return pd.DataFrame(columns=CATEGORY_FIELD_COLUMNS)

    rows = []
    for category, job_count in current["primary_category"].value_counts().head(top_n).items():
        yours = field_ratio(current.loc[current["primary_category"] == category])
        theirs = field_ratio(market.loc[market["primary_category"] == category])
        rows.append({
            "category": category,
            "job_count": int(job_count),
            "field_pct": round_pct(yours),
            "market_field_pct": round_pct(theirs),
            "gap": round_pct(yours - theirs),
        })
    return pd.DataFrame(rows, columns=CATEGORY_FIELD_COLUMNS)


def grade_by_location_type(df: pd.DataFrame) -> pd.DataFrame:
    """Seniority band mix within each location type."""
    if df.empty:
        return pd.DataFrame(columns=GRADE_LOCATION_COLUMNS)

    rows = []
    for loc_type in LOCATION_TYPE_ORDER:
        subset = df.loc[df["location_class"] == loc_type]
        if subset.empty:
            continue
        bands = subset["consolidated_tier"].value_counts()
        n = len(subset)
        rows.append({
            "location_type": loc_type,
            "count": n,
            "senior_pct": round_pct(safe_pct(bands.get(BAND_SENIOR, 0), n)),
            "mid_pct": round_pct(safe_pct(bands.get(BAND_MID, 0), n)),
            "junior_pct": round_pct(safe_pct(bands.get(BAND_JUNIOR, 0), n)),
            "other_pct": round_pct(safe_pct(bands.get(BAND_NON_PYRAMID, 0), n)),
        })
    return pd.DataFrame(rows, columns=GRADE_LOCATION_COLUMNS)


def new_locations(current: pd.DataFrame, prior: pd.DataFrame, limit: int = 10) -> pd.DataFrame:
    """Duty stations in the current period not seen in ``prior`` records."""
    counts = _station_counts(current)
    if counts.empty:
        return pd.DataFrame(columns=NEW_LOCATION_COLUMNS)
    seen = set(prior["station"]) if not prior.empty else set()
    fresh = counts.loc[~counts["station"].isin(seen) & (counts["station"] != "Unknown")]
    fresh = fresh.sort_values(["count", "station"], ascending=[False, True]).head(limit)
    return fresh[NEW_LOCATION_COLUMNS].reset_index(drop=True)


def compute_geographic_metrics(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    market: pd.DataFrame,
    prior_history: pd.DataFrame,
    top_locations_limit: int = 15,
) -> Dict[str, Any]:
    """Geographic section of the brief."""
    curr_field = field_ratio(current)
    prev_field = field_ratio(previous)

    return {
        "field_ratio": round_pct(curr_field),
        "previous_field_ratio": round_pct(prev_field),
        "market_field_ratio": round_pct(field_ratio(market)),
        "field_ratio_change": round_pct(curr_field - prev_field),
        "home_based_ratio": round_pct(home_based_ratio(current)),
        "location_types": location_type_distribution(current, previous),
        "top_locations": top_locations(current, previous, limit=top_locations_limit),
        "location_changes": location_changes(current, previous),
        "regions": region_distribution(current, previous),
        "category_field_patterns": category_field_patterns(current, market),
        "grade_by_location_type": grade_by_location_type(current),
        "new_locations": new_locations(current, prior_history),
    }
