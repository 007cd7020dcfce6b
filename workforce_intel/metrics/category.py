"""Category mix metrics: distribution, growth, concentration and leadership."""
from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from workforce_intel.config import MetricThresholds
from workforce_intel.data.semantic import round_pct, safe_pct, safe_pct_change
from workforce_intel.metrics.timing import category_application_windows

DISTRIBUTION_COLUMNS = [
    "category",
    "count",
    "percentage",
    "previous_count",
    "previous_percentage",
    "share_change",
    "growth_rate",
]

TOP_CATEGORY_COLUMNS = DISTRIBUTION_COLUMNS + [
    "market_count",
    "leader",
    "leader_count",
    "leader_share",
    "your_rank",
    "your_share",
    "gap_to_leader",
]

GROWTH_COLUMNS = ["category", "count", "previous_count", "growth_rate"]

POSITION_COLUMNS = [
    "category",
    "market_count",
    "leader",
    "leader_share",
    "runner_up",
    "runner_up_share",
    "gap",
]


def format_category_name(slug) -> str:
    """'climate-environment' -> 'Climate & Environment'."""
    if slug is None or (not isinstance(slug, str) and pd.isna(slug)):
        return "Uncategorized"
    parts = [p for p in str(slug).replace("_", " ").split("-") if p.strip()]
    if not parts:
        return "Uncategorized"
    return " & ".join(p.strip().title() for p in parts)


def category_distribution(current: pd.DataFrame, previous: Optional[pd.DataFrame] = None) -> pd.DataFrame:
    """
    Counts and shares per category with period-over-period growth.

    Growth is 100% for a category that grew from zero; percentages over a
    non-empty slice sum to 100.
    """
    previous = previous if previous is not None else current.iloc[0:0]
    curr_counts = current["primary_category"].value_counts() if not current.empty else pd.Series(dtype=int)
    prev_counts = previous["primary_category"].value_counts() if not previous.empty else pd.Series(dtype=int)
    if curr_counts.empty:
        return pd.DataFrame(columns=DISTRIBUTION_COLUMNS)

    result = pd.DataFrame({"category": curr_counts.index, "count": curr_counts.values.astype(int)})
    result["previous_count"] = result["category"].map(prev_counts).fillna(0).astype(int)

    current_total = len(current)
    previous_total = len(previous)
    result["percentage"] = result["count"] / current_total * 100
    result["previous_percentage"] = np.where(
        previous_total > 0, result["previous_count"] / max(previous_total, 1) * 100, 0.0
    )
    result["share_change"] = result["percentage"] - result["previous_percentage"]
    result["growth_rate"] = [
        safe_pct_change(c, p) for c, p in zip(result["count"], result["previous_count"])
    ]

    result = result.sort_values(["count", "category"], ascending=[False, True]).reset_index(drop=True)
    return result[DISTRIBUTION_COLUMNS]


def concentration_index(df: pd.DataFrame) -> Dict[str, float]:
    """Top-3 category share and Herfindahl index on a 0-100 scale."""
    if df.empty:
        return {"top3_share": 0.0, "herfindahl": 0.0, "category_count": 0}
    counts = df["primary_category"].value_counts()
    shares = counts / counts.sum()
    return {
        "top3_share": float(shares.head(3).sum() * 100),
        "herfindahl": float((shares ** 2).sum() * 100),
        "category_count": int(len(counts)),
    }


def fastest_growing_categories(
    distribution: pd.DataFrame,
    thresholds: Optional[MetricThresholds] = None,
    limit: int = 5,
) -> pd.DataFrame:
    """Categories growing by more than 30% with at least 5 current postings."""
    thresholds = thresholds or MetricThresholds()
    if distribution.empty:
        return pd.DataFrame(columns=GROWTH_COLUMNS)

    # New categories need a few postings before they read as growth
    growth = np.where(
        distribution["previous_count"] > 0,
        distribution["growth_rate"],
        np.where(distribution["count"] > 2, 100.0, 0.0),
    )
    result = distribution.assign(growth_rate=growth)
    mask = (result["growth_rate"] > thresholds.category_growth_pct) & (
        result["count"] >= thresholds.category_growth_min_count
    )
    result = result.loc[mask].sort_values(["growth_rate", "count", "category"], ascending=[False, False, True])
    return result[GROWTH_COLUMNS].head(limit).reset_index(drop=True)


def declining_categories(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    min_decline_pct: Optional[float] = None,
    min_previous: Optional[int] = None,
    limit: int = 5,
) -> pd.DataFrame:
    """
    Categories whose postings dropped by more than ``min_decline_pct``.

    Unlike the distribution, this includes categories that vanished from the
    current period entirely.
    """
    defaults = MetricThresholds()
    min_decline_pct = defaults.category_decline_pct if min_decline_pct is None else min_decline_pct
    min_previous = defaults.category_decline_min_previous if min_previous is None else min_previous

    if previous.empty:
        return pd.DataFrame(columns=GROWTH_COLUMNS)

    prev_counts = previous["primary_category"].value_counts()
    curr_counts = current["primary_category"].value_counts() if not current.empty else pd.Series(dtype=int)

    result = pd.DataFrame({"category": prev_counts.index, "previous_count": prev_counts.values.astype(int)})
    result["count"] = result["category"].map(curr_counts).fillna(0).astype(int)
    result["growth_rate"] = [safe_pct_change(c, p) for c, p in zip(result["count"], result["previous_count"])]

    mask = (-result["growth_rate"] > min_decline_pct) & (result["previous_count"] >= min_previous)
    result = result.loc[mask].sort_values(["growth_rate", "category"], ascending=[True, True])
    return result[GROWTH_COLUMNS].head(limit).reset_index(drop=True)


def _agency_counts(df: pd.DataFrame) -> pd.DataFrame:
    counts = df.groupby("agency").size().reset_index(name="n")
    return counts.sort_values(["n", "agency"], ascending=[False, True]).reset_index(drop=True)


def top_categories_detail(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    market: pd.DataFrame,
    agency: Optional[str] = None,
    limit: int = 10,
) -> pd.DataFrame:
    """Subject's largest categories with the market leader and the subject's standing."""
    distribution = category_distribution(current, previous).head(limit)
    if distribution.empty:
        return pd.DataFrame(columns=TOP_CATEGORY_COLUMNS)

    rows = []
    for row in distribution.to_dict("records"):
        cat_market = market.loc[market["primary_category"] == row["category"]]
        counts = _agency_counts(cat_market) if not cat_market.empty else pd.DataFrame(columns=["agency", "n"])
        market_count = int(counts["n"].sum()) if not counts.empty else 0

        leader = counts["agency"].iloc[0] if not counts.empty else None
        leader_count = int(counts["n"].iloc[0]) if not counts.empty else 0

        your_rank = None
        your_share = safe_pct(row["count"], market_count)
        if agency is not None and not counts.empty:
            hits = counts.index[counts["agency"] == agency]
            your_rank = int(hits[0]) + 1 if len(hits) else None

        row.update({
            "market_count": market_count,
            "leader": leader,
            "leader_count": leader_count,
            "leader_share": round_pct(safe_pct(leader_count, market_count)),
            "your_rank": your_rank,
            "your_share": round_pct(your_share),
            "gap_to_leader": leader_count - row["count"],
        })
        rows.append(row)

    result = pd.DataFrame(rows, columns=TOP_CATEGORY_COLUMNS)
    for col in ["percentage", "previous_percentage", "share_change", "growth_rate"]:
        result[col] = result[col].astype(float).round(1)
    return result


def category_competitive_positions(market: pd.DataFrame, limit: int = 8) -> pd.DataFrame:
    """Leader and runner-up in each of the market's largest categories."""
    if market.empty:
        return pd.DataFrame(columns=POSITION_COLUMNS)

    rows = []
    for category, market_count in market["primary_category"].value_counts().head(limit).items():
        counts = _agency_counts(market.loc[market["primary_category"] == category])
        leader_share = safe_pct(counts["n"].iloc[0], market_count)
        runner_up = counts["agency"].iloc[1] if len(counts) > 1 else None
        runner_up_share = safe_pct(counts["n"].iloc[1], market_count) if len(counts) > 1 else 0.0
        rows.append({
            "category": category,
            "market_count": int(market_count),
            "leader": counts["agency"].iloc[0],
            "leader_share": round_pct(leader_share),
            "runner_up": runner_up,
            "runner_up_share": round_pct(runner_up_share),
            "gap": round_pct(leader_share - runner_up_share),
        })
    return pd.DataFrame(rows, columns=POSITION_COLUMNS)


def compute_category_metrics(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    market: pd.DataFrame,
    agency: Optional[str] = None,
    thresholds: Optional[MetricThresholds] = None,
    top_n: int = 10,
) -> Dict[str, Any]:
    """Category section of the brief."""
    thresholds = thresholds or MetricThresholds()
    distribution = category_distribution(current, previous)
    concentration = concentration_index(current)
    previous_concentration = concentration_index(previous)

    return {
        "distribution": distribution,
        "top_categories": top_categories_detail(current, previous, market, agency, limit=top_n),
        "fastest_growing": fastest_growing_categories(distribution, thresholds),
        "declining": declining_categories(
            current,
            previous,
            thresholds.category_decline_pct,
            thresholds.category_decline_min_previous,
        ),
        "top3_share": round_pct(concentration["top3_share"]),
        "previous_top3_share": round_pct(previous_concentration["top3_share"]),
        "herfindahl": round_pct(concentration["herfindahl"]),
        "category_count": concentration["category_count"],
        "application_windows": category_application_windows(current, market, thresholds=thresholds),
        "competitive_positions": category_competitive_positions(market),
    }
