"""Workforce composition metrics: staff mix, seniority and grade distribution."""
from __future__ import annotations

from typing import Any, Dict, Optional

import pandas as pd

from workforce_intel.config import DISPLAY_TIER_ORDER
from workforce_intel.data.grades import CONTRACT_OTHER
from workforce_intel.data.semantic import exclude_agency, round_pct, safe_pct

GRADE_DISTRIBUTION_COLUMNS = [
    "tier",
    "count",
    "percentage",
    "previous_count",
    "previous_percentage",
    "change",
]

NON_STAFF_COLUMNS = ["contract_type", "count", "percentage"]

CATEGORY_STAFF_COLUMNS = [
    "category",
    "job_count",
    "your_staff_pct",
    "market_staff_pct",
    "gap",
    "top_competitor",
    "competitor_staff_pct",
]


def _empty_df(columns: list[str]) -> pd.DataFrame:
    return pd.DataFrame(columns=columns)


def _flag_ratio(df: pd.DataFrame, col: str) -> float:
    if df.empty or col not in df.columns:
        return 0.0
    return safe_pct(df[col].astype(bool).sum(), len(df))


def staff_ratio(df: pd.DataFrame) -> float:
    """% of postings on staff contracts; 0 on an empty slice."""
    return _flag_ratio(df, "is_staff")


def senior_ratio(df: pd.DataFrame) -> float:
    """% of postings at Senior Professional, Director or Executive tier."""
    return _flag_ratio(df, "is_senior")


def grade_distribution(current: pd.DataFrame, previous: Optional[pd.DataFrame] = None) -> pd.DataFrame:
    """Share of postings per display tier, with the previous period for comparison."""
    previous = previous if previous is not None else current.iloc[0:0]
    curr_counts = current["grade_tier"].value_counts() if not current.empty else pd.Series(dtype=int)
    prev_counts = previous["grade_tier"].value_counts() if not previous.empty else pd.Series(dtype=int)

    rows = []
    for tier in DISPLAY_TIER_ORDER:
        count = int(curr_counts.get(tier, 0))
        prev_count = int(prev_counts.get(tier, 0))
        if count == 0 and prev_count == 0:
            continue
        pct = safe_pct(count, len(current))
        prev_pct = safe_pct(prev_count, len(previous))
        rows.append({
            "tier": tier,
            "count": count,
            "percentage": round_pct(pct),
            "previous_count": prev_count,
            "previous_percentage": round_pct(prev_pct),
            "change": round_pct(pct - prev_pct),
        })

    if not rows:
        return _empty_df(GRADE_DISTRIBUTION_COLUMNS)
    return pd.DataFrame(rows, columns=GRADE_DISTRIBUTION_COLUMNS)


def non_staff_breakdown(df: pd.DataFrame) -> pd.DataFrame:
    """Non-staff postings by contract type."""
    if df.empty:
        return _empty_df(NON_STAFF_COLUMNS)
    non_staff = df.loc[~df["is_staff"].astype(bool)]
    if non_staff.empty:
        return _empty_df(NON_STAFF_COLUMNS)

    counts = non_staff["contract_type"].fillna(CONTRACT_OTHER).value_counts()
    result = counts.rename_axis("contract_type").reset_index(name="count")
    result["percentage"] = (result["count"] / len(non_staff) * 100).round(1)
    return result.sort_values(["count", "contract_type"], ascending=[False, True]).reset_index(drop=True)


def category_staff_patterns(
    current: pd.DataFrame,
    market: pd.DataFrame,
    agency: Optional[str] = None,
    top_n: int = 8,
) -> pd.DataFrame:
    """
    Staff ratio per category for the subject against market and top competitor.

    Categories are the subject's largest by posting count. The competitor is
    the agency with most postings in the category, excluding the subject.
    """
    if current.empty:
        return _empty_df(CATEGORY_STAFF_COLUMNS)

    top_categories = current["primary_category"].value_counts().head(top_n)
    others = exclude_agency(market, agency)

    rows = []
    for category, job_count in top_categories.items():
        cat_subject = current.loc[current["primary_category"] == category]
        cat_market = market.loc[market["primary_category"] == category]
        cat_others = others.loc[others["primary_category"] == category]

        your_pct = staff_ratio(cat_subject)
        market_pct = staff_ratio(cat_market)

        competitor = None
        competitor_pct = 0.0
        if not cat_others.empty:
            counts = cat_others.groupby("agency").size().reset_index(name="n")
            counts = counts.sort_values(["n", "agency"], ascending=[False, True])
            competitor = counts["agency"].iloc[0]
            competitor_pct = staff_ratio(cat_others.loc[cat_others["agency"] == competitor])

        rows.append({
            "category": category,
            "job_count": int(job_count),
            "your_staff_pct": round_pct(your_pct),
            "market_staff_pct": round_pct(market_pct),
            "gap": round_pct(your_pct - market_pct),
            "top_competitor": competitor,
            "competitor_staff_pct": round_pct(competitor_pct),
        })

    return pd.DataFrame(rows, columns=CATEGORY_STAFF_COLUMNS)


def compute_workforce_metrics(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    market: pd.DataFrame,
    agency: Optional[str] = None,
) -> Dict[str, Any]:
    """Workforce section of the brief."""
    curr_staff = staff_ratio(current)
    prev_staff = staff_ratio(previous)
    curr_senior = senior_ratio(current)
    prev_senior = senior_ratio(previous)

    return {
        "staff_ratio": round_pct(curr_staff),
        "previous_staff_ratio": round_pct(prev_staff),
        "market_staff_ratio": round_pct(staff_ratio(market)),
        "staff_ratio_change": round_pct(curr_staff - prev_staff),
        "senior_ratio": round_pct(curr_senior),
        "previous_senior_ratio": round_pct(prev_senior),
        "senior_ratio_change": round_pct(curr_senior - prev_senior),
        "market_senior_ratio": round_pct(senior_ratio(market)),
        "grade_distribution": grade_distribution(current, previous),
        "non_staff_breakdown": non_staff_breakdown(current),
        "category_staff_patterns": category_staff_patterns(current, market, agency),
    }
