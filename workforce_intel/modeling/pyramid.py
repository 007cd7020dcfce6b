"""
Grade pyramid shape analysis.

Postings are grouped into pyramid levels and the resulting shape is checked
against a short list of structural issues, each carrying a health penalty.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from workforce_intel.data.grades import (
    BAND_JUNIOR,
    BAND_MID,
    BAND_NON_PYRAMID,
    BAND_SENIOR,
    TIER_CONSULTANT,
    TIER_DIRECTOR,
    TIER_EXECUTIVE,
)
from workforce_intel.data.semantic import round_pct, safe_pct

PYRAMID_GROUPS = ["entry", "mid", "senior", "executive", "consultant", "other"]

BAND_GROUPS = {
    BAND_JUNIOR: "entry",
    BAND_MID: "mid",
    BAND_SENIOR: "senior",
    BAND_NON_PYRAMID: "other",
}

# Executive tiers and consultants are split out of their consolidated bands
TIER_GROUP_OVERRIDES = {
    TIER_EXECUTIVE: "executive",
    TIER_DIRECTOR: "executive",
    TIER_CONSULTANT: "consultant",
}

SHAPE_BALANCED = "balanced"

DEVIATION_COLUMNS = ["group", "percentage", "peer_percentage", "difference", "significance"]


@dataclass(frozen=True)
class ShapeRule:
    name: str
    penalty: int
    description: str


SHAPE_RULES = {
    "inverted": ShapeRule("inverted", 30, "More senior than entry-level postings"),
    "missing_middle": ShapeRule("missing_middle", 25, "Thin mid-level band between entry and senior hiring"),
    "top_heavy": ShapeRule("top_heavy", 20, "Over 40% of postings at senior level or above"),
    "bottom_heavy": ShapeRule("bottom_heavy", 10, "Over half of postings at entry level"),
    "consultant_heavy": ShapeRule("consultant_heavy", 15, "Consultants make up most postings"),
}


def pyramid_distribution(df: pd.DataFrame) -> Dict[str, float]:
    """Share of postings per pyramid group, in percent."""
    if df.empty:
        return {group: 0.0 for group in PYRAMID_GROUPS}
    bands = df["consolidated_tier"].map(BAND_GROUPS)
    groups = df["grade_tier"].map(TIER_GROUP_OVERRIDES).fillna(bands).fillna("other")
    counts = groups.value_counts()
    return {group: safe_pct(counts.get(group, 0), len(df)) for group in PYRAMID_GROUPS}


def detect_shape_issues(distribution: Dict[str, float]) -> List[str]:
    """Names of the shape rules the distribution triggers, in severity order."""
    entry = distribution["entry"]
    mid = distribution["mid"]
    senior_plus = distribution["senior"] + distribution["executive"]

    issues = []
    if entry > 0 and senior_plus > entry:
        issues.append("inverted")
    if mid < 15 and entry > 25 and senior_plus > 25:
        issues.append("missing_middle")
    if senior_plus > 40:
        issues.append("top_heavy")
    if entry > 50:
        issues.append("bottom_heavy")
    if distribution["consultant"] > 50:
        issues.append("consultant_heavy")
    return issues


def peer_deviations(distribution: Dict[str, float], peer_distribution: Dict[str, float]) -> pd.DataFrame:
    """Groups deviating from the peer mix by more than 5pp."""
    rows = []
    for group in PYRAMID_GROUPS:
        diff = distribution[group] - peer_distribution[group]
        if abs(diff) > 10:
            significance = "significant"
        elif abs(diff) > 5:
            significance = "moderate"
        else:
            continue
        rows.append({
            "group": group,
            "percentage": round_pct(distribution[group]),
            "peer_percentage": round_pct(peer_distribution[group]),
            "difference": round_pct(diff),
            "significance": significance,
        })
    return pd.DataFrame(rows, columns=DEVIATION_COLUMNS)


def analyze_pyramid(df: pd.DataFrame, peer_df: Optional[pd.DataFrame] = None) -> Dict[str, Any]:
    """
    Shape, health score and peer deviations of a slice's grade pyramid.

    Health starts at 100 and loses each triggered rule's penalty, never
    going below 0. Without peers the deviation table is empty.
    """
    distribution = pyramid_distribution(df)
    issues = detect_shape_issues(distribution) if not df.empty else []
    health = max(0, 100 - sum(SHAPE_RULES[name].penalty for name in issues))

    senior_plus = distribution["senior"] + distribution["executive"]
    succession_risk = senior_plus > 30 and distribution["mid"] < 20

    if peer_df is not None and not peer_df.empty:
        deviations = peer_deviations(distribution, pyramid_distribution(peer_df))
    else:
        deviations = pd.DataFrame(columns=DEVIATION_COLUMNS)

    return {
        "distribution": {k: round_pct(v) for k, v in distribution.items()},
        "shape": issues[0] if issues else SHAPE_BALANCED,
        "issues": [SHAPE_RULES[name].description for name in issues],
        "health_score": health,
        "succession_risk": succession_risk,
        "peer_deviations": deviations,
    }
