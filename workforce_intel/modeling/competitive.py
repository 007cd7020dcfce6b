"""
Comparative engine: agency ranking, market share and hiring-pattern similarity.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from workforce_intel.config import PEER_GROUPS, AppConfig, config as default_config
from workforce_intel.data.semantic import round_pct, safe_pct
from workforce_intel.metrics.snapshot import compute_metric_snapshot

CORRELATION_COLUMNS = ["agency_a", "agency_b", "correlation", "strength", "interpretation"]

NEW_ENTRANT_COLUMNS = ["agency", "category", "positions", "previous_positions", "description"]

LEADERSHIP_COLUMNS = ["agency", "categories_led", "led_categories"]

BEHAVIOR_COLUMNS = [
    "agency",
    "market_share",
    "staff_pct",
    "field_pct",
    "avg_window",
    "description",
]

# (minimum correlation, strength label, interpretation), checked top down
CORRELATION_BUCKETS = [
    (0.8, "Strong overlap", "Strong competition for similar roles"),
    (0.6, "Moderate overlap", "Moderate overlap in hiring"),
    (0.4, "Some overlap", "Some shared focus areas"),
]


@dataclass(frozen=True)
class AgencyProfile:
    """Per-agency aggregate for one period."""

    agency: str
    rank: int
    positions: int
    market_share: float
    previous_positions: int
    previous_share: float
    share_change: float
    previous_rank: Optional[int]
    staff_pct: float
    senior_pct: float
    field_pct: float
    avg_window: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# RANKING
# =============================================================================

def _ranked_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Agency posting counts, descending, ties by name ascending."""
    if df.empty:
        return pd.DataFrame(columns=["agency", "positions", "rank"])
    counts = df.dropna(subset=["agency"]).groupby("agency").size().reset_index(name="positions")
    counts = counts.sort_values(["positions", "agency"], ascending=[False, True]).reset_index(drop=True)
    counts["rank"] = np.arange(1, len(counts) + 1)
    return counts


def rank_agencies(current: pd.DataFrame, previous: Optional[pd.DataFrame] = None) -> List[AgencyProfile]:
    """
    Ranked profiles of every agency posting in the current period.

    Market share is the agency's share of all current postings, in percent.
    """
    counts = _ranked_counts(current)
    if counts.empty:
        return []

    previous = previous if previous is not None else current.iloc[0:0]
    prev_counts = _ranked_counts(previous)
    prev_lookup = prev_counts.set_index("agency") if not prev_counts.empty else None
    market_total = len(current)
    previous_total = len(previous)

    profiles = []
    for row in counts.itertuples(index=False):
        agency_rows = current.loc[current["agency"] == row.agency]
        snapshot = compute_metric_snapshot(agency_rows)

        prev_positions = 0
        prev_rank = None
        if prev_lookup is not None and row.agency in prev_lookup.index:
            prev_positions = int(prev_lookup.at[row.agency, "positions"])
            prev_rank = int(prev_lookup.at[row.agency, "rank"])

        share = safe_pct(row.positions, market_total)
        prev_share = safe_pct(prev_positions, previous_total)
        profiles.append(AgencyProfile(
            agency=row.agency,
            rank=int(row.rank),
            positions=int(row.positions),
            market_share=round_pct(share),
            previous_positions=prev_positions,
            previous_share=round_pct(prev_share),
            share_change=round_pct(share - prev_share),
            previous_rank=prev_rank,
            staff_pct=round_pct(snapshot.staff_ratio),
            senior_pct=round_pct(snapshot.senior_ratio),
            field_pct=round_pct(snapshot.field_ratio),
            avg_window=round_pct(snapshot.avg_window),
        ))
    return profiles


def find_profile(profiles: Sequence[AgencyProfile], agency: Optional[str]) -> Optional[AgencyProfile]:
    for profile in profiles:
        if profile.agency == agency:
            return profile
    return None


# =============================================================================
# SIMILARITY
# =============================================================================

def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation coefficient.

    Returns 0 for empty, unequal-length or zero-variance input.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = len(x)
    if n == 0 or n != len(y):
        return 0.0

    sum_x, sum_y = x.sum(), y.sum()
    numerator = n * (x * y).sum() - sum_x * sum_y
    denominator = np.sqrt((n * (x * x).sum() - sum_x ** 2) * (n * (y * y).sum() - sum_y ** 2))
    if not np.isfinite(denominator) or denominator <= 0:
        return 0.0
    return float(np.clip(numerator / denominator, -1.0, 1.0))


def category_share_vectors(df: pd.DataFrame, agency_a: str, agency_b: str) -> tuple[np.ndarray, np.ndarray]:
    """Category-share vectors of two agencies, zero-filled over their category union."""
    pair = df.loc[df["agency"].isin([agency_a, agency_b])]
    if pair.empty:
        return np.zeros(0), np.zeros(0)
    table = pd.crosstab(pair["primary_category"], pair["agency"]).reindex(
        columns=[agency_a, agency_b], fill_value=0
    )
    shares = table / table.sum().replace(0, np.nan)
    shares = shares.fillna(0.0)
    return shares[agency_a].to_numpy(), shares[agency_b].to_numpy()


def correlation_strength(correlation: float) -> Optional[tuple[str, str]]:
    """(strength, interpretation) for a correlation, or None below the lowest bucket."""
    for minimum, strength, interpretation in CORRELATION_BUCKETS:
        if correlation > minimum:
            return strength, interpretation
    return None


def agency_correlations(
    df: pd.DataFrame,
    agencies: Optional[Sequence[str]] = None,
    top_k: int = 6,
    limit: int = 6,
) -> pd.DataFrame:
    """
    Pairwise hiring-pattern similarity between the largest agencies.

    Only the ``top_k`` agencies by volume are compared (plus any explicitly
    requested ones); pairs below the weakest bucket are dropped.
    """
    if df.empty:
        return pd.DataFrame(columns=CORRELATION_COLUMNS)

    names = list(_ranked_counts(df)["agency"].head(top_k))
    for extra in agencies or []:
        if extra not in names and (df["agency"] == extra).any():
            names.append(extra)

    rows = []
    for agency_a, agency_b in combinations(names, 2):
        x, y = category_share_vectors(df, agency_a, agency_b)
        corr = pearson_correlation(x, y)
        bucket = correlation_strength(corr)
        if bucket is None:
            continue
        rows.append({
            "agency_a": agency_a,
            "agency_b": agency_b,
            "correlation": round(corr, 3),
            "strength": bucket[0],
            "interpretation": bucket[1],
        })

    if not rows:
        return pd.DataFrame(columns=CORRELATION_COLUMNS)
    result = pd.DataFrame(rows, columns=CORRELATION_COLUMNS)
    result = result.sort_values(["correlation", "agency_a", "agency_b"], ascending=[False, True, True])
    return result.head(limit).reset_index(drop=True)


def closest_competitor(
    df: pd.DataFrame,
    agency: str,
    min_positions: int = 20,
) -> Optional[Dict[str, Any]]:
    """
    The agency whose category mix most resembles ``agency``'s.

    Candidates need at least ``min_positions`` postings in the slice.
    Returns None when the subject has no postings or no candidate qualifies.
    """
    if df.empty or not (df["agency"] == agency).any():
        return None

    counts = _ranked_counts(df)
    candidates = counts.loc[(counts["agency"] != agency) & (counts["positions"] >= min_positions), "agency"]

    best = None
    for other in candidates:
        corr = pearson_correlation(*category_share_vectors(df, agency, other))
        if best is None or corr > best[1]:
            best = (other, corr)
    if best is None:
        return None

    subject = compute_metric_snapshot(df.loc[df["agency"] == agency])
    rival = compute_metric_snapshot(df.loc[df["agency"] == best[0]])
    return {
        "agency": best[0],
        "correlation": round(best[1], 3),
        "positions": rival.total,
        "staff_diff": round_pct(subject.staff_ratio - rival.staff_ratio),
        "field_diff": round_pct(subject.field_ratio - rival.field_ratio),
        "window_diff": round_pct(subject.avg_window - rival.avg_window),
        "staff_pct": round_pct(rival.staff_ratio),
        "field_pct": round_pct(rival.field_ratio),
        "avg_window": round_pct(rival.avg_window),
    }


# =============================================================================
# MARKET MOVES
# =============================================================================

def detect_new_entrants(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    min_positions: int = 5,
    previous_floor: int = 1,
    limit: Optional[int] = None,
) -> pd.DataFrame:
    """
    Agencies that started hiring in a category this period.

    An (agency, category) pair qualifies with at least ``min_positions``
    current postings and fewer than ``previous_floor`` previous ones.
    """
    if current.empty:
        return pd.DataFrame(columns=NEW_ENTRANT_COLUMNS)

    keys = ["agency", "primary_category"]
    curr = current.groupby(keys).size().reset_index(name="positions")
    if previous.empty:
        prev = pd.DataFrame(columns=keys + ["previous_positions"])
    else:
        prev = previous.groupby(keys).size().reset_index(name="previous_positions")

    merged = curr.merge(prev, on=keys, how="left").rename(columns={"primary_category": "category"})
    merged["previous_positions"] = merged["previous_positions"].fillna(0).astype(int)

    entrants = merged.loc[
        (merged["positions"] >= min_positions) & (merged["previous_positions"] < previous_floor)
    ].copy()
    entrants["positions"] = entrants["positions"].astype(int)
    entrants["description"] = entrants["positions"].map(lambda n: f"New entry with {n} positions")
    entrants = entrants.sort_values(["positions", "agency", "category"], ascending=[False, True, True])
    if limit is not None:
        entrants = entrants.head(limit)
    return entrants[NEW_ENTRANT_COLUMNS].reset_index(drop=True)


def category_leadership(df: pd.DataFrame, limit: int = 8) -> pd.DataFrame:
    """Agencies by the number of categories in which they post the most."""
    if df.empty:
        return pd.DataFrame(columns=LEADERSHIP_COLUMNS)

    counts = df.groupby(["primary_category", "agency"]).size().reset_index(name="n")
    counts = counts.sort_values(["primary_category", "n", "agency"], ascending=[True, False, True])
    leaders = counts.drop_duplicates("primary_category")

    led = (
        leaders.sort_values(["n", "primary_category"], ascending=[False, True])
        .groupby("agency")["primary_category"]
        .agg(list)
        .reset_index(name="led_categories")
    )
    led["categories_led"] = led["led_categories"].map(len)
    led = led.sort_values(["categories_led", "agency"], ascending=[False, True]).head(limit)
    return led[LEADERSHIP_COLUMNS].reset_index(drop=True)


def behavioral_comparison(profiles: Sequence[AgencyProfile], limit: int = 5) -> pd.DataFrame:
    """One-line hiring behaviour summary for the largest agencies."""
    rows = []
    for p in list(profiles)[:limit]:
        rows.append({
            "agency": p.agency,
            "market_share": p.market_share,
            "staff_pct": p.staff_pct,
            "field_pct": p.field_pct,
            "avg_window": p.avg_window,
            "description": (
                f"{p.agency} ({p.market_share:.1f}% share): {p.staff_pct:.0f}% staff, "
                f"{p.field_pct:.0f}% field, {p.avg_window:.0f}d avg window"
            ),
        })
    return pd.DataFrame(rows, columns=BEHAVIOR_COLUMNS)


# =============================================================================
# PEER GROUPS
# =============================================================================

def peer_group_for(agency: Optional[str]) -> Optional[Dict[str, Any]]:
    """Peer group containing ``agency`` (case-insensitive), or None."""
    if not agency:
        return None
    key = agency.strip().lower()
    for group_id, group in PEER_GROUPS.items():
        if any(member.lower() == key for member in group["members"]):
            return {"id": group_id, "name": group["name"], "members": list(group["members"])}
    return None


def peer_agencies(agency: Optional[str]) -> List[str]:
    """Other members of the agency's peer group."""
    group = peer_group_for(agency)
    if group is None:
        return []
    key = agency.strip().lower()
    return [m for m in group["members"] if m.lower() != key]


# =============================================================================
# SECTION
# =============================================================================

def compute_competitive_metrics(
    current: pd.DataFrame,
    previous: pd.DataFrame,
    agency: Optional[str] = None,
    settings: Optional[AppConfig] = None,
) -> Dict[str, Any]:
    """Competitive section of the brief, from the full market slices."""
    settings = settings or default_config
    profiles = rank_agencies(current, previous)
    focus = find_profile(profiles, agency)

    rank = focus.rank if focus else None
    previous_rank = focus.previous_rank if focus else None
    rank_change = previous_rank - rank if rank is not None and previous_rank is not None else None

    peers = peer_agencies(agency)
    peer_profiles = [p for p in profiles if p.agency in peers]

    return {
        "total_agencies": len(profiles),
        "profiles": profiles,
        "market_share": [p.to_dict() for p in profiles[: settings.top_agencies]],
        "your_rank": rank,
        "your_previous_rank": previous_rank,
        "rank_change": rank_change,
        "your_market_share": focus.market_share if focus else 0.0,
        "correlations": agency_correlations(
            current,
            [agency] if agency else None,
            top_k=settings.correlation_top_k,
        ),
        "category_leadership": category_leadership(current),
        "new_entrants": detect_new_entrants(
            current,
            previous,
            min_positions=settings.new_entrant_min_positions,
            previous_floor=settings.new_entrant_previous_floor,
        ),
        "behavioral_comparison": behavioral_comparison(profiles),
        "closest_competitor": (
            closest_competitor(current, agency, settings.competitor_min_positions) if agency else None
        ),
        "peer_group": peer_group_for(agency),
        "peer_profiles": [p.to_dict() for p in peer_profiles],
    }
