"""
Signal detection: a catalog of threshold rules over precomputed metrics.

Each rule reads a ``SignalContext`` and returns zero or more ``Signal``s.
Severity is high when the observed deviation exceeds its threshold by more
than ``high_severity_multiple``, medium otherwise.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
from loguru import logger

from workforce_intel.config import OTHER_REGION, SignalThresholds
from workforce_intel.metrics.category import format_category_name
from workforce_intel.metrics.snapshot import MetricSnapshot

# Signal types
SIGNAL_TREND = "trend"
SIGNAL_COMPETITOR = "competitor"
SIGNAL_RISK = "risk"
SIGNAL_GEOGRAPHIC = "geographic"
SIGNAL_ANOMALY = "anomaly"

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"

SEVERITY_ORDER = {SEVERITY_HIGH: 0, SEVERITY_MEDIUM: 1}


@dataclass(frozen=True)
class Signal:
    type: str
    severity: str
    observation: str
    interpretation: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class SignalContext:
    """Everything the rule catalog reads for one brief."""

    current: MetricSnapshot
    previous: MetricSnapshot
    historical: MetricSnapshot
    market: MetricSnapshot
    agency: Optional[str] = None
    new_entrants: pd.DataFrame = field(default_factory=pd.DataFrame)
    declining_categories: pd.DataFrame = field(default_factory=pd.DataFrame)
    current_regions: Dict[str, int] = field(default_factory=dict)
    previous_regions: Dict[str, int] = field(default_factory=dict)
    new_entrant_min_positions: int = 5

    @property
    def is_agency_view(self) -> bool:
        return self.agency is not None


def severity_for(ratio: float, thresholds: SignalThresholds) -> str:
    """Severity from how many times over its threshold a value is."""
    return SEVERITY_HIGH if ratio > thresholds.high_severity_multiple else SEVERITY_MEDIUM


# =============================================================================
# RULES
# =============================================================================

def seniority_drift(ctx: SignalContext, thresholds: SignalThresholds) -> List[Signal]:
    if ctx.current.total == 0 or ctx.historical.total == 0:
        return []
    diff = ctx.current.senior_ratio - ctx.historical.senior_ratio
    if abs(diff) < thresholds.senior_drift_pp:
        return []
    return [Signal(
        type=SIGNAL_TREND,
        severity=severity_for(abs(diff) / thresholds.senior_drift_pp, thresholds),
        observation=(
            f"Senior positions at {ctx.current.senior_ratio:.0f}% vs "
            f"{ctx.historical.senior_ratio:.0f}% 12-month average"
        ),
        interpretation=(
            "Shift toward senior leadership hiring"
            if diff > 0
            else "Increasing focus on junior and mid-level roles"
        ),
    )]


def short_window_prevalence(ctx: SignalContext, thresholds: SignalThresholds) -> List[Signal]:
    share = ctx.current.short_window_pct
    if ctx.current.total == 0 or share == 0:
        return []

    ratio = share / thresholds.short_window_share_pct
    market_share = ctx.market.short_window_pct
    if ctx.is_agency_view and market_share > 0:
        ratio = max(ratio, share / (market_share * thresholds.short_window_market_multiple))
    if ratio <= 1:
        return []

    observation = f"{share:.0f}% of positions have application windows under 10 days"
    if ctx.is_agency_view:
        observation += f" (market: {market_share:.0f}%)"
    return [Signal(
        type=SIGNAL_RISK,
        severity=severity_for(ratio, thresholds),
        observation=observation,
        interpretation="May indicate urgent staffing needs or pre-identified candidates",
    )]


def home_based_growth(ctx: SignalContext, thresholds: SignalThresholds) -> List[Signal]:
    current = ctx.current.home_based_pct
    previous = ctx.previous.home_based_pct
    if current <= thresholds.home_based_share_pct:
        return []
    if current <= previous * thresholds.home_based_growth_multiple:
        return []
    return [Signal(
        type=SIGNAL_TREND,
        severity=severity_for(current / thresholds.home_based_share_pct, thresholds),
        observation=f"Home-based positions at {current:.0f}% (up from {previous:.0f}%)",
        interpretation="Growing acceptance of remote work arrangements",
    )]


def new_competitor_entry(ctx: SignalContext, thresholds: SignalThresholds) -> List[Signal]:
    if not ctx.is_agency_view or ctx.new_entrants.empty:
        return []
    entrants = ctx.new_entrants.loc[ctx.new_entrants["agency"] != ctx.agency]
    signals = []
    for row in entrants.head(thresholds.new_competitor_limit).itertuples(index=False):
        ratio = row.positions / max(ctx.new_entrant_min_positions, 1)
        signals.append(Signal(
            type=SIGNAL_COMPETITOR,
            severity=severity_for(ratio, thresholds),
            observation=f"{row.agency} entered {format_category_name(row.category)} with {row.positions} positions",
            interpretation="New competition for talent in this area",
        ))
    return signals


def category_decline(ctx: SignalContext, thresholds: SignalThresholds) -> List[Signal]:
    if ctx.declining_categories.empty:
        return []
    candidates = ctx.declining_categories.loc[
        (-ctx.declining_categories["growth_rate"] > thresholds.category_decline_pct)
        & (ctx.declining_categories["previous_count"] >= thresholds.category_decline_min_previous)
    ]
    if candidates.empty:
        return []
    top = candidates.sort_values("growth_rate").iloc[0]
    decline = -float(top["growth_rate"])
    return [Signal(
        type=SIGNAL_ANOMALY,
        severity=severity_for(decline / thresholds.category_decline_pct, thresholds),
        observation=(
            f"{format_category_name(top['category'])} positions down {decline:.0f}% "
            f"(from {int(top['previous_count'])} to {int(top['count'])})"
        ),
        interpretation="Possible strategic deprioritization or funding constraints",
    )]


def staff_ratio_drift(ctx: SignalContext, thresholds: SignalThresholds) -> List[Signal]:
    if ctx.current.total == 0 or ctx.historical.total == 0:
        return []
    diff = ctx.current.staff_ratio - ctx.historical.staff_ratio
    if abs(diff) <= thresholds.staff_drift_pp:
        return []
    return [Signal(
        type=SIGNAL_TREND,
        severity=severity_for(abs(diff) / thresholds.staff_drift_pp, thresholds),
        observation=(
            f"Staff positions at {ctx.current.staff_ratio:.0f}% vs "
            f"{ctx.historical.staff_ratio:.0f}% 12-month average"
        ),
        interpretation=(
            "Moving toward more permanent positions"
            if diff > 0
            else "Increasing reliance on non-staff contracts"
        ),
    )]


def vanished_region(ctx: SignalContext, thresholds: SignalThresholds) -> List[Signal]:
    signals = []
    for region, previous in sorted(ctx.previous_regions.items(), key=lambda kv: (-kv[1], kv[0])):
        if region == OTHER_REGION or previous < thresholds.vanished_region_min_previous:
            continue
        if ctx.current_regions.get(region, 0) > 0:
            continue
        signals.append(Signal(
            type=SIGNAL_GEOGRAPHIC,
            severity=severity_for(previous / thresholds.vanished_region_min_previous, thresholds),
            observation=f"No positions in {region} this period (previously {previous})",
            interpretation="Possible withdrawal or pause in regional operations",
        ))
    return signals


SignalRule = Callable[[SignalContext, SignalThresholds], List[Signal]]

# Evaluation order; also the tie-break order when truncating
SIGNAL_RULES: List[tuple[str, SignalRule]] = [
    ("seniority_drift", seniority_drift),
    ("short_window_prevalence", short_window_prevalence),
    ("home_based_growth", home_based_growth),
    ("new_competitor_entry", new_competitor_entry),
    ("category_decline", category_decline),
    ("staff_ratio_drift", staff_ratio_drift),
    ("vanished_region", vanished_region),
]


def detect_signals(
    ctx: SignalContext,
    thresholds: Optional[SignalThresholds] = None,
    max_signals: int = 8,
) -> List[Signal]:
    """
    Run every rule and return at most ``max_signals`` signals.

    High-severity signals come first; within a severity, rule order is kept.
    When over the cap the lowest-severity, latest-evaluated signals are cut.
    """
    thresholds = thresholds or SignalThresholds()
    fired: List[Signal] = []
    for name, rule in SIGNAL_RULES:
        emitted = rule(ctx, thresholds)
        if emitted:
            logger.debug("Signal rule {} fired {} time(s)", name, len(emitted))
        fired.extend(emitted)

    ordered = sorted(fired, key=lambda s: SEVERITY_ORDER[s.severity])
    return ordered[:max_signals]


def signals_to_records(signals: List[Signal]) -> List[Dict[str, Any]]:
    return [s.to_dict() for s in signals]
